"""
APScheduler-based job scheduler.

Provides:
- Cron schedules per job, with persisted overrides
- On-demand runs that skip an imminent scheduled run
- Startup jobs and a presets bootstrap on first start
- Graceful shutdown
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from tarkov_data_manager.config.settings import Config
from tarkov_data_manager.jobs.manager import JobManager
from tarkov_data_manager.scheduler.schedule_store import load_overrides, save_overrides

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULES: Dict[str, str] = {
    'update-item-cache': '*/5 * * * *',
    'update-game-data': '1-59/10 * * * *',
    'update-quests': '3-59/10 * * * *',
    'update-trader-assorts': '36 11,23 * * *',
    'update-trader-prices': '46 11,23 * * *',
    'update-historical-prices': '26 * * * *',
}

# Run in order when the scheduler starts
STARTUP_JOBS: List[str] = ['update-traders']

# Schedules and startup jobs that only apply outside the dev environment
NON_DEV_SCHEDULES: Dict[str, str] = {}

NON_DEV_STARTUP_JOBS: List[str] = []

# Jobs that still exist upstream but are no longer listed
RETIRED_JOBS = (
    'update-hideout-legacy',
    'update-longtime-data',
    'update-quests-legacy',
    'update-queue-times',
    'update-reset-timers',
)

# A manual run this close to the next scheduled run replaces it
BUMP_WINDOW = timedelta(minutes=5)


class JobScheduler:
    """
    Runs registered jobs on cron schedules.

    Each job has at most one APScheduler job, whose id is the job name.

    Args:
        manager: JobManager holding the registered jobs
        timezone: Timezone cron expressions are evaluated in
        schedule_file: Override store location (default settings/crons.json)
        startup_jobs: Jobs run in order by start_jobs (default STARTUP_JOBS,
            plus NON_DEV_STARTUP_JOBS outside dev)
    """

    def __init__(
        self,
        manager: JobManager,
        timezone: Optional[str] = None,
        schedule_file: Optional[Path] = None,
        startup_jobs: Optional[List[str]] = None,
    ):
        self.manager = manager
        self.timezone = timezone or Config.SCHED_TZ
        self.schedule_file = schedule_file
        self._startup_jobs = startup_jobs

        self.defaults = dict(DEFAULT_SCHEDULES)
        if not Config.is_dev():
            self.defaults.update(NON_DEV_SCHEDULES)
        self.schedules: Dict[str, Optional[str]] = dict(self.defaults)
        self.schedules.update(load_overrides(self.schedule_file))

        job_defaults = {
            'coalesce': True,  # Combine missed executions into one
            'max_instances': 1,
            'misfire_grace_time': 300,
        }
        self.scheduler = AsyncIOScheduler(job_defaults=job_defaults, timezone=self.timezone)
        self.scheduler.add_listener(self._job_missed_listener, EVENT_JOB_MISSED | EVENT_JOB_MAX_INSTANCES)

    def _job_missed_listener(self, event):
        logger.warning(f"Job {event.job_id} missed its scheduled run time")

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    # =========================================
    # SCHEDULING
    # =========================================

    def schedule(self, name: str, cron_expression: Optional[str]):
        """
        Install ``cron_expression`` as the only schedule of ``name``.

        A falsy expression removes the schedule.

        Raises:
            ValueError: the cron expression is invalid
        """
        if name not in self.manager.jobs:
            logger.warning(f"Cannot schedule unknown job {name}")
            return
        job = self.manager.jobs[name]

        if self.scheduler.get_job(name):
            self.scheduler.remove_job(name)

        if not cron_expression:
            logger.info(f"Unscheduling {name} job")
            job.cron_expression = None
            job.next_run_at = None
            return

        trigger = CronTrigger.from_crontab(cron_expression, timezone=self.timezone)
        self.scheduler.add_job(
            self._scheduled_run,
            trigger=trigger,
            args=[name],
            id=name,
            name=name,
            replace_existing=True,
        )
        job.cron_expression = cron_expression
        logger.info(f"Setting up {name} job to run {cron_expression}")

    def next_run(self, name: str) -> Optional[datetime]:
        scheduled = self.scheduler.get_job(name)
        if scheduled is None:
            return None
        if not self.scheduler.running:
            return scheduled.trigger.get_next_fire_time(None, self._now())
        return scheduled.next_run_time

    def _bump(self, name: str):
        """Skip the pending scheduled run of ``name`` when it is imminent."""
        scheduled = self.scheduler.get_job(name)
        next_run = self.next_run(name)
        if scheduled is None or next_run is None:
            return
        if self._now() <= next_run - BUMP_WINDOW:
            return
        following = scheduled.trigger.get_next_fire_time(next_run, next_run + timedelta(seconds=1))
        if following is None:
            self.scheduler.pause_job(name)
        else:
            scheduled.modify(next_run_time=following)
        logger.info(f"Skipping scheduled {name} run at {next_run}; next run {following}")

    async def trigger(self, name: str, options: Optional[Dict[str, Any]] = None, bump_schedule: bool = True) -> Dict[str, Any]:
        """
        Run ``name`` now.

        Raises:
            JobNotFoundError: ``name`` is not registered
        """
        job = self.manager.get_job(name)
        if bump_schedule:
            self._bump(name)
        job.next_run_at = self.next_run(name)
        return await job.start(options)

    async def _scheduled_run(self, name: str):
        if Config.skip_jobs():
            logger.info(f"Skipping {name} job")
            return
        logger.info(f"Running {name} job")
        started = time.time()
        try:
            await self.trigger(name, bump_schedule=False)
        except Exception as e:
            logger.error(f"Error running {name} job: {e}")
        logger.info(f"{name}: {time.time() - started:.3f}s")

    def set_schedule(self, name: str, cron_expression: Optional[str]):
        """
        Change and persist the schedule of ``name``.

        ``"default"`` restores the built-in schedule; a falsy value
        unschedules the job.

        Raises:
            JobNotFoundError: ``name`` is not registered
            ValueError: the cron expression is invalid
        """
        self.manager.get_job(name)
        if cron_expression == 'default':
            cron_expression = self.defaults.get(name)
        cron_expression = cron_expression or None

        self.schedule(name, cron_expression)
        self.schedules[name] = cron_expression

        overrides = {
            job_name: cron
            for job_name, cron in self.schedules.items()
            if cron != self.defaults.get(job_name)
        }
        save_overrides(overrides, self.schedule_file)

    def list_schedules(self) -> List[Dict[str, Any]]:
        results = []
        for name, job in self.manager.jobs.items():
            if name in RETIRED_JOBS:
                continue
            results.append({
                'name': name,
                'schedule': self.schedules.get(name) or '',
                'lastRun': job.last_run,
                'nextRun': self.next_run(name),
                'running': job.running,
            })
        return results

    # =========================================
    # LIFECYCLE
    # =========================================

    def startup_jobs(self) -> List[str]:
        if self._startup_jobs is not None:
            return list(self._startup_jobs)
        jobs = list(STARTUP_JOBS)
        if not Config.is_dev():
            jobs.extend(NON_DEV_STARTUP_JOBS)
        return jobs

    def install_schedules(self):
        for name, cron_expression in self.schedules.items():
            try:
                self.schedule(name, cron_expression)
            except (ValueError, TypeError, AttributeError) as e:
                logger.error(f"Error setting up {name} job: {e}")

    async def start_jobs(self):
        """Install every schedule and run the startup jobs."""
        self.install_schedules()

        for name in self.startup_jobs():
            if Config.skip_jobs():
                logger.info(f"Skipping {name} startup job")
                continue
            logger.info(f"Running {name} job at startup")
            try:
                await self.trigger(name)
            except Exception as e:
                logger.error(f"Error running {name}: {e}")

        build_presets = False
        presets_job = self.manager.get_job('update-presets')
        try:
            self.manager.output_cache.path_for(presets_job).stat()
        except FileNotFoundError:
            build_presets = True
        except OSError as e:
            logger.error(f"Error checking presets output: {e}")

        if build_presets:
            logger.info('Running update-presets job at startup')
            try:
                await self.trigger('update-presets')
            except Exception as e:
                logger.error(f"Error running update-presets: {e}")
        logger.info('Startup jobs complete')

    def start(self, paused: bool = False):
        if not self.scheduler.running:
            self.scheduler.start(paused=paused)
            logger.info("Scheduler started")
        else:
            logger.warning("Scheduler is already running")

    def shutdown(self, wait: bool = True):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler shutdown complete")

    @property
    def running(self) -> bool:
        return self.scheduler.running
