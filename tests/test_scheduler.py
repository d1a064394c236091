"""
Job Scheduler Tests

Covers cron installation, persisted overrides, on-demand runs that
replace an imminent scheduled run, and the startup sequence.
"""

import asyncio
import json
from datetime import timedelta

import pytest

from tarkov_data_manager.exceptions import JobNotFoundError
from tarkov_data_manager.scheduler.job_scheduler import DEFAULT_SCHEDULES, JobScheduler
from tests.fakes import StubJob


@pytest.fixture
def crons_file(tmp_path):
    """Provides the location of the schedule override file."""
    return tmp_path / 'settings' / 'crons.json'


@pytest.fixture
def scheduler(job_manager, crons_file):
    """
    Provides a scheduler over a manager holding an item cache stub job.

    Returns:
        JobScheduler that has not been started
    """
    job_manager.register(StubJob('update-item-cache', kv_name='item_data'))
    return JobScheduler(job_manager, timezone='UTC', schedule_file=crons_file)


class TestSchedule:
    """Installing and removing cron schedules."""

    def test_defaults_without_overrides(self, scheduler):
        assert scheduler.schedules == DEFAULT_SCHEDULES

    def test_schedule_replaces_previous_trigger(self, scheduler):
        scheduler.schedule('update-item-cache', '*/5 * * * *')
        scheduler.schedule('update-item-cache', '0 * * * *')

        jobs = scheduler.scheduler.get_jobs()
        assert len(jobs) == 1
        assert jobs[0].id == 'update-item-cache'
        assert scheduler.manager.get_job('update-item-cache').cron_expression == '0 * * * *'
        assert scheduler.next_run('update-item-cache').minute == 0

    def test_falsy_schedule_removes_job(self, scheduler):
        scheduler.schedule('update-item-cache', '*/5 * * * *')
        scheduler.schedule('update-item-cache', None)

        assert scheduler.scheduler.get_jobs() == []
        assert scheduler.next_run('update-item-cache') is None
        assert scheduler.manager.get_job('update-item-cache').cron_expression is None

    def test_unknown_job_is_ignored(self, scheduler):
        scheduler.schedule('update-nothing', '*/5 * * * *')

        assert scheduler.scheduler.get_jobs() == []

    def test_install_schedules_skips_unregistered_jobs(self, scheduler):
        scheduler.install_schedules()

        assert [job.id for job in scheduler.scheduler.get_jobs()] == ['update-item-cache']

    def test_invalid_cron(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.schedule('update-item-cache', 'every five minutes')


class TestSetSchedule:
    """Persisted schedule changes."""

    def test_override_is_persisted(self, scheduler, crons_file):
        scheduler.set_schedule('update-item-cache', '*/10 * * * *')

        assert json.loads(crons_file.read_text()) == {'update-item-cache': '*/10 * * * *'}
        assert scheduler.manager.get_job('update-item-cache').cron_expression == '*/10 * * * *'

    def test_default_removes_override(self, scheduler, crons_file):
        scheduler.set_schedule('update-item-cache', '*/10 * * * *')
        scheduler.set_schedule('update-item-cache', 'default')

        assert json.loads(crons_file.read_text()) == {}
        assert scheduler.schedules['update-item-cache'] == '*/5 * * * *'

    def test_unschedule_is_persisted(self, scheduler, crons_file, job_manager):
        scheduler.set_schedule('update-item-cache', None)

        assert json.loads(crons_file.read_text()) == {'update-item-cache': None}
        reloaded = JobScheduler(job_manager, timezone='UTC', schedule_file=crons_file)
        assert reloaded.schedules['update-item-cache'] is None

    def test_overrides_are_loaded(self, job_manager, crons_file):
        crons_file.parent.mkdir(parents=True)
        crons_file.write_text(json.dumps({'update-item-cache': '*/15 * * * *'}))

        scheduler = JobScheduler(job_manager, timezone='UTC', schedule_file=crons_file)

        assert scheduler.schedules['update-item-cache'] == '*/15 * * * *'
        assert scheduler.schedules['update-quests'] == DEFAULT_SCHEDULES['update-quests']

    def test_malformed_overrides_are_ignored(self, job_manager, crons_file):
        crons_file.parent.mkdir(parents=True)
        crons_file.write_text('{not json')

        scheduler = JobScheduler(job_manager, timezone='UTC', schedule_file=crons_file)

        assert scheduler.schedules == DEFAULT_SCHEDULES

    def test_non_string_overrides_are_ignored(self, job_manager, crons_file):
        job_manager.register(StubJob('update-item-cache', kv_name='item_data'))
        presets = job_manager.register(StubJob('update-presets', kv_name='presets'))
        job_manager.output_cache.write(presets, {'Stub': {}})
        crons_file.parent.mkdir(parents=True)
        crons_file.write_text(json.dumps({'update-item-cache': 5, 'update-quests': '0 * * * *'}))

        scheduler = JobScheduler(job_manager, timezone='UTC', schedule_file=crons_file, startup_jobs=[])
        asyncio.run(scheduler.start_jobs())

        assert scheduler.schedules['update-item-cache'] == DEFAULT_SCHEDULES['update-item-cache']
        assert scheduler.schedules['update-quests'] == '0 * * * *'
        assert scheduler.scheduler.get_job('update-item-cache') is not None

    def test_unusable_schedule_is_not_installed(self, scheduler):
        scheduler.schedules['update-item-cache'] = 5

        scheduler.install_schedules()

        assert scheduler.scheduler.get_job('update-item-cache') is None

    def test_unknown_job(self, scheduler):
        with pytest.raises(JobNotFoundError):
            scheduler.set_schedule('update-nothing', '*/5 * * * *')


class TestTrigger:
    """On-demand runs."""

    def test_imminent_scheduled_run_is_skipped(self, scheduler):
        async def scenario():
            scheduler.schedule('update-item-cache', '*/5 * * * *')
            scheduler.start(paused=True)
            try:
                next_run = scheduler.next_run('update-item-cache')
                scheduler._now = lambda: next_run - timedelta(minutes=3)
                await scheduler.trigger('update-item-cache')
                return next_run, scheduler.next_run('update-item-cache')
            finally:
                scheduler.shutdown(wait=False)

        before, after = asyncio.run(scenario())

        assert after == before + timedelta(minutes=5)
        assert scheduler.manager.get_job('update-item-cache').calls == 1

    def test_distant_scheduled_run_is_kept(self, scheduler):
        async def scenario():
            scheduler.schedule('update-item-cache', '*/5 * * * *')
            scheduler.start(paused=True)
            try:
                next_run = scheduler.next_run('update-item-cache')
                scheduler._now = lambda: next_run - timedelta(minutes=10)
                await scheduler.trigger('update-item-cache')
                return next_run, scheduler.next_run('update-item-cache')
            finally:
                scheduler.shutdown(wait=False)

        before, after = asyncio.run(scenario())

        assert after == before

    def test_unscheduled_job_runs(self, scheduler):
        envelope = asyncio.run(scheduler.trigger('update-item-cache'))

        assert envelope['Stub'] == {'value': 1}

    def test_unknown_job(self, scheduler):
        with pytest.raises(JobNotFoundError):
            asyncio.run(scheduler.trigger('update-nothing'))


class TestScheduledRun:
    """Runs fired by the cron triggers."""

    def test_skip_switch(self, scheduler, monkeypatch):
        monkeypatch.setenv('SKIP_JOBS', 'true')

        asyncio.run(scheduler._scheduled_run('update-item-cache'))

        assert scheduler.manager.get_job('update-item-cache').calls == 0

    def test_errors_do_not_propagate(self, scheduler, mock_alert_manager):
        job = scheduler.manager.get_job('update-item-cache')
        job.error = RuntimeError('boom')

        asyncio.run(scheduler._scheduled_run('update-item-cache'))

        assert job.calls == 1
        mock_alert_manager.job_failed.assert_called_once()


class TestListSchedules:
    """Schedule listing."""

    def test_retired_jobs_are_hidden(self, scheduler, job_manager):
        job_manager.register(StubJob('update-queue-times'))
        scheduler.install_schedules()

        entries = scheduler.list_schedules()

        assert [entry['name'] for entry in entries] == ['update-item-cache']
        assert entries[0]['schedule'] == '*/5 * * * *'
        assert entries[0]['nextRun'] is not None
        assert entries[0]['running'] is False
        assert entries[0]['lastRun'] is None

    def test_unscheduled_job_has_empty_schedule(self, scheduler, job_manager):
        job_manager.register(StubJob('update-presets', kv_name='presets'))
        scheduler.install_schedules()

        entry = next(e for e in scheduler.list_schedules() if e['name'] == 'update-presets')

        assert entry['schedule'] == ''
        assert entry['nextRun'] is None


class TestStartJobs:
    """The startup sequence."""

    def test_presets_built_when_missing(self, scheduler, job_manager):
        presets = job_manager.register(StubJob('update-presets', kv_name='presets'))

        asyncio.run(scheduler.start_jobs())

        assert presets.calls == 1
        assert job_manager.output_cache.path_for(presets).exists()
        assert scheduler.scheduler.get_job('update-item-cache') is not None

    def test_presets_not_rebuilt_when_present(self, scheduler, job_manager):
        presets = job_manager.register(StubJob('update-presets', kv_name='presets'))
        job_manager.output_cache.write(presets, {'Stub': {}})

        asyncio.run(scheduler.start_jobs())

        assert presets.calls == 0

    def test_presets_failure_does_not_abort_startup(self, scheduler, job_manager):
        job_manager.register(StubJob('update-presets', kv_name='presets', error=RuntimeError('boom')))

        asyncio.run(scheduler.start_jobs())

        assert scheduler.scheduler.get_job('update-item-cache') is not None

    def test_default_startup_jobs(self, scheduler):
        assert scheduler.startup_jobs() == ['update-traders']

    def test_startup_jobs_run_in_order(self, job_manager, crons_file, mock_alert_manager):
        journal = []
        traders = job_manager.register(StubJob('update-traders', kv_name='traders', error=RuntimeError('boom'), journal=journal))
        quests = job_manager.register(StubJob('update-quests', kv_name='quests', journal=journal))
        presets = job_manager.register(StubJob('update-presets', kv_name='presets'))
        job_manager.output_cache.write(presets, {'Stub': {}})
        scheduler = JobScheduler(
            job_manager,
            timezone='UTC',
            schedule_file=crons_file,
            startup_jobs=['update-traders', 'update-quests'],
        )

        asyncio.run(scheduler.start_jobs())

        assert journal == ['update-traders', 'update-quests']
        mock_alert_manager.job_failed.assert_called_once()
        assert not job_manager.output_cache.path_for(traders).exists()
        assert job_manager.output_cache.path_for(quests).exists()

    def test_startup_jobs_skipped_by_switch(self, job_manager, crons_file, monkeypatch):
        monkeypatch.setenv('SKIP_JOBS', 'true')
        traders = job_manager.register(StubJob('update-traders', kv_name='traders'))
        quests = job_manager.register(StubJob('update-quests', kv_name='quests'))
        presets = job_manager.register(StubJob('update-presets', kv_name='presets'))
        job_manager.output_cache.write(presets, {'Stub': {}})
        scheduler = JobScheduler(
            job_manager,
            timezone='UTC',
            schedule_file=crons_file,
            startup_jobs=['update-traders', 'update-quests'],
        )

        asyncio.run(scheduler.start_jobs())

        assert traders.calls == 0
        assert quests.calls == 0
