"""
Base class for scheduled data jobs.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from tarkov_data_manager.utils.logging_config import JobLogger, job_log_path


class Job:
    """
    A named unit of work producing one published output.

    Subclasses set ``name`` and implement ``run``, returning the envelope
    without its ``updated`` stamp, e.g. ``{"Preset": {...}, "locale": {...}}``.

    Class attributes:
        name: Registry name, also the APScheduler job id
        kv_name: Output file name and default KV key
        kv_key: KV key when it differs from ``kv_name``
        write_folder: Folder under DATA_DIR holding the output
        publish_kv: Publish each output to the KV store
        max_output_age: Outputs older than this are recomputed on demand
    """

    name: str = ''
    kv_name: Optional[str] = None
    kv_key: Optional[str] = None
    write_folder: str = 'cache'
    publish_kv: bool = False
    max_output_age: Optional[timedelta] = None

    def __init__(self, manager=None):
        self.manager = manager
        self.kv_name = self.kv_name or self.name
        self.cron_expression: Optional[str] = None
        self.last_run_at: Optional[datetime] = None
        self.next_run_at: Optional[datetime] = None
        self.running = False
        self.logger = JobLogger(self.name)
        self._task: Optional[asyncio.Future] = None

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"

    @property
    def context(self):
        return self.manager.context

    @property
    def last_run(self) -> Optional[datetime]:
        """Last completed run, falling back to the mtime of the job's log file."""
        if self.last_run_at:
            return self.last_run_at
        try:
            mtime = job_log_path(self.name).stat().st_mtime
        except FileNotFoundError:
            return None
        return datetime.fromtimestamp(mtime, tz=timezone.utc)

    async def start(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run the job and store its output.

        A call made while a run is in flight waits for that run and gets its
        result instead of starting a second one.

        Returns:
            The stored envelope
        """
        if self._task is not None and not self._task.done():
            self.logger.log(f"{self.name} is already running; waiting for the current run")
            return await asyncio.shield(self._task)

        self.running = True
        self._task = asyncio.ensure_future(self._execute(options or {}))
        return await asyncio.shield(self._task)

    async def _execute(self, options: Dict[str, Any]) -> Dict[str, Any]:
        parent = options.get('parent')
        self.logger.start(parent.logger if parent else None)
        try:
            envelope = await self.run(options)
            stored = await asyncio.to_thread(self.manager.output_cache.write, self, envelope)
            self.last_run_at = datetime.now(timezone.utc)
            return stored
        except Exception as e:
            self.logger.error(f"Error running {self.name} job: {e}", e)
            self.manager.context.alert_manager.job_failed(self.name, e)
            raise
        finally:
            self.running = False
            self.logger.end()

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    # =========================================
    # HELPERS FOR SUBCLASSES
    # =========================================

    async def job_output(self, job_name: str, raw_output: bool = False) -> Any:
        """Output of another job, recomputed when missing or stale."""
        return await self.manager.job_output(job_name, parent_job=self, raw_output=raw_output)

    async def blocking(self, func, *args, **kwargs):
        """Run a blocking call (HTTP, database) off the event loop."""
        return await asyncio.to_thread(func, *args, **kwargs)
