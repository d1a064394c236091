"""
Job manager: runs jobs by name and serves their outputs to other jobs.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from tarkov_data_manager.exceptions import JobNotFoundError, OutputReadError
from tarkov_data_manager.jobs.context import JobContext
from tarkov_data_manager.jobs.output_cache import OutputCache, payload_key

logger = logging.getLogger(__name__)


class JobManager:
    """
    Owns the job instances of a process.

    Args:
        context: Shared collaborators; a lazily built JobContext by default
        output_cache: Artifact store; writes under Config.DATA_DIR by default
    """

    def __init__(self, context: Optional[JobContext] = None, output_cache: Optional[OutputCache] = None):
        self.context = context or JobContext()
        self.output_cache = output_cache or OutputCache(kv_client=self.context.kv)
        self.jobs: Dict[str, Any] = {}

    def register(self, job):
        job.manager = self
        self.jobs[job.name] = job
        return job

    def get_job(self, job_name: str):
        try:
            return self.jobs[job_name]
        except KeyError:
            raise JobNotFoundError(job_name) from None

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def run_job(self, job_name: str, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self.get_job(job_name).start(options)

    async def job_output(self, job_name: str, parent_job=None, raw_output: bool = False) -> Any:
        """
        Output of ``job_name``, read from its artifact when present and fresh.

        A missing, unreadable or stale artifact is recomputed by running the
        job once on behalf of ``parent_job``.

        Args:
            job_name: Registered job name
            parent_job: Requesting job; its logger receives the messages
            raw_output: Return the whole envelope instead of the payload

        Raises:
            JobNotFoundError: ``job_name`` is not registered
        """
        job = self.get_job(job_name)
        log = parent_job.logger if parent_job else logger

        output = None
        try:
            output = await asyncio.to_thread(self.output_cache.read, job)
        except FileNotFoundError:
            log.warning(f"Output {job.kv_name}.json missing; running {job_name} job")
        except OutputReadError as e:
            log.error(f"Error reading {job.kv_name}.json: {e}; running {job_name} job")

        if output is not None and job.max_output_age is not None:
            age = self._now() - output.updated_at
            if age > job.max_output_age:
                log.info(f"Output {job.kv_name}.json is {int(age.total_seconds())}s old; running {job_name} job")
                output = None

        if output is not None:
            return output.envelope if raw_output else output.payload

        envelope = await self.run_job(job_name, {'parent': parent_job} if parent_job else None)
        if raw_output:
            return envelope
        key = payload_key(envelope)
        return envelope[key] if key else None
