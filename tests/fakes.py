"""
Test doubles for jobs.
"""

import asyncio
from datetime import timedelta
from typing import Any, Dict, List, Optional

from tarkov_data_manager.jobs.base import Job


class StubJob(Job):
    """
    Job returning a fixed payload under the ``Stub`` key.

    Args:
        name: Job name
        payload: Value returned by every run
        delay: Seconds each run sleeps before returning
        error: Exception raised by every run
        max_output_age: Freshness limit of the cached output
        journal: List every run appends the job name to
    """

    def __init__(
        self,
        name: str = 'stub-job',
        kv_name: Optional[str] = None,
        payload: Any = None,
        delay: float = 0,
        error: Optional[Exception] = None,
        max_output_age: Optional[timedelta] = None,
        publish_kv: bool = False,
        journal: Optional[List[str]] = None,
    ):
        self.name = name
        self.kv_name = kv_name
        self.max_output_age = max_output_age
        self.publish_kv = publish_kv
        super().__init__()
        self.payload = payload if payload is not None else {'value': 1}
        self.delay = delay
        self.error = error
        self.calls = 0
        self.journal = journal

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        self.calls += 1
        if self.journal is not None:
            self.journal.append(self.name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {'Stub': self.payload}
