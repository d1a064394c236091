"""
Job Lifecycle Tests

Covers the running flag, concurrent triggers, failure alerts and the
last-run record.
"""

import asyncio
import json
import os

import pytest

from tarkov_data_manager.utils.logging_config import job_log_path
from tests.fakes import StubJob


class TestJobRun:
    """A run stores its output and reports its state."""

    def test_start_writes_output(self, job_manager):
        job = job_manager.register(StubJob('update-stub', payload=[1, 2, 3]))

        envelope = asyncio.run(job.start())

        assert envelope['Stub'] == [1, 2, 3]
        assert job_manager.output_cache.read(job).payload == [1, 2, 3]
        assert job.last_run_at is not None

    def test_running_flag(self, job_manager):
        job = job_manager.register(StubJob('update-slow', delay=0.05))

        async def scenario():
            task = asyncio.ensure_future(job.start())
            await asyncio.sleep(0.01)
            during = job.running
            await task
            return during

        assert asyncio.run(scenario()) is True
        assert job.running is False

    def test_concurrent_start_joins_running_run(self, job_manager):
        job = job_manager.register(StubJob('update-slow', delay=0.05))

        async def scenario():
            return await asyncio.gather(job.start(), job.start())

        first, second = asyncio.run(scenario())

        assert job.calls == 1
        assert first == second

    def test_start_after_completion_runs_again(self, job_manager):
        job = job_manager.register(StubJob('update-stub'))

        async def scenario():
            await job.start()
            await job.start()

        asyncio.run(scenario())

        assert job.calls == 2

    def test_log_file_written(self, job_manager):
        job = job_manager.register(StubJob('update-stub'))

        asyncio.run(job.start())

        messages = json.loads(job_log_path('update-stub').read_text())
        assert any('update-stub ended in' in message for message in messages)


class TestJobFailure:
    """A failing run alerts and propagates its error."""

    def test_failure_alerts_and_raises(self, job_manager, mock_alert_manager):
        job = job_manager.register(StubJob('update-broken', error=RuntimeError('upstream down')))

        with pytest.raises(RuntimeError, match='upstream down'):
            asyncio.run(job.start())

        mock_alert_manager.job_failed.assert_called_once()
        job_name, error = mock_alert_manager.job_failed.call_args[0]
        assert job_name == 'update-broken'
        assert isinstance(error, RuntimeError)

    def test_failure_keeps_previous_output(self, job_manager):
        job = job_manager.register(StubJob('update-flaky', payload='good'))
        asyncio.run(job.start())

        job.error = RuntimeError('boom')
        with pytest.raises(RuntimeError):
            asyncio.run(job.start())

        assert job.running is False
        assert job_manager.output_cache.read(job).payload == 'good'


class TestLastRun:
    """The last run falls back to the log file."""

    def test_no_run_no_log(self, job_manager):
        job = job_manager.register(StubJob('update-never'))

        assert job.last_run is None

    def test_log_mtime_fallback(self, job_manager):
        job = job_manager.register(StubJob('update-logged'))
        path = job_log_path('update-logged')
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text('[]')
        os.utime(path, (1714564800, 1714564800))

        assert job.last_run.timestamp() == 1714564800
