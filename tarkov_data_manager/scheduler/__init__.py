"""
Cron scheduling of data jobs.
"""

from tarkov_data_manager.scheduler.job_scheduler import (
    DEFAULT_SCHEDULES,
    NON_DEV_SCHEDULES,
    NON_DEV_STARTUP_JOBS,
    RETIRED_JOBS,
    STARTUP_JOBS,
    JobScheduler,
)
from tarkov_data_manager.scheduler.schedule_store import load_overrides, save_overrides

__all__ = [
    'DEFAULT_SCHEDULES',
    'NON_DEV_SCHEDULES',
    'NON_DEV_STARTUP_JOBS',
    'RETIRED_JOBS',
    'STARTUP_JOBS',
    'JobScheduler',
    'load_overrides',
    'save_overrides',
]
