"""
Data jobs and the machinery that runs them.
"""

from tarkov_data_manager.jobs.base import Job
from tarkov_data_manager.jobs.context import JobContext
from tarkov_data_manager.jobs.manager import JobManager
from tarkov_data_manager.jobs.output_cache import JobOutput, OutputCache
from tarkov_data_manager.jobs.registry import JOB_CLASSES, build_registry

__all__ = [
    'Job',
    'JobContext',
    'JobManager',
    'JobOutput',
    'OutputCache',
    'JOB_CLASSES',
    'build_registry',
]
