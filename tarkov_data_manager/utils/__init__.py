"""
Utility modules for the Tarkov Data Manager.

Includes:
- logging_config: console/file logging and per-job run logs
- retry: retry with exponential backoff for upstream calls
- monitoring: alert dispatching for failed jobs
"""

from .logging_config import (
    setup_logging,
    init_logging,
    get_logger,
    JobLogger,
    LogContext,
)
from .retry import (
    retry,
    api_retry,
    RetryConfig,
    BackoffStrategy,
    MaxRetriesExceeded,
)
from .monitoring import (
    AlertManager,
    AlertSeverity,
    Alert,
    get_alert_manager,
)

__all__ = [
    # Logging
    'setup_logging',
    'init_logging',
    'get_logger',
    'JobLogger',
    'LogContext',

    # Retry
    'retry',
    'api_retry',
    'RetryConfig',
    'BackoffStrategy',
    'MaxRetriesExceeded',

    # Monitoring
    'AlertManager',
    'AlertSeverity',
    'Alert',
    'get_alert_manager',
]
