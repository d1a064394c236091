"""
Logging Configuration for the Tarkov Data Manager.

Features:
- Console output with level colouring
- Rotating file log plus a separate JSON error log
- Context-aware logging (job name attached to every record)
- Per-job run logs written to logs/<job>.log
"""

import os
import sys
import json
import time
import logging
import logging.handlers
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, List

from tarkov_data_manager.config.settings import Config


# ============================================
# CUSTOM FORMATTERS
# ============================================

class JSONFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging.
    """

    RESERVED = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'pathname', 'process', 'processName', 'relativeCreated',
        'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
        'message', 'taskName'
    }

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None
            }

        if self.include_extra:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key in self.RESERVED:
                    continue
                try:
                    json.dumps(value)
                    extra_fields[key] = value
                except (TypeError, ValueError):
                    extra_fields[key] = str(value)

            if extra_fields:
                log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Console formatter with colours per level.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        job = getattr(record, 'job_name', None)
        name = f"{record.name}[{job}]" if job else record.name

        formatted = f"{color}{timestamp} | {record.levelname:8} | {name:30} | {record.getMessage()}{self.RESET}"

        if record.exc_info:
            formatted += f"\n{color}{self.formatException(record.exc_info)}{self.RESET}"

        return formatted


# ============================================
# LOGGING CONTEXT
# ============================================

_log_context: ContextVar[Dict[str, Any]] = ContextVar('log_context', default={})


class LogContext:
    """
    Task-local logging context.

    Jobs run concurrently on one event loop, so context is kept in a
    ContextVar; each asyncio task sees its own copy.
    """

    @classmethod
    def set(cls, **kwargs):
        context = dict(_log_context.get())
        context.update(kwargs)
        _log_context.set(context)

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        return _log_context.get().get(key, default)

    @classmethod
    def clear(cls):
        _log_context.set({})

    @classmethod
    def get_all(cls) -> Dict[str, Any]:
        return dict(_log_context.get())


class ContextFilter(logging.Filter):
    """Adds LogContext values to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.get_all().items():
            setattr(record, key, value)
        return True


# ============================================
# LOGGER FACTORY
# ============================================

def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True,
    enable_file: bool = True
) -> logging.Logger:
    """
    Configure the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Use JSON format for the main file log
        log_dir: Directory for log files (default: <DATA_DIR>/logs)
        log_file: Main log file name (default: data_manager.log)
        max_bytes: Max log file size before rotation
        backup_count: Number of rotated files to keep
        enable_console: Enable console output
        enable_file: Enable file output

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    context_filter = ContextFilter()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(ConsoleFormatter())
        console_handler.addFilter(context_filter)
        root_logger.addHandler(console_handler)

    if enable_file:
        log_dir = Path(log_dir or Config.path('logs'))
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / (log_file or "data_manager.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        if json_logs:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s'
            ))
        file_handler.addFilter(context_filter)
        root_logger.addHandler(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            log_dir / "errors.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        error_handler.addFilter(context_filter)
        root_logger.addHandler(error_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


# ============================================
# JOB LOGGER
# ============================================

def job_log_path(job_name: str) -> Path:
    return Config.path('logs', f'{job_name}.log')


class JobLogger:
    """
    Logger for a single job run.

    Every message of the run is kept and written to logs/<job>.log when the
    run ends; the file's mtime doubles as the job's last-run record.
    Informational messages reach the console only when VERBOSE_LOGS is set,
    warnings and errors always do. A child job started on behalf of another
    job forwards its messages to the parent's logger.
    """

    def __init__(self, job_name: str, logger: Optional[logging.Logger] = None, write_log: bool = True):
        self.job_name = job_name
        self.logger = logger or get_logger(f"jobs.{job_name}")
        self.write_log = write_log
        self.start_time: Optional[float] = None
        self.messages: List[str] = []
        self.timers: Dict[str, float] = {}
        self.parent_logger: Optional['JobLogger'] = None

    def _add_message(self, level: int, message: Any):
        if not isinstance(message, str):
            message = json.dumps(message, indent=4, default=str)
        self.messages.append(message)
        if self.parent_logger:
            self.parent_logger.messages.append(message)
        if level == logging.INFO and not Config.verbose_logs():
            level = logging.DEBUG
        self.logger.log(level, message)

    def log(self, message: Any):
        self._add_message(logging.INFO, message)

    def success(self, message: Any):
        self._add_message(logging.INFO, message)

    def warn(self, message: Any):
        self._add_message(logging.WARNING, message)

    warning = warn
    info = log

    def error(self, message: Any, exception: Optional[BaseException] = None):
        if exception is not None:
            message = f"{message}\n{''.join(traceback.format_exception(type(exception), exception, exception.__traceback__))}"
        self._add_message(logging.ERROR, message)

    def start(self, parent: Optional['JobLogger'] = None):
        self.start_time = time.time()
        self.parent_logger = parent
        LogContext.set(job_name=self.job_name)
        if parent:
            self.messages.append(f"Running as child job of {parent.job_name} job")

    def end(self):
        elapsed = time.time() - self.start_time if self.start_time else 0
        self.log(f"{self.job_name} ended in {elapsed:.3f}s")
        if self.write_log:
            self.write()
        self.messages = []
        self.start_time = None
        self.parent_logger = None

    def time(self, label: str):
        self.timers[label] = time.time()

    def time_end(self, label: str):
        started = self.timers.pop(label, None)
        if started is None:
            return
        self.log(f"{label} completed in {int((time.time() - started) * 1000)}ms")

    def write(self):
        path = job_log_path(self.job_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self.messages, indent=4), encoding='utf-8')
        except OSError as e:
            self.logger.error(f"Error writing log file for {self.job_name}: {e}")


# ============================================
# INITIALIZE DEFAULT LOGGING
# ============================================

_initialized = False


def init_logging():
    """Initialize logging once for an entry point."""
    global _initialized
    if not _initialized:
        log_level = os.getenv("LOG_LEVEL", "INFO")
        json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"
        setup_logging(level=log_level, json_logs=json_logs)
        _initialized = True
