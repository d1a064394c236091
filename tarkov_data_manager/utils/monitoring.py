"""
Alerting for job failures.

Job failures are reported to an external channel (a Discord/Slack style
webhook when ALERT_WEBHOOK_URL is configured) and always appended to
logs/alerts.log.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, List, Tuple
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import requests

from tarkov_data_manager.config.settings import Config

logger = logging.getLogger(__name__)


class AlertSeverity(Enum):
    """Alert severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


SEVERITY_ORDER = [
    AlertSeverity.INFO,
    AlertSeverity.WARNING,
    AlertSeverity.ERROR,
    AlertSeverity.CRITICAL,
]


@dataclass
class Alert:
    """Represents an alert."""
    severity: AlertSeverity
    title: str
    message: str
    component: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "component": self.component,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata
        }


# ============================================
# ALERT HANDLERS
# ============================================

class AlertHandler:
    """Base class for alert handlers."""

    def send(self, alert: Alert):
        raise NotImplementedError


class FileAlertHandler(AlertHandler):
    """Appends alerts to a JSON-lines file."""

    def __init__(self, filepath: Optional[Path] = None):
        self.filepath = Path(filepath or Config.path('logs', 'alerts.log'))

    def send(self, alert: Alert):
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(self.filepath, "a", encoding="utf-8") as f:
            f.write(json.dumps(alert.to_dict(), default=str) + "\n")


class WebhookAlertHandler(AlertHandler):
    """Posts alerts to a chat webhook as an embed."""

    COLORS = {
        AlertSeverity.INFO: 0x3498DB,
        AlertSeverity.WARNING: 0xF1C40F,
        AlertSeverity.ERROR: 0xE74C3C,
        AlertSeverity.CRITICAL: 0x8E44AD,
    }

    def __init__(self, webhook_url: str, timeout: int = 10):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send(self, alert: Alert):
        payload = {
            "embeds": [{
                "title": alert.title,
                # embed descriptions are capped at 4096 characters
                "description": alert.message[:4000],
                "color": self.COLORS.get(alert.severity),
                "footer": {"text": alert.component},
                "timestamp": alert.timestamp.isoformat(),
            }]
        }
        response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        logger.debug(f"Alert sent to webhook: {alert.title}")


# ============================================
# ALERT MANAGER
# ============================================

class AlertManager:
    """
    Records alerts and dispatches them to the configured handlers.

    A job that keeps failing on a short cron would post the same alert
    every few minutes; an alert with the same component and title as one
    dispatched less than ``repeat_interval`` ago is recorded but not sent.
    """

    def __init__(self, max_history: int = 1000, repeat_interval: timedelta = timedelta(hours=1)):
        self.handlers: List[AlertHandler] = []
        self.alert_history: List[Alert] = []
        self.max_history = max_history
        self.repeat_interval = repeat_interval
        self.severity_filter: Optional[AlertSeverity] = None
        self._last_sent: Dict[Tuple[str, str], datetime] = {}

    def add_handler(self, handler: AlertHandler):
        self.handlers.append(handler)

    def set_severity_filter(self, min_severity: AlertSeverity):
        self.severity_filter = min_severity

    def _should_send(self, alert: Alert) -> bool:
        if self.severity_filter and SEVERITY_ORDER.index(alert.severity) < SEVERITY_ORDER.index(self.severity_filter):
            return False
        key = (alert.component, alert.title)
        last = self._last_sent.get(key)
        if last is not None and alert.timestamp - last < self.repeat_interval:
            logger.debug(f"Suppressing repeated alert: {alert.title}")
            return False
        self._last_sent[key] = alert.timestamp
        return True

    def alert(self, severity: AlertSeverity, title: str, message: str, component: str, **metadata) -> Alert:
        alert = Alert(
            severity=severity,
            title=title,
            message=message,
            component=component,
            metadata=metadata
        )
        self.alert_history.append(alert)
        del self.alert_history[:-self.max_history]

        if not self._should_send(alert):
            return alert

        # Handler failures are logged, never raised
        for handler in self.handlers:
            try:
                handler.send(alert)
            except Exception as e:
                logger.error(f"Failed to send alert via {type(handler).__name__}: {e}")
        return alert

    def warning(self, title: str, message: str, component: str, **metadata) -> Alert:
        return self.alert(AlertSeverity.WARNING, title, message, component, **metadata)

    def error(self, title: str, message: str, component: str, **metadata) -> Alert:
        return self.alert(AlertSeverity.ERROR, title, message, component, **metadata)

    def job_failed(self, job_name: str, error: BaseException) -> Alert:
        return self.error(
            title=f"Job {job_name} failed",
            message=str(error) or type(error).__name__,
            component=job_name,
            error_type=type(error).__name__,
        )

    def get_recent_alerts(self, limit: int = 10, component: Optional[str] = None) -> List[Alert]:
        alerts = self.alert_history
        if component:
            alerts = [a for a in alerts if a.component == component]
        return alerts[-limit:]


_alert_manager: Optional[AlertManager] = None


def get_alert_manager() -> AlertManager:
    """Get or create the global alert manager."""
    global _alert_manager
    if _alert_manager is None:
        _alert_manager = AlertManager()
        _alert_manager.add_handler(FileAlertHandler())
        if Config.ALERT_WEBHOOK_URL:
            _alert_manager.add_handler(WebhookAlertHandler(Config.ALERT_WEBHOOK_URL))
    return _alert_manager
