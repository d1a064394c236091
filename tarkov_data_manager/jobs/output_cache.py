"""
Local JSON artifacts of job outputs.

Each job's latest output lives at ``<DATA_DIR>/<write_folder>/<kv_name>.json``
as ``{"updated": <epoch ms>, ["locale": {...},] "<payload field>": ...}``.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from tarkov_data_manager.config.settings import Config
from tarkov_data_manager.exceptions import OutputReadError

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = ('updated', 'locale')


@dataclass
class JobOutput:
    updated_at: datetime
    payload: Any
    envelope: Dict[str, Any]


def payload_key(envelope: Dict[str, Any]) -> Optional[str]:
    """First key of the envelope that is not ``updated`` or ``locale``."""
    for key in envelope:
        if key not in ENVELOPE_KEYS:
            return key
    return None


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class OutputCache:
    """
    Reads and writes job artifacts, publishing to the KV store on write.

    Args:
        data_dir: Root directory; defaults to Config.DATA_DIR at call time
        kv_client: KVStoreClient used for jobs with ``publish_kv`` set
    """

    def __init__(self, data_dir: Optional[Path] = None, kv_client=None):
        self.data_dir = Path(data_dir) if data_dir else None
        self.kv_client = kv_client

    def path_for(self, job) -> Path:
        root = self.data_dir or Path(Config.DATA_DIR)
        return root / job.write_folder / f"{job.kv_name}.json"

    def read(self, job) -> JobOutput:
        """
        Raises:
            FileNotFoundError: no artifact has been written yet
            OutputReadError: the artifact is unreadable or malformed
        """
        path = self.path_for(job)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                envelope = json.load(f)
        except FileNotFoundError:
            raise
        except (OSError, json.JSONDecodeError) as e:
            raise OutputReadError(f"Could not read {path}: {e}") from e

        if not isinstance(envelope, dict) or not isinstance(envelope.get('updated'), (int, float)):
            raise OutputReadError(f"{path} is not a job output")

        key = payload_key(envelope)
        return JobOutput(
            updated_at=datetime.fromtimestamp(envelope['updated'] / 1000, tz=timezone.utc),
            payload=envelope[key] if key else None,
            envelope=envelope,
        )

    def _previous_updated(self, job) -> int:
        try:
            return int(self.read(job).envelope['updated'])
        except (FileNotFoundError, OutputReadError):
            return 0

    def write(self, job, envelope: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Stamp, publish and store a fresh envelope.

        The remote put happens before the local write; a PublishError leaves
        the previous artifact untouched.

        Values JSON cannot hold natively (datetimes) are stored as strings,
        and the returned envelope holds them the same way.

        Returns:
            The stored envelope, as a later read returns it
        """
        updated = epoch_ms(now or datetime.now(timezone.utc))
        stored = {'updated': max(updated, self._previous_updated(job))}
        stored.update({key: value for key, value in envelope.items() if key != 'updated'})
        content = json.dumps(stored, indent=4, default=str)
        stored = json.loads(content)

        if job.publish_kv and self.kv_client is not None and self.kv_client.enabled:
            self.kv_client.put_value(job.kv_key or job.kv_name, stored)

        path = self.path_for(job)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(content)
        os.replace(tmp_path, path)
        logger.debug(f"Wrote {path}")
        return stored
