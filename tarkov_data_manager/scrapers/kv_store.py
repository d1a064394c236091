"""
Client for the remote key/value store that serves published job outputs.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from tarkov_data_manager.config.settings import Config
from tarkov_data_manager.exceptions import PublishError
from tarkov_data_manager.utils.retry import api_retry, MaxRetriesExceeded

logger = logging.getLogger(__name__)


class KVStoreClient:
    """
    Thin wrapper over the KV namespace REST API.

    The API answers every write with ``{"success": bool, "errors": [...],
    "messages": [...]}``; an unsuccessful answer raises PublishError.
    """

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None, timeout: int = 60):
        self.base_url = (base_url if base_url is not None else Config.KV_API_URL).rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        token = token if token is not None else Config.KV_API_TOKEN
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    @api_retry()
    def _put(self, path: str, body: str, content_type: str) -> Dict[str, Any]:
        response = self.session.put(
            f"{self.base_url}{path}",
            data=body.encode('utf-8'),
            headers={'Content-Type': content_type},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _request(self, path: str, body: str, content_type: str = 'text/plain') -> Dict[str, Any]:
        try:
            result = self._put(path, body, content_type)
        except MaxRetriesExceeded as e:
            raise PublishError(f"PUT {path} failed: {e.last_exception}") from e
        except requests.exceptions.RequestException as e:
            raise PublishError(f"PUT {path} failed: {e}") from e
        if not result.get('success'):
            errors = list(result.get('errors', [])) + list(result.get('messages', []))
            raise PublishError(f"PUT {path} was rejected", errors=errors)
        logger.info(f"Successful KV put of {path}")
        return result

    def put_value(self, key: str, value: Any) -> Dict[str, Any]:
        """Store one value under ``key`` (serialised as JSON)."""
        return self._request(f"/values/{key}", json.dumps(value, default=str))

    def put_bulk(self, entries: List[Dict[str, str]]) -> Dict[str, Any]:
        """Store many ``{"key", "value"}`` pairs in one request."""
        return self._request('/bulk', json.dumps(entries), content_type='application/json')
