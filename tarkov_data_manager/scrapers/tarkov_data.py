"""
Client for upstream game data (item templates, locales, globals, traders).

Responses are cached on disk under cache/tarkov_data/ so that several jobs
running close together do not download the same multi-megabyte files.
"""

import json
import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Dict, Any, List, Optional

import requests

from tarkov_data_manager.config.settings import Config
from tarkov_data_manager.exceptions import UpstreamError
from tarkov_data_manager.utils.retry import api_retry, MaxRetriesExceeded

logger = logging.getLogger(__name__)


class TarkovDataClient:
    """
    Fetches raw game data files from the configured provider.

    Each file is addressed by name (``items``, ``credits``, ``globals``,
    ``traders``, ``quests``, ``locale_<code>``, ``assorts/<trader id>``) and
    served from the disk cache while it is younger than ``cache_ttl``.
    """

    DEFAULT_HEADERS = {
        'User-Agent': 'tarkov-data-manager',
        'Accept': 'application/json',
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        cache_dir: Optional[Path] = None,
        cache_ttl_minutes: float = 10.0,
        timeout: int = 60,
    ):
        self.base_url = (base_url or Config.TARKOV_DATA_URL).rstrip('/')
        self.cache_dir = Path(cache_dir or Config.path('cache', 'tarkov_data'))
        self.cache_ttl = timedelta(minutes=cache_ttl_minutes)
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update(self.DEFAULT_HEADERS)

        self.total_requests = 0
        self.cache_hits = 0

    def _cache_file(self, name: str) -> Path:
        return self.cache_dir / f"{name.replace('/', '_')}.json"

    def _read_cache(self, name: str) -> Optional[Any]:
        cache_file = self._cache_file(name)
        try:
            age = time.time() - cache_file.stat().st_mtime
            if age > self.cache_ttl.total_seconds():
                return None
            with open(cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Cache read error for {name}: {e}")
            return None
        self.cache_hits += 1
        return data

    def _write_cache(self, name: str, data: Any):
        cache_file = self._cache_file(name)
        try:
            cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(cache_file, 'w', encoding='utf-8') as f:
                json.dump(data, f)
        except OSError as e:
            logger.warning(f"Cache write error for {name}: {e}")

    @api_retry()
    def _download(self, name: str) -> Any:
        url = f"{self.base_url}/{name}.json"
        self.total_requests += 1
        logger.info(f"Downloading {url}")
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def get(self, name: str, download: bool = False) -> Any:
        """
        Return the named data file, downloading it when not cached.

        Raises:
            UpstreamError: the file could not be fetched
        """
        if not download:
            cached = self._read_cache(name)
            if cached is not None:
                return cached
        try:
            data = self._download(name)
        except MaxRetriesExceeded as e:
            raise UpstreamError(f"Could not fetch {name}: {e.last_exception}") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise UpstreamError(f"Could not fetch {name}: {e}") from e
        self._write_cache(name, data)
        return data

    # =========================================
    # NAMED DATA FILES
    # =========================================

    def items(self, download: bool = False) -> Dict[str, Dict[str, Any]]:
        return self.get('items', download)

    def credits(self, download: bool = False) -> Dict[str, int]:
        """Handbook base value per item id."""
        return self.get('credits', download)

    def globals(self, download: bool = False) -> Dict[str, Any]:
        return self.get('globals', download)

    def traders(self, download: bool = False) -> Dict[str, Dict[str, Any]]:
        return self.get('traders', download)

    def trader_assorts(self, trader_id: str, download: bool = False) -> Dict[str, Any]:
        return self.get(f'assorts/{trader_id}', download)

    def quests(self, download: bool = False) -> Dict[str, Dict[str, Any]]:
        return self.get('quests', download)

    def locale(self, lang: str = 'en', download: bool = False) -> Dict[str, Any]:
        return self.get(f'locale_{lang}', download)

    def locales(self, languages: Optional[List[str]] = None, download: bool = False) -> Dict[str, Dict[str, Any]]:
        """All locale tables keyed by language code; ``en`` is always present."""
        if languages is None:
            languages = self.get('languages', download)
        codes = ['en'] + [code for code in languages if code != 'en']
        return {code: self.locale(code, download) for code in codes}
