"""
Collaborators shared by the jobs of one process.
"""

from typing import Optional

from tarkov_data_manager.database.item_store import ItemStore
from tarkov_data_manager.scrapers.kv_store import KVStoreClient
from tarkov_data_manager.scrapers.tarkov_data import TarkovDataClient
from tarkov_data_manager.utils.monitoring import AlertManager, get_alert_manager


class JobContext:
    """
    Lazily built clients handed to every job.

    Nothing connects until first use, so a context can be created in tests
    with fakes for only the collaborators a job touches.
    """

    def __init__(
        self,
        tarkov_data: Optional[TarkovDataClient] = None,
        kv: Optional[KVStoreClient] = None,
        store: Optional[ItemStore] = None,
        alert_manager: Optional[AlertManager] = None,
    ):
        self._tarkov_data = tarkov_data
        self._kv = kv
        self._store = store
        self._alert_manager = alert_manager

    @property
    def tarkov_data(self) -> TarkovDataClient:
        if self._tarkov_data is None:
            self._tarkov_data = TarkovDataClient()
        return self._tarkov_data

    @property
    def kv(self) -> KVStoreClient:
        if self._kv is None:
            self._kv = KVStoreClient()
        return self._kv

    @property
    def store(self) -> ItemStore:
        if self._store is None:
            self._store = ItemStore()
        return self._store

    @property
    def alert_manager(self) -> AlertManager:
        if self._alert_manager is None:
            self._alert_manager = get_alert_manager()
        return self._alert_manager
