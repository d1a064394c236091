from .tarkov_data import TarkovDataClient
from .kv_store import KVStoreClient

__all__ = ['TarkovDataClient', 'KVStoreClient']
