from .connection import DatabaseConnection, get_db
from .batch_loader import BatchLoader
from .item_store import ItemStore

__all__ = ['DatabaseConnection', 'get_db', 'BatchLoader', 'ItemStore']
