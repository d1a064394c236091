"""
Relational store queries used by the jobs.

Every statement is parameterized; the jobs never build SQL from values.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Any, Optional

from tarkov_data_manager.database.batch_loader import BatchLoader
from tarkov_data_manager.database.connection import get_db

logger = logging.getLogger(__name__)


class ItemStore:
    """Reads and writes item, price and trader offer rows."""

    def __init__(self, db=None):
        self.db = db or get_db()
        self.batch_loader = BatchLoader(db=self.db)

    # =========================================
    # ITEMS
    # =========================================

    def get_items(self) -> Dict[str, Dict[str, Any]]:
        """
        All known items keyed by id, with their types as a list.
        """
        rows = self.db.fetch_all(
            """
            SELECT
                id, name, short_name, normalized_name, base_price,
                width, height, wiki_link, icon_link, grid_image_link,
                image_link, avg24h_price, low_price, properties
            FROM item_data
            """
        )
        type_rows = self.db.fetch_all("SELECT item_id, type FROM types")

        types: Dict[str, List[str]] = {}
        for row in type_rows:
            types.setdefault(row['item_id'], []).append(row['type'])

        items = {}
        for row in rows:
            properties = row.get('properties') or {}
            if isinstance(properties, str):
                properties = json.loads(properties)
            items[row['id']] = {
                'id': row['id'],
                'name': row['name'],
                'shortName': row['short_name'],
                'normalizedName': row['normalized_name'],
                'basePrice': row['base_price'],
                'width': row['width'],
                'height': row['height'],
                'wikiLink': row['wiki_link'],
                'iconLink': row['icon_link'],
                'gridImageLink': row['grid_image_link'],
                'imageLink': row['image_link'],
                'avg24hPrice': row['avg24h_price'] or 0,
                'lastLowPrice': row['low_price'],
                'properties': properties,
                'types': types.get(row['id'], []),
            }
        return items

    def item_children(self) -> Dict[str, List[Dict[str, Any]]]:
        """Contained items per container item id."""
        rows = self.db.fetch_all("SELECT container_item_id, child_item_id, count FROM item_children")
        children: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            children.setdefault(row['container_item_id'], []).append({
                'item': row['child_item_id'],
                'count': row['count'],
                'attributes': [],
            })
        return children

    def upsert_items(self, records: List[Dict[str, Any]], update_columns: Optional[List[str]] = None) -> int:
        return self.batch_loader.batch_upsert('item_data', records, ['id'], update_columns)

    def add_item_types(self, item_ids: List[str], item_type: str) -> int:
        records = [{'item_id': item_id, 'type': item_type} for item_id in item_ids]
        return self.batch_loader.batch_upsert('types', records, ['item_id', 'type'], update_columns=[])

    # =========================================
    # PRICES
    # =========================================

    def price_samples_since(self, since: datetime) -> List[Dict[str, Any]]:
        """Raw flea price observations newer than ``since``, all items at once."""
        return self.db.fetch_all(
            """
            SELECT item_id, price, timestamp
            FROM price_data
            WHERE timestamp > :since
            """,
            {'since': since}
        )

    def avg_price_yesterday(self, now: datetime) -> Dict[str, float]:
        """Average price per item between 48h and 24h ago."""
        rows = self.db.fetch_all(
            """
            SELECT item_id, avg(price) AS price_yesterday
            FROM price_data
            WHERE timestamp > :start AND timestamp < :end
            GROUP BY item_id
            """,
            {'start': now - timedelta(days=2), 'end': now - timedelta(days=1)}
        )
        return {row['item_id']: float(row['price_yesterday']) for row in rows}

    def last_known_prices(self) -> Dict[str, Dict[str, Any]]:
        """Most recent observed price per item."""
        rows = self.db.fetch_all(
            """
            SELECT DISTINCT ON (item_id) item_id, price, timestamp
            FROM price_data
            ORDER BY item_id, timestamp DESC
            """
        )
        return {row['item_id']: row for row in rows}

    # =========================================
    # TRADER OFFERS
    # =========================================

    def latest_trader_scan(self) -> Optional[Dict[str, Any]]:
        return self.db.fetch_one(
            """
            SELECT *
            FROM trader_offer_scan
            WHERE ended IS NOT NULL
            ORDER BY id DESC
            LIMIT 1
            """
        )

    def trader_offers_since(self, started: datetime) -> List[Dict[str, Any]]:
        return self.db.fetch_all(
            "SELECT * FROM trader_offers WHERE last_scan >= :started",
            {'started': started}
        )
