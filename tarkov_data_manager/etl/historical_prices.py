"""
Historical price aggregation.

Raw flea observations are grouped per item and per observation timestamp;
each group collapses to one point whose price is the floor of the mean.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from tarkov_data_manager.etl.constants import HISTORICAL_PRICE_WINDOW_DAYS

WINDOW = timedelta(days=HISTORICAL_PRICE_WINDOW_DAYS)

KV_KEY_PREFIX = 'historical-prices-'


@dataclass(frozen=True)
class PriceSample:
    item_id: str
    price: int
    timestamp: int  # epoch milliseconds


@dataclass
class PriceBucket:
    item_id: str
    timestamp: int
    sum: int = 0
    count: int = 0

    def add(self, price: int):
        self.sum += price
        self.count += 1

    @property
    def average(self) -> int:
        return self.sum // self.count


def window_start(now: datetime) -> datetime:
    return now - WINDOW


def to_epoch_ms(value: Union[datetime, int, float]) -> int:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return int(value)


def samples_from_rows(rows: Iterable[Dict[str, Any]]) -> List[PriceSample]:
    """Convert ``price_data`` rows into samples."""
    return [
        PriceSample(
            item_id=row['item_id'],
            price=int(row['price']),
            timestamp=to_epoch_ms(row['timestamp']),
        )
        for row in rows
    ]


def bucket_samples(samples: Iterable[PriceSample]) -> List[PriceBucket]:
    """
    Group samples by (item, timestamp).

    Returns:
        Buckets ordered by item id, then ascending timestamp
    """
    df = pd.DataFrame(
        [(s.item_id, s.price, s.timestamp) for s in samples],
        columns=['item_id', 'price', 'timestamp'],
    )
    if df.empty:
        return []

    df['price'] = df['price'].astype('int64')
    grouped = (
        df.groupby(['item_id', 'timestamp'], sort=True)['price']
        .agg(total='sum', samples='count')
        .reset_index()
    )
    return [
        PriceBucket(
            item_id=row.item_id,
            timestamp=int(row.timestamp),
            sum=int(row.total),
            count=int(row.samples),
        )
        for row in grouped.itertuples(index=False)
    ]


def aggregate_price_history(samples: Iterable[PriceSample]) -> Dict[str, List[Dict[str, int]]]:
    """
    Per-item price series with one point per observation timestamp.

    Example:
        samples (A,100,t1), (A,200,t1), (A,300,t2)
        -> {"A": [{"price": 150, "timestamp": t1}, {"price": 300, "timestamp": t2}]}
    """
    history: Dict[str, List[Dict[str, int]]] = {}
    for bucket in bucket_samples(samples):
        history.setdefault(bucket.item_id, []).append({
            'price': bucket.average,
            'timestamp': bucket.timestamp,
        })
    return history


def to_kv_entries(history: Dict[str, List[Dict[str, int]]]) -> List[Dict[str, str]]:
    """One bulk KV entry per item."""
    return [
        {'key': f'{KV_KEY_PREFIX}{item_id}', 'value': json.dumps(series)}
        for item_id, series in history.items()
    ]
