"""
Historical Price Aggregation Tests
"""

import json
from datetime import datetime, timedelta, timezone

from tarkov_data_manager.etl.historical_prices import (
    PriceSample,
    aggregate_price_history,
    bucket_samples,
    samples_from_rows,
    to_kv_entries,
    window_start,
)


T1 = 1714564800000
T2 = T1 + 3600000


class TestAggregatePriceHistory:
    """One point per item and observation timestamp."""

    def test_same_timestamp_is_averaged(self):
        samples = [
            PriceSample('A', 100, T1),
            PriceSample('A', 200, T1),
            PriceSample('A', 300, T2),
        ]

        assert aggregate_price_history(samples) == {
            'A': [
                {'price': 150, 'timestamp': T1},
                {'price': 300, 'timestamp': T2},
            ],
        }

    def test_average_is_floored(self):
        samples = [PriceSample('A', 100, T1), PriceSample('A', 101, T1)]

        assert aggregate_price_history(samples)['A'][0]['price'] == 100

    def test_series_are_sorted_by_timestamp(self):
        samples = [
            PriceSample('B', 10, T2),
            PriceSample('A', 5, T2),
            PriceSample('B', 20, T1),
        ]

        history = aggregate_price_history(samples)

        assert [point['timestamp'] for point in history['B']] == [T1, T2]
        assert history['A'] == [{'price': 5, 'timestamp': T2}]

    def test_empty(self):
        assert aggregate_price_history([]) == {}
        assert bucket_samples([]) == []

    def test_buckets_keep_sum_and_count(self):
        buckets = bucket_samples([PriceSample('A', 100, T1), PriceSample('A', 200, T1)])

        assert len(buckets) == 1
        assert (buckets[0].sum, buckets[0].count, buckets[0].average) == (300, 2, 150)


class TestRows:
    """Database rows and KV entries."""

    def test_samples_from_rows(self):
        rows = [{'item_id': 'A', 'price': 99.0, 'timestamp': datetime(2024, 5, 1, 12, tzinfo=timezone.utc)}]

        assert samples_from_rows(rows) == [PriceSample('A', 99, T1)]

    def test_naive_timestamps_are_utc(self):
        rows = [{'item_id': 'A', 'price': 1, 'timestamp': datetime(2024, 5, 1, 12)}]

        assert samples_from_rows(rows)[0].timestamp == T1

    def test_window_is_one_week(self):
        now = datetime(2024, 5, 8, tzinfo=timezone.utc)

        assert now - window_start(now) == timedelta(days=7)

    def test_kv_entries(self):
        history = {'A': [{'price': 150, 'timestamp': T1}]}

        entries = to_kv_entries(history)

        assert entries == [{'key': 'historical-prices-A', 'value': json.dumps(history['A'])}]
