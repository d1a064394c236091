"""
update-historical-prices: one week of flea price history per item.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from tarkov_data_manager.etl.historical_prices import (
    aggregate_price_history,
    samples_from_rows,
    to_kv_entries,
    window_start,
)
from tarkov_data_manager.jobs.base import Job

# KV bulk writes accept at most this many pairs per request
KV_BULK_LIMIT = 10000


class UpdateHistoricalPricesJob(Job):
    name = 'update-historical-prices'
    kv_name = 'historical_prices'
    write_folder = 'dumps'

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        since = window_start(datetime.now(timezone.utc))

        self.logger.time('historical-prices-query')
        rows = await self.blocking(self.context.store.price_samples_since, since)
        self.logger.time_end('historical-prices-query')

        history = aggregate_price_history(samples_from_rows(rows))
        self.logger.log(f"Aggregated {len(rows)} samples into {len(history)} item histories")

        kv = self.context.kv
        if kv.enabled:
            entries = to_kv_entries(history)
            for offset in range(0, len(entries), KV_BULK_LIMIT):
                await self.blocking(kv.put_bulk, entries[offset:offset + KV_BULK_LIMIT])
            self.logger.success(f"Uploaded {len(entries)} historical price series")

        return {'historicalPricePoint': history}
