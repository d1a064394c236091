"""
update-trader-assorts: what each trader currently stocks.

The output is keyed by trader id rather than by a single payload field, so
consumers read it with ``raw_output``.
"""

from typing import Any, Dict, List

from tarkov_data_manager.exceptions import UpstreamError
from tarkov_data_manager.jobs.base import Job


def assort_entries(assort: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Top level offers of one trader assort file."""
    entries = []
    for item in assort.get('items', []):
        if item.get('parentId') != 'hideout':
            continue
        upd = item.get('upd', {})
        entries.append({
            'id': item['_id'],
            'item': item['_tpl'],
            'stock': upd.get('StackObjectsCount', 0),
            'unlimited': bool(upd.get('UnlimitedCount', False)),
            'buyLimit': upd.get('BuyRestrictionMax', 0),
            'minLevel': assort.get('loyal_level_items', {}).get(item['_id'], 1),
        })
    return entries


class UpdateTraderAssortsJob(Job):
    name = 'update-trader-assorts'
    kv_name = 'trader_assorts'
    write_folder = 'cache'

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        tarkov_data = self.context.tarkov_data
        traders = await self.job_output('update-traders')

        assorts: Dict[str, List[Dict[str, Any]]] = {}
        for trader in traders:
            try:
                assort = await self.blocking(tarkov_data.trader_assorts, trader['id'])
            except UpstreamError as e:
                self.logger.warn(f"Could not get assort for {trader['name']}: {e}")
                assorts[trader['id']] = []
                continue
            assorts[trader['id']] = assort_entries(assort)
            self.logger.log(f"{trader['name']}: {len(assorts[trader['id']])} offers")
        return assorts
