"""
update-traders: trader list with loyalty levels and localized names.
"""

from typing import Any, Dict, List

from tarkov_data_manager.etl.normalize import normalize_name
from tarkov_data_manager.etl.translations import get_translations
from tarkov_data_manager.jobs.base import Job

IGNORE_TRADERS = (
    'ragfair',
)


class UpdateTradersJob(Job):
    name = 'update-traders'
    kv_name = 'traders'
    write_folder = 'cache'

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        tarkov_data = self.context.tarkov_data
        traders_raw = await self.blocking(tarkov_data.traders)
        locales = await self.blocking(tarkov_data.locales)

        traders: List[Dict[str, Any]] = []
        for trader_id, trader in traders_raw.items():
            if trader_id in IGNORE_TRADERS:
                continue
            nickname = trader.get('nickname', trader_id)
            locale = get_translations(
                {
                    'name': ('trading', trader_id, 'Nickname'),
                    'description': ('trading', trader_id, 'Description'),
                },
                locales,
                self.logger,
            )
            name = locale.get('en', {}).get('name', nickname)
            traders.append({
                'id': trader_id,
                'name': name,
                'normalizedName': normalize_name(name),
                'currency': trader.get('currency', 'RUB'),
                'levels': [
                    {
                        'level': index + 1,
                        'requiredPlayerLevel': level.get('minLevel', 0),
                        'requiredReputation': level.get('minStanding', 0),
                        'requiredCommerce': level.get('minSalesSum', 0),
                        'payRate': (100 - float(level.get('buy_price_coef', 0))) / 100,
                    }
                    for index, level in enumerate(trader.get('loyaltyLevels', []))
                ],
                'locale': locale,
            })
        self.logger.log(f"Processed {len(traders)} traders")
        return {'Trader': traders}
