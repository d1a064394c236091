"""
update-trader-prices: cash offers from the latest completed trader scan.
"""

from typing import Any, Dict, List, Optional

from tarkov_data_manager.etl.constants import CURRENCY_ISO_ID
from tarkov_data_manager.exceptions import JobError
from tarkov_data_manager.jobs.base import Job

# Offers the scanner reports that traders do not actually sell,
# by trader normalized name and loyalty level
SKIP_OFFERS = {
    'jaeger': {
        1: [
            '59e0d99486f7744a32234762',  # Bloodhounds
        ],
    },
    'mechanic': {
        1: [
            '5656eb674bdc2d35148b457c',  # Failed Setup
            '62e7e7bbe6da9612f743f1e0',  # Failed Setup
            '6357c98711fb55120211f7e1',  # Failed Setup
            '5ede475b549eed7c6d5c18fb',  # Failed Setup
        ],
        3: [
            '5b07db875acfc40dc528a5f6',  # AR-15 Tactical Dynamics Skeletonized pistol grip
        ],
    },
    'skier': {
        1: [
            '584148f2245977598f1ad387',  # MP-133
            '5efb0da7a29a85116f6ea05f',  # Hint
            '5b2388675acfc4771e1be0be',  # Cocktail Tasting
            '618ba27d9008e4636a67f61d',  # Cocktail Tasting
            '5b3b99475acfc432ff4dcbee',  # Cocktail Tasting
        ],
    },
}

# Handbook value to trader sell price for currencies without a scanned offer
CURRENCY_MULTIPLIERS = {
    'USD': 1.104271357,
    'EUR': 1.152974504,
}


def unlock_matches(item_id: str, rewards: Optional[Dict[str, Any]], trader_id: str) -> Optional[Dict[str, Any]]:
    if not rewards:
        return None
    for unlock in rewards.get('offerUnlock', []):
        if unlock.get('trader_id') != trader_id:
            continue
        if unlock.get('item') == item_id or unlock.get('base_item_id') == item_id:
            return unlock
    return None


class UpdateTraderPricesJob(Job):
    name = 'update-trader-prices'
    kv_name = 'trader_price_data'
    write_folder = 'cache'

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        store = self.context.store
        tasks = await self.job_output('update-quests')
        traders = await self.job_output('update-traders')
        trader_assorts = await self.job_output('update-trader-assorts', raw_output=True)
        items = await self.blocking(store.get_items)
        credits = await self.blocking(self.context.tarkov_data.credits)

        scan = await self.blocking(store.latest_trader_scan)
        if scan is None:
            raise JobError('No completed trader scans')
        offers = await self.blocking(store.trader_offers_since, scan['started'])

        traders_by_id = {trader['id']: trader for trader in traders}
        currency_values = self.currency_values(offers, credits)

        cash_offers: Dict[str, List[Dict[str, Any]]] = {}
        for offer in offers:
            if not offer.get('price'):
                continue
            trader = traders_by_id.get(offer['trader_id'])
            if trader is None:
                self.logger.warn(f"Unknown trader {offer['trader_id']} for offer {offer['id']}")
                continue
            if self.skip_offer(offer, trader):
                continue
            item = items.get(offer['item_id'])
            if item is None:
                self.logger.warn(f"Unknown item {offer['item_id']} for offer {offer['id']}")
                continue
            if 'disabled' in item['types']:
                self.logger.warn(f"Skipping disabled item {item['name']} {item['id']}")
                continue
            if offer['currency'] not in currency_values:
                self.logger.warn(f"Unknown currency {offer['currency']} for offer {offer['id']}")
                continue

            quest_unlock = self.quest_unlock(offer, trader, tasks, item)
            assort = next(
                (entry for entry in trader_assorts.get(trader['id'], []) if entry['id'] == offer['id']),
                None,
            )
            cash_price = {
                'id': offer['item_id'],
                'item_name': item['name'],
                'vendor': {
                    'trader': trader['id'],
                    'trader_id': trader['id'],
                    'traderLevel': offer['min_level'],
                    'minTraderLevel': offer['min_level'],
                    'taskUnlock': quest_unlock['id'] if quest_unlock else None,
                },
                'source': trader['normalizedName'],
                'price': round(offer['price']),
                'priceRUB': round(offer['price'] * currency_values[offer['currency']]),
                'updated': offer.get('updated'),
                'quest_unlock': bool(quest_unlock),
                'quest_unlock_id': quest_unlock['id'] if quest_unlock else None,
                'currency': offer['currency'],
                'currencyItem': CURRENCY_ISO_ID.get(offer['currency']),
                'requirements': [
                    {'type': 'loyaltyLevel', 'value': offer['min_level']},
                ],
                'restockAmount': assort['stock'] if assort else offer.get('restock_amount'),
                'buyLimit': offer.get('buy_limit'),
                'traderOfferId': offer['id'],
            }
            if quest_unlock:
                cash_price['requirements'].append({
                    'type': 'questCompleted',
                    'value': quest_unlock['tarkovDataId'],
                    'stringValue': quest_unlock['id'],
                })
            cash_offers.setdefault(offer['item_id'], []).append(cash_price)

        self.logger.log(f"Processed {len(offers)} trader offers")
        return {'TraderCashOffer': cash_offers}

    def currency_values(self, offers: List[Dict[str, Any]], credits: Dict[str, int]) -> Dict[str, float]:
        """Rouble value of each currency, from the scan where possible."""
        values = {'RUB': 1}
        for code, multiplier in CURRENCY_MULTIPLIERS.items():
            item_id = CURRENCY_ISO_ID[code]
            offer = next((o for o in offers if o['item_id'] == item_id), None)
            if offer:
                values[code] = offer['price']
                continue
            self.logger.warn(f"Could not find trader price for currency {code}")
            values[code] = round(credits.get(item_id, 0) * multiplier)
        return values

    def skip_offer(self, offer: Dict[str, Any], trader: Dict[str, Any]) -> bool:
        levels = SKIP_OFFERS.get(trader['normalizedName'], {})
        return offer['item_id'] in levels.get(offer['min_level'], [])

    def quest_unlock(self, offer, trader, tasks, item) -> Optional[Dict[str, Any]]:
        if not offer.get('locked'):
            return None
        for task in tasks:
            match = (
                unlock_matches(offer['item_id'], task.get('startRewards'), trader['id'])
                or unlock_matches(offer['item_id'], task.get('finishRewards'), trader['id'])
            )
            if match:
                return {
                    'id': task['id'],
                    'tarkovDataId': task.get('tarkovDataId'),
                    'level': match.get('level'),
                }
        self.logger.warn(
            f"Could not find quest unlock for trader offer {offer['id']}: "
            f"{trader['normalizedName']} {offer['min_level']} {item['name']} {offer['item_id']}"
        )
        return None
