"""
update-item-cache: the full item dataset served to API clients.

Combines stored items and prices with game templates, presets, curated
categories and trader buy rates, and publishes the result as ITEM_CACHE_V3.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from tarkov_data_manager.etl.categories import CategoryResolver, load_category_map
from tarkov_data_manager.etl.constants import CURRENCY_ISO_ID, TRADER_NAME_ID
from tarkov_data_manager.jobs.base import Job

# Template property -> item field
MAPPING_PROPERTIES = {
    'BlocksEarpiece': 'blocksHeadphones',
    'MaxDurability': 'maxDurability',
    'armorClass': 'armorClass',
    'Accuracy': 'accuracyModifier',
    'Recoil': 'recoilModifier',
    'Ergonomics': 'ergonomicsModifier',
    'Weight': 'weight',
    'Width': 'width',
    'Height': 'height',
    'StackMaxSize': 'stackMaxSize',
    'Tracer': 'tracer',
    'TracerColor': 'tracerColor',
    'ammoType': 'ammoType',
    'ProjectileCount': 'projectileCount',
    'Damage': 'damage',
    'ArmorDamage': 'armorDamage',
    'FragmentationChance': 'fragmentationChance',
    'RicochetChance': 'ricochetChance',
    'PenetrationChance': 'penetrationChance',
    'PenetrationPower': 'penetrationPower',
    'ammoAccr': 'accuracy',
    'ammoRec': 'recoil',
    'InitialSpeed': 'initialSpeed',
    'Velocity': 'velocity',
    'Loudness': 'loudness',
}

FALLBACK_IMAGES = {
    'imageLink': 'https://assets.tarkov.dev/unknown-item-image.jpg',
    'iconLink': 'https://assets.tarkov.dev/unknown-item-icon.jpg',
    'gridImageLink': 'https://assets.tarkov.dev/unknown-item-grid-image.jpg',
}

USD_TRADERS = ('Peacekeeper',)


def camel_case(value: str) -> str:
    return re.sub(r'-(.)', lambda match: match.group(1).upper(), value.lower())


def change_last_48h(avg24h_price: float, price_yesterday: Optional[float]) -> float:
    """Percent change of the 24h average against the day before."""
    if not price_yesterday or not avg24h_price:
        return 0
    return round((avg24h_price / price_yesterday - 1) * 100, 2)


def grid_size(template: Dict[str, Any]) -> int:
    return sum(
        grid['_props']['cellsH'] * grid['_props']['cellsV']
        for grid in template.get('_props', {}).get('Grids', [])
    )


def flea_market_data(game_globals: Dict[str, Any]) -> Dict[str, Any]:
    """Flea market settings with consecutive equal offer tiers merged."""
    rag_fair = game_globals['config']['RagFair']
    flea = {
        'name': 'Flea Market',
        'minPlayerLevel': rag_fair['minUserLevel'],
        'enabled': rag_fair['enabled'],
        'sellOfferFeeRate': rag_fair['communityItemTax'] / 100,
        'sellRequirementFeeRate': rag_fair['communityRequirementTax'] / 100,
        'reputationLevels': [],
    }
    levels = flea['reputationLevels']
    for offer_count in rag_fair.get('maxActiveOfferCount', []):
        if levels and levels[-1]['offers'] == offer_count['count']:
            levels[-1]['maxRep'] = offer_count['to']
            continue
        levels.append({
            'offers': offer_count['count'],
            'minRep': offer_count['from'],
            'maxRep': offer_count['to'],
        })
    return flea


def currency_rates(credits: Dict[str, int]) -> Dict[str, float]:
    """Roubles per unit of each trader currency."""
    return {
        'RUB': 1,
        'USD': credits.get(CURRENCY_ISO_ID['USD'], 1),
        'EUR': credits.get(CURRENCY_ISO_ID['EUR'], 1),
    }


def trader_multiplier(traders: Dict[str, Dict[str, Any]], trader_id: str) -> Optional[float]:
    trader = traders.get(trader_id)
    if not trader:
        return None
    coef = float(trader['loyaltyLevels'][0]['buy_price_coef'])
    return (100 - coef) / 100


def trader_prices(
    record: Dict[str, Any],
    sell_to: List[Dict[str, str]],
    traders: Dict[str, Dict[str, Any]],
    currencies: Dict[str, float],
    job_logger=None,
) -> List[Dict[str, Any]]:
    """
    What each trader in ``sell_to`` pays for the item.

    Traders missing from ``traders`` are skipped with a warning.
    """
    prices = []
    base_price = record.get('basePrice') or 0
    for trader in sell_to:
        multiplier = trader_multiplier(traders, trader['id'])
        if multiplier is None:
            if job_logger:
                job_logger.warn(f"Trader {trader['name']} {trader['id']} not found in traders data")
            continue
        currency = 'USD' if trader['name'] in USD_TRADERS else 'RUB'
        prices.append({
            'name': trader['name'],
            'price': round(multiplier * base_price / currencies[currency]),
            'currency': currency,
            'currencyItem': CURRENCY_ISO_ID[currency],
            'priceRUB': int(multiplier * base_price),
            'trader': TRADER_NAME_ID.get(trader['name'], trader['id']),
        })
    return prices


class UpdateItemCacheJob(Job):
    name = 'update-item-cache'
    kv_name = 'item_data'
    kv_key = 'ITEM_CACHE_V3'
    write_folder = 'dumps'
    publish_kv = True

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        tarkov_data = self.context.tarkov_data
        store = self.context.store
        now = datetime.now(timezone.utc)

        bsg_items = await self.blocking(tarkov_data.items)
        credits = await self.blocking(tarkov_data.credits)
        locales = await self.blocking(tarkov_data.locales)
        traders = await self.blocking(tarkov_data.traders)
        game_globals = await self.blocking(tarkov_data.globals)
        presets = await self.job_output('update-presets')
        category_map = load_category_map()

        items = await self.blocking(store.get_items)
        self.logger.time('price-yesterday-query')
        price_yesterday = await self.blocking(store.avg_price_yesterday, now)
        self.logger.time_end('price-yesterday-query')
        self.logger.time('last-low-price-query')
        last_prices = await self.blocking(store.last_known_prices)
        self.logger.time_end('last-low-price-query')
        contained = await self.blocking(store.item_children)

        currencies = currency_rates(credits)
        resolver = CategoryResolver(bsg_items, locales, category_map['categories'])

        item_data = {}
        for item_id, item in items.items():
            if 'disabled' in item['types']:
                continue
            record = dict(item)

            if 'no-flea' not in record['types']:
                record['changeLast48hPercent'] = change_last_48h(record['avg24hPrice'], price_yesterday.get(item_id))
                record['changeLast48h'] = record['changeLast48hPercent']
                if not record.get('lastLowPrice') and item_id in last_prices:
                    record['updated'] = last_prices[item_id]['timestamp']
                    record['lastLowPrice'] = last_prices[item_id]['price']

            record['containsItems'] = contained.get(item_id, [])
            record['discardLimit'] = -1

            template = bsg_items.get(item_id)
            preset = presets.get(item_id)
            if template:
                self.add_properties(record, template)
                record['basePrice'] = credits.get(item_id, record.get('basePrice'))
                record['bsgCategoryId'] = template.get('_parent')
                record['discardLimit'] = template.get('_props', {}).get('DiscardLimit', -1)
            elif preset:
                record['width'] = preset['width']
                record['height'] = preset['height']
                record['weight'] = preset['weight']
                record['basePrice'] = preset['baseValue']
                record['bsgCategoryId'] = preset['bsgCategoryId']
            else:
                self.logger.warn(f"No category found for {record['name']} ({item_id})")
                record['bsgCategoryId'] = None

            sell_category = None
            if record['bsgCategoryId']:
                resolver.add_category(record['bsgCategoryId'])
                sell_category = resolver.get_item_category(record['bsgCategoryId'])

            record['types'] = [camel_case(item_type) for item_type in record['types']]
            record['link'] = f"https://tarkov.dev/item/{record['normalizedName']}"
            for field, fallback in FALLBACK_IMAGES.items():
                record[f'{field}Fallback'] = record.get(field) or fallback
                record[field] = record[f'{field}Fallback']

            record['locale'] = self.item_locale(item_id, locales, preset)

            record['traderPrices'] = []
            if sell_category:
                record['traderPrices'].extend(
                    trader_prices(
                        record,
                        category_map['categories'][sell_category]['traders'],
                        traders,
                        currencies,
                        self.logger,
                    )
                )
            else:
                self.logger.warn(f"No category for trader prices mapped for {record['name']} ({item_id})")
            special = category_map['items'].get(item_id)
            if special:
                record['traderPrices'].extend(
                    trader_prices(record, special['traders'], traders, currencies, self.logger)
                )

            item_data[item_id] = record

        self.logger.log(f"Processed {len(item_data)} items")
        return {
            'data': item_data,
            'categories': {category['id']: category for category in resolver.to_list()},
            'flea': flea_market_data(game_globals),
        }

    def add_properties(self, record: Dict[str, Any], template: Dict[str, Any]):
        if 'preset' in record['types']:
            return
        props = template.get('_props', {})
        for property_key, field in MAPPING_PROPERTIES.items():
            value = props.get(property_key)
            if value is None or value == '':
                continue
            record[field] = value
        if grid_size(template) > 0:
            record['hasGrid'] = True

    def item_locale(self, item_id: str, locales: Dict[str, Any], preset: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        locale = {}
        for code, lang in locales.items():
            template = lang.get('templates', {}).get(item_id)
            if template:
                locale[code] = {'name': template.get('Name'), 'shortName': template.get('ShortName')}
            elif preset and code in preset.get('locale', {}):
                locale[code] = preset['locale'][code]
        return locale
