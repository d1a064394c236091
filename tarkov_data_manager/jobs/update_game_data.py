"""
update-game-data: stores template properties of every game item.
"""

import json
from typing import Any, Dict

from tarkov_data_manager.etl.categories import CategoryResolver, load_category_map
from tarkov_data_manager.etl.normalize import normalize_name
from tarkov_data_manager.jobs.base import Job

STORED_PROPERTIES = (
    'BlindnessProtection',
    'MaxDurability',
    'armorClass',
    'speedPenaltyPercent',
    'mousePenalty',
    'weaponErgonomicPenalty',
    'armorZone',
    'ArmorMaterial',
    'headSegments',
    'BlocksEarpiece',
    'DeafStrength',
    'RicochetParams',
    'Accuracy',
    'Recoil',
    'Ergonomics',
    'Weight',
)

UPDATE_COLUMNS = ['normalized_name', 'base_price', 'width', 'height', 'properties']


def grid_data(template: Dict[str, Any]):
    grids = template.get('_props', {}).get('Grids')
    if not grids:
        return False
    pockets = [
        {'height': grid['_props']['cellsH'], 'width': grid['_props']['cellsV']}
        for grid in grids
    ]
    return {
        'pockets': pockets,
        'totalSize': sum(pocket['height'] * pocket['width'] for pocket in pockets),
    }


class UpdateGameDataJob(Job):
    name = 'update-game-data'
    kv_name = 'game_data'
    write_folder = 'dumps'

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        tarkov_data = self.context.tarkov_data
        bsg_items = await self.blocking(tarkov_data.items)
        credits = await self.blocking(tarkov_data.credits)
        locales = await self.blocking(tarkov_data.locales)
        resolver = CategoryResolver(bsg_items, locales, load_category_map()['categories'])

        properties: Dict[str, Dict[str, Any]] = {}
        records = []
        for item_id, template in bsg_items.items():
            if template.get('_type') != 'Item':
                continue
            props = template.get('_props', {})
            extra = {key: props[key] for key in STORED_PROPERTIES if props.get(key)}
            extra['grid'] = grid_data(template)
            extra['bsgCategoryId'] = resolver.get_item_category(template.get('_parent')) or template.get('_parent')
            properties[item_id] = extra

            name = locales.get('en', {}).get('templates', {}).get(item_id, {}).get('Name') or props.get('Name', item_id)
            records.append({
                'id': item_id,
                'normalized_name': normalize_name(name),
                'base_price': credits.get(item_id, props.get('CreditsPrice', 0)),
                'width': props.get('Width', 1),
                'height': props.get('Height', 1),
                'properties': json.dumps(extra),
            })

        self.logger.time('item-upsert')
        await self.blocking(self.context.store.upsert_items, records, UPDATE_COLUMNS)
        self.logger.time_end('item-upsert')
        self.logger.success(f"Updated {len(records)} items")
        return {'items': properties}
