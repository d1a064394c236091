"""
update-presets: weapon presets from game data, manual definitions and the
custom dog tag bundle.
"""

import json
from typing import Any, Dict

from tarkov_data_manager.etl.presets import (
    PresetBuilder,
    label_default_presets,
    load_manual_presets,
    resolve_defaults,
)
from tarkov_data_manager.jobs.base import Job


class UpdatePresetsJob(Job):
    name = 'update-presets'
    kv_name = 'presets'
    write_folder = 'cache'

    async def run(self, options: Dict[str, Any]) -> Dict[str, Any]:
        tarkov_data = self.context.tarkov_data
        store = self.context.store

        self.logger.time('game-data')
        bsg_items = await self.blocking(tarkov_data.items)
        credits = await self.blocking(tarkov_data.credits)
        game_globals = await self.blocking(tarkov_data.globals)
        locales = await self.blocking(tarkov_data.locales)
        self.logger.time_end('game-data')

        builder = PresetBuilder(bsg_items, credits, locales, job_logger=self.logger)
        presets = builder.build_all(
            game_globals.get('ItemPresets', {}),
            load_manual_presets(),
        )
        self.logger.log(f"Built {len(presets)} presets")

        items = await self.blocking(store.get_items)
        resolve_defaults(presets, items, bsg_items, job_logger=self.logger)
        label_default_presets(presets, locales)

        records = [
            {
                'id': preset.id,
                'name': preset.name,
                'short_name': preset.short_name,
                'normalized_name': preset.normalized_name,
                'width': preset.width,
                'height': preset.height,
                'properties': json.dumps({
                    'backgroundColor': preset.background_color,
                    'bsgCategoryId': preset.bsg_category_id,
                    'items': [item.to_dict() for item in preset.contains_items],
                }),
            }
            for preset in presets.values()
        ]
        await self.blocking(store.upsert_items, records)
        await self.blocking(store.add_item_types, list(presets), 'preset')
        no_flea = [preset.id for preset in presets.values() if 'no-flea' in preset.types]
        if no_flea:
            await self.blocking(store.add_item_types, no_flea, 'no-flea')
        self.logger.success(f"Upserted {len(records)} presets")

        return {'presets': {preset_id: preset.to_dict() for preset_id, preset in presets.items()}}
