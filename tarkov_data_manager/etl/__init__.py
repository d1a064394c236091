"""
Transformations from raw game data and stored observations into job outputs.
"""

from tarkov_data_manager.etl.categories import CategoryNode, CategoryResolver, load_category_map
from tarkov_data_manager.etl.historical_prices import (
    PriceBucket,
    PriceSample,
    aggregate_price_history,
    bucket_samples,
    to_kv_entries,
)
from tarkov_data_manager.etl.normalize import normalize_name
from tarkov_data_manager.etl.presets import (
    ContainedItem,
    Preset,
    PresetBuilder,
    build_contained_items,
    label_default_presets,
    resolve_defaults,
)
from tarkov_data_manager.etl.preset_stats import PresetStats, PresetStatsCalculator
from tarkov_data_manager.etl.translations import get_translations

__all__ = [
    'CategoryNode',
    'CategoryResolver',
    'load_category_map',
    'PriceBucket',
    'PriceSample',
    'aggregate_price_history',
    'bucket_samples',
    'to_kv_entries',
    'normalize_name',
    'ContainedItem',
    'Preset',
    'PresetBuilder',
    'build_contained_items',
    'label_default_presets',
    'resolve_defaults',
    'PresetStats',
    'PresetStatsCalculator',
    'get_translations',
]
