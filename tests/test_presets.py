"""
Preset Aggregation Tests

Covers contained items, derived stats, naming and default preset
selection.
"""

from unittest.mock import MagicMock

import pytest

from tarkov_data_manager.etl.presets import (
    ContainedItem,
    Preset,
    PresetBuilder,
    build_contained_items,
    label_default_presets,
    load_manual_presets,
    resolve_defaults,
)
from tarkov_data_manager.etl.translations import get_translations


@pytest.fixture
def credits():
    """Provides handbook values for the sample items."""
    return {'ak': 1000, 'stock': 100, 'mag': 50}


@pytest.fixture
def builder(bsg_items, credits, locales):
    """Provides a preset builder over the sample templates."""
    return PresetBuilder(bsg_items, credits, locales, job_logger=MagicMock())


def full_preset(preset_id='preset_full', encyclopedia='ak'):
    return {
        '_id': preset_id,
        '_encyclopedia': encyclopedia,
        '_items': [
            {'_id': 'p1', '_tpl': 'ak'},
            {'_id': 'p2', '_tpl': 'stock', 'parentId': 'p1'},
            {'_id': 'p3', '_tpl': 'mag', 'parentId': 'p1', 'upd': {'StackObjectsCount': 2}},
        ],
    }


class TestContainedItems:
    """Collapsing preset parts."""

    def test_repeated_parts_are_counted(self):
        parts = [{'_tpl': 'root'}, {'_tpl': 'comp1'}, {'_tpl': 'comp2'}, {'_tpl': 'comp1'}]

        contained = build_contained_items(parts)

        assert [(item.item_id, item.count) for item in contained] == [
            ('root', 1), ('comp1', 2), ('comp2', 1),
        ]

    def test_root_counts_once(self):
        parts = [{'_tpl': 'root', 'upd': {'StackObjectsCount': 5}}]

        assert build_contained_items(parts)[0].count == 1

    def test_names(self):
        contained = build_contained_items([{'_tpl': 'a'}], names=lambda item_id: item_id.upper())

        assert contained[0].to_dict() == {'item': {'id': 'a', 'name': 'A'}, 'count': 1}


class TestPresetStats:
    """Stats derived from the attached parts."""

    def test_full_preset(self, builder):
        preset = builder.from_game_preset(full_preset())

        assert preset.weight == 4.0
        assert preset.base_value == 1200
        assert preset.ergonomics == 48
        assert preset.vertical_recoil == 80
        assert preset.horizontal_recoil == 240
        assert preset.moa == 3.09
        assert (preset.width, preset.height) == (5, 1)

    def test_base_only(self, builder):
        preset = builder.from_game_preset({'_id': 'bare', '_items': [{'_tpl': 'ak'}]})

        assert preset.weight == 3.0
        assert preset.vertical_recoil == 100
        assert preset.moa == 3.44
        assert preset.width == 4

    def test_unknown_part_falls_back_to_base(self, builder):
        definition = {'_id': 'odd', '_items': [{'_tpl': 'ak'}, {'_tpl': 'unknown'}]}

        preset = builder.from_game_preset(definition)

        assert preset.weight == 3.0
        assert preset.base_value == 1000
        assert preset.moa is None

    def test_unknown_base_is_skipped(self, builder):
        assert builder.from_game_preset({'_id': 'x', '_items': [{'_tpl': 'nope'}]}) is None
        builder.logger.warn.assert_called_once()


class TestPresetNames:
    """Localized preset names."""

    def test_names_follow_base_item(self, builder):
        preset = builder.from_game_preset(full_preset())

        assert preset.name == 'AK-74N'
        assert preset.locale['ru'] == {'name': 'АК-74Н', 'shortName': 'АК-74Н'}
        assert preset.default is True
        assert preset.bsg_category_id == 'rifle'
        assert preset.background_color == 'black'

    def test_changed_weapon_name(self, builder):
        definition = {'_id': 'preset_short', '_changeWeaponName': True, '_items': [{'_tpl': 'ak'}]}

        preset = builder.from_game_preset(definition)

        assert preset.name == 'AK-74N Short'
        assert preset.locale['ru']['name'] == 'АК-74Н Короткий'
        assert preset.normalized_name == 'ak-74n-short'

    def test_changed_weapon_name_without_qualifier(self, builder):
        definition = {'_id': 'preset_unnamed', '_changeWeaponName': True, '_items': [{'_tpl': 'ak'}]}

        preset = builder.from_game_preset(definition)

        assert preset.name == 'AK-74N'
        assert preset.short_name == 'AK-74N'
        assert preset.locale['ru'] == {'name': 'АК-74Н', 'shortName': 'АК-74Н'}

    def test_manual_preset_with_text_suffix(self, builder):
        preset = builder.from_manual({
            'id': 'manual1',
            'baseId': 'ak',
            'appendName': 'Sawed-off',
            'containsItems': [{'item': {'id': 'ak'}, 'count': 1}, {'item': {'id': 'stock'}, 'count': 1}],
        })

        assert preset.name == 'AK-74N Sawed-off'
        assert preset.weight == 3.5
        assert [item.name for item in preset.contains_items] == ['AK-74N', 'AK stock']

    def test_manual_preset_with_locale_suffix(self, builder):
        preset = builder.from_manual({
            'id': 'manual2',
            'baseId': 'ak',
            'appendName': ['interface', 'Default'],
            'containsItems': [{'item': {'id': 'ak'}, 'count': 1}],
        })

        assert preset.locale['en']['name'] == 'AK-74N Default'
        assert preset.locale['ru']['name'] == 'АК-74Н Стандарт'

    def test_default_label(self, builder, locales):
        presets = {'preset_full': builder.from_game_preset(full_preset())}

        label_default_presets(presets, locales)

        assert presets['preset_full'].name == 'AK-74N Default'
        assert presets['preset_full'].locale['ru']['name'] == 'АК-74Н Стандарт'
        assert presets['preset_full'].short_name == 'AK-74N Default'
        assert presets['preset_full'].locale['ru']['shortName'] == 'АК-74Н Стандарт'
        assert presets['preset_full'].normalized_name == 'ak-74n-default'

    def test_manual_preset_without_base_item(self, builder):
        preset = builder.from_manual({
            'id': 'manual3',
            'baseId': 'ak',
            'containsItems': [{'item': {'id': 'stock'}, 'count': 1}],
        })

        assert [(item.item_id, item.count) for item in preset.contains_items] == [('ak', 1), ('stock', 1)]
        assert preset.contains_items[0].name == 'AK-74N'

    def test_manual_preset_base_count_is_at_least_one(self, builder):
        preset = builder.from_manual({
            'id': 'manual4',
            'baseId': 'ak',
            'containsItems': [{'item': {'id': 'ak'}, 'count': 0}],
        })

        assert preset.contains_items[0].count == 1

    def test_bundled_manual_presets(self):
        manual = load_manual_presets()

        assert all({'id', 'baseId', 'containsItems'} <= set(entry) for entry in manual)


class TestTranslations:
    """Locale fallbacks."""

    def test_falls_back_to_english(self, locales):
        translations = get_translations({'name': ('templates', 'mag', 'Name')}, locales)

        assert translations['ru'] == {'name': 'AK magazine'}

    def test_missing_everywhere_is_left_out(self, locales):
        job_logger = MagicMock()

        translations = get_translations({'name': ('templates', 'nope', 'Name')}, locales, job_logger)

        assert translations == {'en': {}, 'ru': {}}
        assert job_logger.warning.call_count == 2


class TestDefaults:
    """Default preset selection."""

    def test_later_default_is_demoted(self, builder):
        presets = builder.build_all({
            'first': full_preset('first'),
            'second': full_preset('second'),
        })

        assert presets['first'].default is True
        assert presets['second'].default is False
        builder.logger.warn.assert_called_once()

    def test_ignored_presets(self, builder):
        presets = builder.build_all({'first': full_preset('first')}, ignore=('first',))

        assert presets == {}

    def test_single_preset_is_promoted(self):
        preset = Preset(id='p', name='AK', short_name='AK', base_id='ak')
        items = {'ak': {'name': 'AK', 'types': ['gun']}}

        findings = resolve_defaults({'p': preset}, items, {})

        assert preset.default is True
        assert findings == []

    def test_missing_default_is_reported(self, bsg_items):
        items = {'ak': {'name': 'AK-74N', 'types': ['gun']}}

        findings = resolve_defaults({}, items, bsg_items)

        assert findings == ['AK-74N ak is missing a default preset']

    def test_ambiguous_default_is_reported(self, bsg_items):
        presets = {
            'p1': Preset(id='p1', name='A', short_name='A', base_id='ak'),
            'p2': Preset(id='p2', name='B', short_name='B', base_id='ak'),
        }
        items = {'ak': {'name': 'AK-74N', 'types': ['gun']}}

        findings = resolve_defaults(presets, items, bsg_items)

        assert findings == ['AK-74N ak has 2 presets but none is default']
        assert not any(preset.default for preset in presets.values())

    def test_disabled_guns_are_ignored(self, bsg_items):
        items = {'ak': {'name': 'AK-74N', 'types': ['gun', 'disabled']}}

        assert resolve_defaults({}, items, bsg_items) == []

    def test_contained_item_dict(self):
        assert ContainedItem('a', 2, 'A').to_dict() == {'item': {'id': 'a', 'name': 'A'}, 'count': 2}
