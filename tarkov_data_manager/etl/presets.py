"""
Preset aggregation.

Presets come from three places: the upstream ``globals.ItemPresets`` table,
the hand-maintained ``data/manual_presets.json`` and the synthetic custom
dog tag bundle. Each preset is a base item plus its attached parts, with
names for every locale and derived stats.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from tarkov_data_manager.etl.constants import (
    BEAR_DOGTAG_ID,
    CUSTOM_DOGTAG_PRESET_ID,
    IGNORE_PRESETS,
    USEC_DOGTAG_ID,
)
from tarkov_data_manager.etl.normalize import normalize_name
from tarkov_data_manager.etl.preset_stats import PresetStatsCalculator
from tarkov_data_manager.etl.translations import get_translations, lookup, template_name

MANUAL_PRESETS_FILE = Path(__file__).resolve().parent.parent / 'data' / 'manual_presets.json'

DEFAULT_SUFFIX_PATH = ('interface', 'Default')


@dataclass
class ContainedItem:
    item_id: str
    count: int = 1
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'item': {'id': self.item_id, 'name': self.name},
            'count': self.count,
        }


@dataclass
class Preset:
    id: str
    name: str
    short_name: str
    base_id: str
    contains_items: List[ContainedItem] = field(default_factory=list)
    width: int = 1
    height: int = 1
    weight: float = 0
    base_value: int = 0
    ergonomics: float = 0
    vertical_recoil: int = 0
    horizontal_recoil: int = 0
    moa: Optional[float] = None
    background_color: str = 'default'
    bsg_category_id: Optional[str] = None
    types: List[str] = field(default_factory=lambda: ['preset'])
    default: bool = False
    locale: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'shortName': self.short_name,
            'normalized_name': self.normalized_name,
            'baseId': self.base_id,
            'width': self.width,
            'height': self.height,
            'weight': self.weight,
            'baseValue': self.base_value,
            'ergonomics': self.ergonomics,
            'verticalRecoil': self.vertical_recoil,
            'horizontalRecoil': self.horizontal_recoil,
            'moa': self.moa,
            'backgroundColor': self.background_color,
            'bsgCategoryId': self.bsg_category_id,
            'types': list(self.types),
            'default': self.default,
            'containsItems': [item.to_dict() for item in self.contains_items],
            'locale': self.locale,
        }


def build_contained_items(
    parts: Sequence[Dict[str, Any]],
    names: Optional[Callable[[str], Optional[str]]] = None,
) -> List[ContainedItem]:
    """
    Collapse upstream preset parts into contained items.

    The first part is the base item and always counts once; every other
    part adds its stack size (``upd.StackObjectsCount``, default 1) to the
    entry for its template.

    Example:
        [root, comp1, comp2, comp1] -> [root x1, comp1 x2, comp2 x1]
    """
    contained: Dict[str, ContainedItem] = {}
    for index, part in enumerate(parts):
        item_id = part['_tpl']
        count = 1
        if index > 0:
            count = part.get('upd', {}).get('StackObjectsCount', 1)
        if item_id in contained and index > 0:
            contained[item_id].count += count
            continue
        contained[item_id] = ContainedItem(
            item_id=item_id,
            count=count,
            name=names(item_id) if names else None,
        )
    return list(contained.values())


def load_manual_presets(path: Optional[Path] = None) -> List[Dict[str, Any]]:
    with open(path or MANUAL_PRESETS_FILE, 'r', encoding='utf-8') as f:
        return json.load(f)


class PresetBuilder:
    """
    Builds Preset records from upstream and manual definitions.

    Args:
        bsg_items: Upstream item templates keyed by id
        credits: Handbook base value per item id
        locales: Locale tables keyed by language code
        job_logger: Logger for per-record findings
    """

    def __init__(
        self,
        bsg_items: Dict[str, Dict[str, Any]],
        credits: Dict[str, int],
        locales: Dict[str, Dict[str, Any]],
        job_logger=None,
    ):
        self.bsg_items = bsg_items
        self.credits = credits
        self.locales = locales
        self.logger = job_logger
        self.stats = PresetStatsCalculator(bsg_items, credits)

    def _warn(self, message: str):
        if self.logger:
            self.logger.warn(message)

    def _item_name(self, item_id: str) -> Optional[str]:
        name = template_name(self.locales, item_id)
        if name:
            return name
        return self.bsg_items.get(item_id, {}).get('_name')

    def _names(self, base_id: str, suffix: Optional[Callable[[Dict[str, Any]], str]] = None) -> Dict[str, Dict[str, str]]:
        """
        Base item names per locale, with an optional qualifier.

        The qualifier falls back to English; without one in either locale
        the base name is used alone.
        """
        english = self.locales.get('en', {})

        def qualifier(lang: Dict[str, Any]) -> Optional[str]:
            for table in (lang, english):
                try:
                    return suffix(table)
                except (KeyError, TypeError):
                    continue
            return None

        def getter(key: str):
            def get(lang: Dict[str, Any]) -> str:
                value = lookup(lang, ('templates', base_id, key))
                extra = qualifier(lang) if suffix else None
                if extra:
                    value = f"{value} {extra}"
                return value
            return get

        return get_translations(
            {'name': getter('Name'), 'shortName': getter('ShortName')},
            self.locales,
            self.logger,
        )

    def _new_preset(self, preset_id: str, base_id: str, contains_items: List[ContainedItem],
                    locale: Dict[str, Dict[str, str]]) -> Preset:
        english = locale.get('en', {})
        base = self.bsg_items[base_id]
        preset = Preset(
            id=preset_id,
            name=english.get('name', base.get('_name', preset_id)),
            short_name=english.get('shortName', base.get('_name', preset_id)),
            base_id=base_id,
            contains_items=contains_items,
            bsg_category_id=base.get('_parent'),
            background_color=base.get('_props', {}).get('BackgroundColor', 'default'),
            locale=locale,
        )
        self.apply_stats(preset)
        return preset

    def apply_stats(self, preset: Preset):
        """Fill stats from the parts, or from the base item when they cannot be computed."""
        stats = self.stats.calculate(preset)
        if stats is not None:
            preset.width = stats.width
            preset.height = stats.height
            preset.weight = stats.weight
            preset.base_value = stats.base_value
            preset.ergonomics = stats.ergonomics
            preset.vertical_recoil = stats.vertical_recoil
            preset.horizontal_recoil = stats.horizontal_recoil
            preset.moa = stats.moa
            return
        props = self.bsg_items.get(preset.base_id, {}).get('_props', {})
        preset.width = props.get('Width', 1)
        preset.height = props.get('Height', 1)
        preset.weight = props.get('Weight', 0)
        preset.base_value = self.credits.get(preset.base_id, 0)
        preset.ergonomics = props.get('Ergonomics', 0)
        preset.vertical_recoil = props.get('RecoilForceUp', 0)
        preset.horizontal_recoil = props.get('RecoilForceBack', 0)

    def from_game_preset(self, definition: Dict[str, Any]) -> Optional[Preset]:
        """Build a preset from one ``globals.ItemPresets`` entry."""
        preset_id = definition['_id']
        parts = definition.get('_items', [])
        if not parts:
            self._warn(f"Preset {preset_id} has no items")
            return None
        base_id = parts[0]['_tpl']
        if base_id not in self.bsg_items:
            self._warn(f"Preset {preset_id} base item {base_id} is not a known item")
            return None

        suffix = None
        if definition.get('_changeWeaponName'):
            def suffix(lang):
                return lookup(lang, ('preset', preset_id, 'Name'))

        preset = self._new_preset(
            preset_id,
            base_id,
            build_contained_items(parts, self._item_name),
            self._names(base_id, suffix),
        )
        preset.default = definition.get('_encyclopedia') == base_id
        return preset

    def from_manual(self, definition: Dict[str, Any]) -> Optional[Preset]:
        """
        Build a hand-maintained preset.

        ``appendName`` is either literal text or a key path into the
        locale table. The base item is added to the contained items when
        the definition leaves it out.
        """
        base_id = definition['baseId']
        if base_id not in self.bsg_items:
            self._warn(f"Manual preset {definition['id']} base item {base_id} is not a known item")
            return None

        append: Union[str, List[str], None] = definition.get('appendName')
        suffix = None
        if isinstance(append, str):
            def suffix(lang):
                return append
        elif append:
            def suffix(lang):
                return lookup(lang, append)

        contains_items = [
            ContainedItem(
                item_id=entry['item']['id'],
                count=entry.get('count', 1),
                name=self._item_name(entry['item']['id']),
            )
            for entry in definition.get('containsItems', [])
        ]
        base = next((item for item in contains_items if item.item_id == base_id), None)
        if base is None:
            contains_items.insert(0, ContainedItem(base_id, 1, self._item_name(base_id)))
        elif base.count < 1:
            base.count = 1
        return self._new_preset(definition['id'], base_id, contains_items, self._names(base_id, suffix))

    def build_dog_tag(self) -> Preset:
        """Synthetic bundle of both faction dog tags."""
        def dog_tag_name(lang):
            template = lookup(lang, ('templates', BEAR_DOGTAG_ID))
            name = template['Name'].replace(template.get('ShortName', ''), '').strip()
            return name[:1].upper() + name[1:]

        locale = get_translations(
            {'name': dog_tag_name, 'shortName': dog_tag_name},
            self.locales,
            self.logger,
        )
        preset = Preset(
            id=CUSTOM_DOGTAG_PRESET_ID,
            name=locale.get('en', {}).get('name', 'Dogtag'),
            short_name=locale.get('en', {}).get('shortName', 'Dogtag'),
            base_id=BEAR_DOGTAG_ID,
            contains_items=[
                ContainedItem(BEAR_DOGTAG_ID, 1, self._item_name(BEAR_DOGTAG_ID)),
                ContainedItem(USEC_DOGTAG_ID, 1, self._item_name(USEC_DOGTAG_ID)),
            ],
            bsg_category_id=self.bsg_items.get(BEAR_DOGTAG_ID, {}).get('_parent'),
            types=['preset', 'no-flea'],
            locale=locale,
        )
        self.apply_stats(preset)
        return preset

    def build_all(
        self,
        game_presets: Dict[str, Dict[str, Any]],
        manual_presets: Iterable[Dict[str, Any]] = (),
        ignore: Iterable[str] = IGNORE_PRESETS,
    ) -> Dict[str, Preset]:
        """
        Build every preset keyed by id.

        The first preset flagged default for a base item keeps the flag;
        later ones are demoted with a warning.
        """
        ignore = set(ignore)
        presets: Dict[str, Preset] = {}
        defaults: Dict[str, str] = {}

        for preset_id, definition in game_presets.items():
            if preset_id in ignore:
                continue
            preset = self.from_game_preset(definition)
            if preset is None:
                continue
            if preset.default:
                if preset.base_id in defaults:
                    self._warn(
                        f"Preset {preset.name} {preset_id} is also default for {preset.base_id};"
                        f" keeping {defaults[preset.base_id]}"
                    )
                    preset.default = False
                else:
                    defaults[preset.base_id] = preset_id
            presets[preset_id] = preset

        for definition in manual_presets:
            preset = self.from_manual(definition)
            if preset is not None:
                presets[preset.id] = preset

        if BEAR_DOGTAG_ID in self.bsg_items:
            dog_tag = self.build_dog_tag()
            presets[dog_tag.id] = dog_tag
        return presets


def resolve_defaults(
    presets: Dict[str, Preset],
    items: Dict[str, Dict[str, Any]],
    bsg_items: Dict[str, Dict[str, Any]],
    job_logger=None,
) -> List[str]:
    """
    Make sure every gun has a default preset where one can be chosen.

    A gun without a flagged default gets its only preset promoted. A gun
    with no preset at all but with attachment slots is reported.

    Returns:
        Findings for guns left without a default preset
    """
    findings = []
    by_base: Dict[str, List[Preset]] = {}
    for preset in presets.values():
        by_base.setdefault(preset.base_id, []).append(preset)

    for item_id, item in items.items():
        types = item.get('types', [])
        if 'gun' not in types or 'disabled' in types:
            continue
        candidates = by_base.get(item_id, [])
        if any(preset.default for preset in candidates):
            continue
        if len(candidates) == 1:
            candidates[0].default = True
            if job_logger:
                job_logger.log(f"Set {candidates[0].name} {candidates[0].id} as default preset")
            continue

        slots = bsg_items.get(item_id, {}).get('_props', {}).get('Slots', [])
        if not slots:
            continue
        name = item.get('name', item_id)
        if candidates:
            finding = f"{name} {item_id} has {len(candidates)} presets but none is default"
        else:
            finding = f"{name} {item_id} is missing a default preset"
        findings.append(finding)
        if job_logger:
            job_logger.warn(finding)
    return findings


def label_default_presets(presets: Dict[str, Preset], locales: Dict[str, Dict[str, Any]]):
    """
    Suffix the name and short name of default presets named exactly like
    their base item with the localized "Default" label.
    """
    labels = get_translations({'label': DEFAULT_SUFFIX_PATH}, locales)
    for preset in presets.values():
        if not preset.default:
            continue
        for code, names in preset.locale.items():
            base_name = template_name(locales, preset.base_id, lang=code)
            label = labels.get(code, {}).get('label')
            if not label or names.get('name') != base_name:
                continue
            names['name'] = f"{base_name} {label}"
            short_name = template_name(locales, preset.base_id, key='ShortName', lang=code) or base_name
            names['shortName'] = f"{short_name} {label}"
        english = preset.locale.get('en', {})
        preset.name = english.get('name', preset.name)
        preset.short_name = english.get('shortName', preset.short_name)
