"""
Derived statistics for weapon presets.

A preset's stats are the base weapon's stats adjusted by every attached
part: weight and value add up, ergonomics adds, recoil and accuracy are
percentage modifiers, and extra-size attachments grow the inventory
footprint.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from tarkov_data_manager.etl.constants import MOA_CM_AT_100M

SIDES = ('Left', 'Right', 'Up', 'Down')


@dataclass
class PresetStats:
    width: int
    height: int
    weight: float
    base_value: int
    ergonomics: float
    vertical_recoil: int
    horizontal_recoil: int
    moa: Optional[float]


class PresetStatsCalculator:
    """
    Args:
        bsg_items: Upstream item templates keyed by id
        credits: Handbook base value per item id
    """

    def __init__(self, bsg_items: Dict[str, Dict[str, Any]], credits: Dict[str, int]):
        self.bsg_items = bsg_items
        self.credits = credits

    def calculate(self, preset) -> Optional[PresetStats]:
        """
        Stats for ``preset``, or None when the base is not a weapon template
        or any part is unknown.
        """
        base = self.bsg_items.get(preset.base_id)
        if not base:
            return None
        base_props = base.get('_props', {})
        if 'RecoilForceUp' not in base_props:
            return None

        weight = base_props.get('Weight', 0)
        base_value = self.credits.get(preset.base_id, 0)
        ergonomics = base_props.get('Ergonomics', 0)
        recoil_modifier = 0.0
        accuracy_modifier = 0.0
        center_of_impact = base_props.get('CenterOfImpact')
        extra = {side: 0 for side in SIDES}
        forced = {side: 0 for side in SIDES}

        for contained in preset.contains_items:
            if contained.item_id == preset.base_id:
                continue
            part = self.bsg_items.get(contained.item_id)
            if not part:
                return None
            props = part.get('_props', {})
            count = contained.count

            weight += props.get('Weight', 0) * count
            base_value += self.credits.get(contained.item_id, 0) * count
            ergonomics += props.get('Ergonomics', 0)
            recoil_modifier += props.get('Recoil', 0)
            accuracy_modifier += props.get('Accuracy', 0)
            if props.get('CenterOfImpact'):
                center_of_impact = props['CenterOfImpact']

            for side in SIDES:
                size = props.get(f'ExtraSize{side}', 0)
                if props.get('ExtraSizeForceAdd'):
                    forced[side] += size
                elif size > extra[side]:
                    extra[side] = size

        moa = None
        if center_of_impact:
            moa = round(center_of_impact * 100 / MOA_CM_AT_100M * (1 - accuracy_modifier / 100), 2)

        return PresetStats(
            width=base_props.get('Width', 1) + extra['Left'] + extra['Right'] + forced['Left'] + forced['Right'],
            height=base_props.get('Height', 1) + extra['Up'] + extra['Down'] + forced['Up'] + forced['Down'],
            weight=round(weight, 2),
            base_value=int(base_value),
            ergonomics=round(ergonomics, 2),
            vertical_recoil=round(base_props.get('RecoilForceUp', 0) * (1 + recoil_modifier / 100)),
            horizontal_recoil=round(base_props.get('RecoilForceBack', 0) * (1 + recoil_modifier / 100)),
            moa=moa,
        )
