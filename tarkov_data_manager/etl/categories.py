"""
Item category resolution.

Every item template points at a parent template; walking the parent chain
reaches the hierarchy root. Jobs publish the intermediate nodes as item
categories and map each item onto the first curated category on its chain.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from tarkov_data_manager.exceptions import CyclicCategoryError
from tarkov_data_manager.etl.constants import IGNORE_CATEGORIES
from tarkov_data_manager.etl.normalize import normalize_name

CATEGORY_MAP_FILE = Path(__file__).resolve().parent.parent / 'data' / 'category_map.json'


@dataclass
class CategoryNode:
    id: str
    name: str
    parent_id: Optional[str] = None
    locale: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'parent_id': self.parent_id,
            'name': self.name,
            'normalizedName': normalize_name(self.name),
            'locale': self.locale,
        }


def load_category_map(path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """
    Load the curated category table.

    Returns:
        Dict with ``categories`` (category id -> definition) and ``items``
        (item id -> per-item overrides such as trader lists)
    """
    with open(path or CATEGORY_MAP_FILE, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return {
        'categories': data.get('categories', {}),
        'items': data.get('items', {}),
    }


class CategoryResolver:
    """
    Registers category nodes and finds curated categories for items.

    Args:
        bsg_items: Upstream item templates keyed by id (``_parent``, ``_name``)
        locales: Locale tables keyed by language code
        curated: Curated categories keyed by id
        ignore: Root template ids never registered as categories
    """

    def __init__(
        self,
        bsg_items: Dict[str, Dict[str, Any]],
        locales: Optional[Dict[str, Dict[str, Any]]] = None,
        curated: Optional[Dict[str, Dict[str, Any]]] = None,
        ignore: Iterable[str] = IGNORE_CATEGORIES,
    ):
        self.bsg_items = bsg_items
        self.locales = locales or {}
        self.curated = curated if curated is not None else load_category_map()['categories']
        self.ignore = set(ignore)
        self.categories: Dict[str, CategoryNode] = {}

    def parent_of(self, item_id: str) -> Optional[str]:
        template = self.bsg_items.get(item_id)
        if not template:
            return None
        return template.get('_parent') or None

    def _template_name(self, category_id: str, lang: Dict[str, Any]) -> Optional[str]:
        template = lang.get('templates', {}).get(category_id)
        if template and template.get('Name'):
            return template['Name']
        return None

    def _build_node(self, category_id: str) -> CategoryNode:
        fallback = self.bsg_items.get(category_id, {}).get('_name', category_id)
        locale = {
            code: {'name': self._template_name(category_id, lang) or fallback}
            for code, lang in self.locales.items()
        }
        name = locale.get('en', {}).get('name', fallback)
        return CategoryNode(id=category_id, name=name, locale=locale)

    def add_category(self, category_id: Optional[str]) -> None:
        """
        Register ``category_id`` and every ancestor not registered yet.

        Stops at an ignored root or at a node that is already known.

        Raises:
            CyclicCategoryError: the parent chain revisits a node
        """
        path: List[str] = []
        current = category_id
        while current:
            if current in path:
                raise CyclicCategoryError(path + [current])
            if current in self.categories or current in self.ignore:
                return
            path.append(current)

            node = self._build_node(current)
            self.categories[current] = node

            parent = self.parent_of(current)
            if not parent or parent in self.ignore:
                return
            node.parent_id = parent
            current = parent

    def get_item_category(self, start_id: Optional[str]) -> Optional[str]:
        """
        First curated category on the chain starting at ``start_id``.

        Raises:
            CyclicCategoryError: the parent chain revisits a node
        """
        path: List[str] = []
        current = start_id
        while current:
            if current in path:
                raise CyclicCategoryError(path + [current])
            if current in self.curated:
                return current
            path.append(current)
            current = self.parent_of(current)
        return None

    def resolve(self, item_id: str) -> Optional[str]:
        """
        Register the item's ancestry and return its curated category id.
        """
        parent = self.parent_of(item_id)
        self.add_category(parent)
        return self.get_item_category(parent)

    def curated_category(self, item_id: str) -> Optional[Dict[str, Any]]:
        category_id = self.resolve(item_id)
        if category_id is None:
            return None
        return self.curated[category_id]

    def to_list(self) -> List[Dict[str, Any]]:
        return [node.to_dict() for node in self.categories.values()]
