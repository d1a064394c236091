"""
Locale lookups.
"""

import logging
from typing import Any, Callable, Dict, Optional, Sequence, Union

logger = logging.getLogger(__name__)

Getter = Union[Sequence[str], Callable[[Dict[str, Any]], Any]]


def lookup(lang: Dict[str, Any], path: Sequence[str]) -> Any:
    """Follow ``path`` through a locale table; raises KeyError when missing."""
    value: Any = lang
    for key in path:
        if not isinstance(value, dict):
            raise KeyError(key)
        value = value[key]
    return value


def _resolve(getter: Getter, lang: Dict[str, Any]) -> Any:
    if callable(getter):
        return getter(lang)
    return lookup(lang, getter)


def get_translations(
    fields: Dict[str, Getter],
    locales: Dict[str, Dict[str, Any]],
    job_logger=None,
) -> Dict[str, Dict[str, Any]]:
    """
    Build ``{lang: {field: value}}`` for every locale.

    Each field is either a key path into the locale table or a callable
    taking the locale table. A value missing from a locale falls back to
    the English value; a value missing from English too is left out.
    """
    log = job_logger or logger
    english = locales.get('en', {})
    translations: Dict[str, Dict[str, Any]] = {}

    for code, lang in locales.items():
        values = {}
        for field_name, getter in fields.items():
            try:
                values[field_name] = _resolve(getter, lang)
                continue
            except (KeyError, TypeError):
                pass
            try:
                values[field_name] = _resolve(getter, english)
            except (KeyError, TypeError):
                log.warning(f"No {code} translation found for {field_name}")
        translations[code] = values
    return translations


def template_name(locales: Dict[str, Dict[str, Any]], item_id: str, key: str = 'Name', lang: str = 'en') -> Optional[str]:
    try:
        return locales[lang]['templates'][item_id][key]
    except KeyError:
        return None
