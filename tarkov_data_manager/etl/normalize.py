"""
Name normalization for URL-safe item, preset and category identifiers.
"""

import re

_STRIP_CHARS = re.compile(r"[\"'.,()\[\]%&!?#:;]")
_SEPARATORS = re.compile(r"[\s/_+]+")
_DASHES = re.compile(r"-{2,}")


def normalize_name(name: str) -> str:
    """
    Lowercase ``name``, drop punctuation and join words with dashes.

    >>> normalize_name("AK-74N 5.45x39 (Default)")
    'ak-74n-545x39-default'
    """
    if not name:
        return ''
    normalized = name.strip().lower()
    normalized = _STRIP_CHARS.sub('', normalized)
    normalized = _SEPARATORS.sub('-', normalized)
    normalized = _DASHES.sub('-', normalized)
    return normalized.strip('-')
