"""
Tarkov Data Manager.

Scheduled jobs that refresh derived item data (item cache, presets,
historical prices, trader prices) and publish it to a local cache and a
remote key/value store.
"""

__version__ = "1.0.0"
