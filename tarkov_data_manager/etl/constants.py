"""
Fixed game identifiers used by the transformation jobs.
"""

CURRENCY_ISO_ID = {
    'RUB': '5449016a4bdc2d6f028b456f',
    'USD': '5696686a4bdc2da3298b456a',
    'EUR': '569668774bdc2da2298b4568',
}

TRADER_NAME_ID = {
    'Prapor': '54cb50c76803fa8b248b4571',
    'Therapist': '54cb57776803fa99248b456e',
    'Fence': '579dc571d53a0658a154fbec',
    'Skier': '58330581ace78e27b8b10cee',
    'Peacekeeper': '5935c25fb3acc3127c3d8cd9',
    'Mechanic': '5a7c2eca46aec446127ea1c2',
    'Ragman': '5ac3b934156ae10c4430e83c',
    'Jaeger': '5c0647fdd443bc2504c2d371',
}

# Roots of the template hierarchy; never published as categories
IGNORE_CATEGORIES = (
    '54009119af1c881c07000029',  # Item
    '566162e44bdc2d3f298b4573',  # Compound item
    '5661632d4bdc2d903d8b456b',  # Stackable item
    '566168634bdc2d144c8b456c',  # Searchable item
)

# Upstream presets that are not real weapon builds
IGNORE_PRESETS = (
    '5a32808386f774764a3226d9',
)

BEAR_DOGTAG_ID = '59f32bb586f774757e1e8442'
USEC_DOGTAG_ID = '59f32c3b86f77472a31742f0'
CUSTOM_DOGTAG_PRESET_ID = 'customdogtags12345678910'

# 1 MOA at 100m is 2.9089cm
MOA_CM_AT_100M = 2.9089

HISTORICAL_PRICE_WINDOW_DAYS = 7
