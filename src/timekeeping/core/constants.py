"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

APPROACHING_LIMIT_RATIO = 0.8
COMPENSATION_WARNING_DAYS = 7
COMPENSATION_CRITICAL_DAYS = 3

DEFAULT_MAX_POSITIVE_BALANCE = 40 * 60
DEFAULT_MAX_NEGATIVE_BALANCE = 10 * 60

DEFAULT_HIGH_IMPACT_MINUTES = 120
MIN_REASON_LENGTH = 10

RESOLVER_CACHE_SIZE = 4096
