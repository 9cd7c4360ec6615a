"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

FLAG_THRESHOLD_MINUTES = 15
DEFAULT_TYPICAL_START = "09:00"
DEFAULT_TYPICAL_END = "15:00"
MIN_VOID_REASON_LENGTH = 5
CHECKSUM_LENGTH = 6
TOKEN_SEPARATOR = "|"
