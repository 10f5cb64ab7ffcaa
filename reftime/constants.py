"""Shared constants for RefTime.

Protocol values live here so the codec, the transport and the settings defaults
agree on them without importing each other.
"""

# ============================================================================
# NTP WIRE FORMAT
# ============================================================================
NTP_PACKET_SIZE = 48
NTP_PORT = 123
NTP_VERSION = 3
NTP_MODE_CLIENT = 3
NTP_MODE_SERVER = 4
NTP_MODE_BROADCAST = 5
NTP_LEAP_UNSYNCHRONIZED = 3
NTP_MAX_STRATUM = 15

# Seconds between 1900-01-01 (NTP epoch) and 1970-01-01 (Unix epoch).
OFFSET_1900_TO_1970 = 2_208_988_800

# 2^32, the scale of both the seconds field and the fraction field.
NTP_FRACTION_SCALE = 0x1_0000_0000

# 2100-01-01T00:00:00Z in Unix milliseconds; later timestamps are rejected.
MAX_TIMESTAMP_MS = 4_102_444_800_000

# ============================================================================
# DEFAULT CONFIGURATION
# ============================================================================
DEFAULT_NTP_HOSTS = ["time.google.com", "time.apple.com", "pool.ntp.org"]
RELIABLE_NTP_HOSTS = [
    "time.google.com",
    "time.apple.com",
    "pool.ntp.org",
    "time.nist.gov",
    "time.cloudflare.com",
]
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_RETRY_DELAY_S = 1.0
DEFAULT_MAX_RETRY_DELAY_S = 30.0
DEFAULT_CACHE_VALID_S = 3600.0

# Remaining validity below which the anchor counts as "expiring soon".
CACHE_EXPIRING_SOON_S = 600.0

# Buffer size for state/event subscribers before the oldest value is dropped.
DEFAULT_SUBSCRIBER_BUFFER = 16
