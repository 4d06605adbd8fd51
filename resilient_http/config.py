"""Configuration constants for the resilient HTTP client"""

# Request defaults
DEFAULT_METHOD = "GET"
DEFAULT_TIMEOUT_MS = 10_000  # Per-attempt deadline
DEFAULT_MAX_RETRIES = 2  # Retries after the first attempt
DEFAULT_BACKOFF_BASE_MS = 300

# Backoff jitter (upper bound, milliseconds)
JITTER_MAX_MS = 50

# Circuit breaker configuration
CIRCUIT_BREAKER_COOLDOWN_MS = 2_000  # Open window after a server error

# ETag cache configuration
ETAG_CACHE_MAX_ENTRIES = 512  # None disables eviction

# HOST scope keeps at most this many per-host breakers
HOST_BREAKER_MAX_ENTRIES = 256

# Status classification
RATE_LIMIT_STATUS = 429
SERVER_ERROR_STATUS = 500
NOT_MODIFIED_STATUS = 304
OK_STATUS = 200  # Only full representations are cached
NO_CONTENT_STATUS = 204

# Headers stripped from a 304 before its cached body is put back
FRAMING_HEADERS = frozenset({"content-length", "content-encoding", "transfer-encoding"})

JSON_CONTENT_TYPE = "application/json"
