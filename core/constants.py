"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines all system-wide constants.

- Provides single source of truth for magic values
- Documents the meaning of each constant
- Prevents hardcoding throughout codebase

============================================================
"""

# ============================================================
# SYSTEM CONSTANTS
# ============================================================

SYSTEM_NAME = "attestation-sync"
SYSTEM_VERSION = "0.1.0"

# ============================================================
# SOURCE CONSTANTS
# ============================================================

# GraphQL Int is a 32-bit signed integer
TRANSPORT_MAX_INT = 2_147_483_647

DEFAULT_SCHEMA_UID = (
    "0xba4171c92572b1e4f241d044c32cdf083be9fd946b8766977558ca6378c824e2"
)

# Chains with a known EAS deployment
DEFAULT_CHAINS = ("arbitrum", "celo", "sepolia", "base")

DEFAULT_FETCH_LIMIT = 100
DEFAULT_REVOKED_PAGE_SIZE = 100
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# Revocation time reported for attestations that were never revoked
NOT_REVOKED = "0"

# ============================================================
# WATERMARK CONSTANTS
# ============================================================

# Checkpoint used for a chain that has never been synced
HISTORICAL_EPOCH = 0

# One unit of source time resolution (seconds)
WATERMARK_EPSILON = 1

# ============================================================
# RETRY CONSTANTS
# ============================================================

DEFAULT_RETRY_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 1.0
DEFAULT_RETRY_BACKOFF_FACTOR = 2.0

# ============================================================
# SCHEDULER CONSTANTS
# ============================================================

DEFAULT_INGESTION_INTERVAL_SECONDS = 60
DEFAULT_REVOCATION_INTERVAL_SECONDS = 3600
DEFAULT_ERROR_BUFFER_SIZE = 100

# ============================================================
# PROOF DEFAULTS
# ============================================================

DEFAULT_SRS = "WGS84"
DEFAULT_LOCATION_TYPE = "point"

MAX_LATITUDE = 90.0
MAX_LONGITUDE = 180.0
