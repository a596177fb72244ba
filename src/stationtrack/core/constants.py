"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# String field lengths
MAX_NAME_LENGTH = 255
MAX_USERNAME_LENGTH = 100
MAX_IPV6_LENGTH = 45
MAX_ROLE_NAME_LENGTH = 100
MAX_STATUS_LENGTH = 20
MAX_DEVICE_ID_LENGTH = 100

# Audit field lengths
MAX_AUDIT_ACTION_LENGTH = 100
MAX_AUDIT_TARGET_TYPE_LENGTH = 50
MAX_AUDIT_TARGET_ID_LENGTH = 255

# Audit values
UNKNOWN_TARGET_ID = "unknown"
FALLBACK_SOURCE_ADDRESS = "0.0.0.0"  # noqa: S104
DEFAULT_AUDIT_QUEUE_SIZE = 1000
TOP_STATS_LIMIT = 10
DAILY_STATS_DAYS = 7
DEFAULT_STATS_DAYS = 30
MAX_STATS_DAYS = 3650

# Pagination defaults
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"

# Roles
ADMIN_ROLE = "admin"
TECHNICIAN_ROLE = "technician"
