"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_PAGE_SIZE = 30
DEFAULT_TRIAL_DAYS = 14
NAVIGATION_CACHE_SECONDS = 300

TENANT_DB_PREFIX = "tenant_"
MAX_TENANT_SLUG_LENGTH = 50
MIN_PASSWORD_LENGTH = 8

# Highway project bounds for daily work locations (K0 .. K48).
MIN_CHAINAGE_KM = 0
MAX_CHAINAGE_KM = 48
MAX_INSPECTION_DETAILS_LENGTH = 1000
OBJECTION_SUGGESTION_LIMIT = 100

REGISTRATION_TOKEN_LENGTH = 32

DEFAULT_ROUTE_TOLERANCE_METERS = 300
DEFAULT_QR_EXPIRY_HOURS = 24
DEFAULT_QR_MAX_DISTANCE_METERS = 100
