"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

INVITE_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
INVITE_CODE_LENGTH = 8
MAX_INVITE_CODE_ATTEMPTS = 32

DEFAULT_RETURN_CHECKIN_OFFSET_MINUTES = 60
DEFAULT_RETURN_CHECKIN_RADIUS_METERS = 50.0
DEFAULT_RETURN_CHECKIN_TITLE = "Return check-in"

DEFAULT_APP_RATE_LIMIT = 60
DEFAULT_RATE_WINDOW_SECONDS = 60
DEFAULT_RATE_IDLE_TTL_SECONDS = 600

EARTH_RADIUS_METERS = 6_371_000.0
