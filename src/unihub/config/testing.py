import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "unihub_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

RETURN_CHECKIN_OFFSET_MINUTES = 60
RETURN_CHECKIN_DIRECTION = "before"
RETURN_CHECKIN_LATITUDE = 30.5728
RETURN_CHECKIN_LONGITUDE = 104.0668
RETURN_CHECKIN_RADIUS_METERS = 50.0
RETURN_CHECKIN_TITLE = "Return check-in"

OPEN_API_WINDOW_SECONDS = 60
OPEN_API_IDLE_TTL_SECONDS = 600
OPEN_API_DEFAULT_RATE_LIMIT = 60
