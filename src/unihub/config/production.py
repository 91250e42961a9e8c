import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "unihub"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "unihub"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

RETURN_CHECKIN_OFFSET_MINUTES = int(os.getenv("RETURN_CHECKIN_OFFSET_MINUTES", "60"))
RETURN_CHECKIN_DIRECTION = os.getenv("RETURN_CHECKIN_DIRECTION", "before")
RETURN_CHECKIN_LATITUDE = float(os.getenv("RETURN_CHECKIN_LATITUDE", "30.5728"))
RETURN_CHECKIN_LONGITUDE = float(os.getenv("RETURN_CHECKIN_LONGITUDE", "104.0668"))
RETURN_CHECKIN_RADIUS_METERS = float(os.getenv("RETURN_CHECKIN_RADIUS_METERS", "50"))
RETURN_CHECKIN_TITLE = os.getenv("RETURN_CHECKIN_TITLE", "Return check-in")

OPEN_API_WINDOW_SECONDS = int(os.getenv("OPEN_API_WINDOW_SECONDS", "60"))
OPEN_API_IDLE_TTL_SECONDS = int(os.getenv("OPEN_API_IDLE_TTL_SECONDS", "600"))
OPEN_API_DEFAULT_RATE_LIMIT = int(os.getenv("OPEN_API_DEFAULT_RATE_LIMIT", "60"))
