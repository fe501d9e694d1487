import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
SECRET_KEY_CONFIGURED = bool(os.getenv("SECRET_KEY"))

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "ult_fpeb_dev"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed dropdown options and default accounts on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", str(24 * 60 * 60)))
TOKEN_REFRESH_GRACE = int(os.getenv("TOKEN_REFRESH_GRACE", str(7 * 24 * 60 * 60)))

UPLOAD_PATH = os.getenv("UPLOAD_PATH", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(10 * 1024 * 1024)))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FILE = os.getenv("LOG_FILE") or None

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",") if o.strip()]
