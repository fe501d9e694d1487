import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")
SECRET_KEY_CONFIGURED = bool(os.getenv("SECRET_KEY"))

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "ult_fpeb_dev"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", str(24 * 60 * 60)))
TOKEN_REFRESH_GRACE = int(os.getenv("TOKEN_REFRESH_GRACE", str(7 * 24 * 60 * 60)))

UPLOAD_PATH = os.getenv("UPLOAD_PATH", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", str(10 * 1024 * 1024)))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/app.log")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
