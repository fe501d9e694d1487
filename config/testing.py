import os

SECRET_KEY = "test-secret"
SECRET_KEY_CONFIGURED = True

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "ult_fpeb_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

TOKEN_MAX_AGE = 3600
TOKEN_REFRESH_GRACE = 3600

UPLOAD_PATH = os.getenv("UPLOAD_PATH", "uploads-test")
MAX_UPLOAD_BYTES = 1024 * 1024
MAX_CONTENT_LENGTH = 2 * 1024 * 1024

LOG_LEVEL = "WARNING"
LOG_FILE = None

CORS_ORIGINS = ["http://localhost:5173"]
