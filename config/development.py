import os

from config import env_flag

SECRET_KEY = os.getenv("SECRET_KEY", "dev-flask-secret")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "activity_tracking"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")
# Optional: also seed dropdowns, roles and demo users on startup
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")

# Must be at least 32 bytes. Set a real value in .env.
JWT_SECRET = os.getenv("JWT_SECRET", "")
JWT_ACCESS_EXPIRATION_MS = int(os.getenv("JWT_ACCESS_EXPIRATION_MS", "86400000"))
JWT_REFRESH_EXPIRATION_MS = int(os.getenv("JWT_REFRESH_EXPIRATION_MS", "604800000"))

RATE_LIMIT_ENABLED = env_flag("RATE_LIMIT_ENABLED", "1")
RATE_LIMIT_CAPACITY = int(os.getenv("RATE_LIMIT_CAPACITY", "5"))
RATE_LIMIT_REFILL_MINUTES = int(os.getenv("RATE_LIMIT_REFILL_MINUTES", "1"))

MAX_LOGIN_ATTEMPTS = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
PASSWORD_EXPIRATION_DAYS = int(os.getenv("PASSWORD_EXPIRATION_DAYS", "90"))
PASSWORD_WARNING_DAYS = int(os.getenv("PASSWORD_WARNING_DAYS", "7"))

STORAGE_TYPE = os.getenv("STORAGE_TYPE", "local")
STORAGE_LOCAL_PATH = os.getenv("STORAGE_LOCAL_PATH", "storage/receipts")
S3_BUCKET = os.getenv("S3_BUCKET", "")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")

MAIL_ENABLED = env_flag("MAIL_ENABLED", "0")
MAIL_HOST = os.getenv("MAIL_HOST", "localhost")
MAIL_PORT = int(os.getenv("MAIL_PORT", "1025"))
MAIL_USERNAME = os.getenv("MAIL_USERNAME", "")
MAIL_PASSWORD = os.getenv("MAIL_PASSWORD", "")
MAIL_USE_TLS = env_flag("MAIL_USE_TLS", "0")
MAIL_FROM = os.getenv("MAIL_FROM", "noreply@activitytracking.local")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
APP_URL = os.getenv("APP_URL", "http://localhost:5000")
