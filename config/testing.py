import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "activity_tracking_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False

JWT_SECRET = "test-jwt-secret-that-is-long-enough-for-hs256"
JWT_ACCESS_EXPIRATION_MS = 86400000
JWT_REFRESH_EXPIRATION_MS = 604800000

RATE_LIMIT_ENABLED = True
RATE_LIMIT_CAPACITY = 5
RATE_LIMIT_REFILL_MINUTES = 1

MAX_LOGIN_ATTEMPTS = 5
PASSWORD_EXPIRATION_DAYS = 90
PASSWORD_WARNING_DAYS = 7

STORAGE_TYPE = "local"
STORAGE_LOCAL_PATH = os.getenv("STORAGE_LOCAL_PATH", "storage/test-receipts")
S3_BUCKET = ""
AWS_REGION = "us-east-1"

MAIL_ENABLED = False
MAIL_HOST = "localhost"
MAIL_PORT = 1025
MAIL_USERNAME = ""
MAIL_PASSWORD = ""
MAIL_USE_TLS = False
MAIL_FROM = "noreply@activitytracking.local"
ADMIN_EMAIL = ""
APP_URL = "http://localhost:5000"
