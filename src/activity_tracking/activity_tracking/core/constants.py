"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

DEFAULT_MAX_LOGIN_ATTEMPTS = 5
DEFAULT_PASSWORD_EXPIRATION_DAYS = 90
DEFAULT_PASSWORD_WARNING_DAYS = 7

DEFAULT_ACCESS_TOKEN_MS = 86_400_000
DEFAULT_REFRESH_TOKEN_MS = 604_800_000

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
NAME_MAX_LENGTH = 50
COMPANY_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 10
PASSWORD_SPECIAL_CHARS = "+&%$#@!~"

MIN_HOURS = Decimal("0.01")
MAX_HOURS = Decimal("24.00")
TEXT_MAX_LENGTH = 255
TASK_ID_MAX_LENGTH = 10
TASK_NAME_MAX_LENGTH = 120

MIN_EXPENSE_AMOUNT = Decimal("0.01")
MAX_EXPENSE_AMOUNT = Decimal("99999999.99")
DEFAULT_CURRENCY = "USD"
EXPENSE_SHORT_FIELD_MAX_LENGTH = 50
VENDOR_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 500

MAX_RECEIPT_BYTES = 5 * 1024 * 1024
MAX_IMPORT_BYTES = 5 * 1024 * 1024

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200
DEFAULT_STALE_PROJECT_DAYS = 30
