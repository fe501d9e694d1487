"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 1000
DEFAULT_HISTORY_LIMIT = 50
RECENT_VISITORS_LIMIT = 10
DASHBOARD_DAYS = 7

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6
MIN_PHONE_LENGTH = 8
MAX_PHONE_LENGTH = 20
MIN_DELETION_REASON_LENGTH = 10
MIN_REJECTION_REASON_LENGTH = 5

DEFAULT_TOKEN_MAX_AGE = 24 * 60 * 60
DEFAULT_TOKEN_REFRESH_GRACE = 7 * 24 * 60 * 60
TOKEN_SALT = "auth-token"

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_CONTENT_LENGTH = 10 * 1024 * 1024

COMPLAINT_TICKET_PREFIX = "COMP-"

PUBLIC_FEEDBACK_LIMIT = 20
MIN_EDIT_REASON_LENGTH = 10

FEEDBACK_CATEGORIES = (
    (1, "Pelayanan Umum"),
    (2, "Fasilitas"),
    (3, "Kemudahan Akses"),
    (4, "Keramahan Staff"),
    (5, "Kecepatan Layanan"),
    (6, "Kebersihan"),
    (7, "Lainnya"),
)
