"""Global constants for the korban application."""

FIRESTORE_BATCH_LIMIT = 400

# Collection names
GROUPS = "groups"
PARTICIPANTS = "participants"
PAYMENTS = "payments"
RECEIPT_UPLOADS = "receiptUploads"
CHANGE_REQUESTS = "participantChangeRequests"
AUDIT_LOGS = "auditLogs"
USER_ROLES = "userRoles"

# Review statuses shared by receipts and change requests
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
REVIEW_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)

# Sacrifice types
KORBAN_SUNAT = "korban_sunat"
KORBAN_NAZAR = "korban_nazar"
AQIQAH = "aqiqah"
SACRIFICE_TYPES = (KORBAN_SUNAT, KORBAN_NAZAR, AQIQAH)
DEFAULT_SACRIFICE_TYPE = KORBAN_SUNAT

SACRIFICE_TYPE_LABELS = {
    KORBAN_SUNAT: "Korban Sunat",
    KORBAN_NAZAR: "Korban Nazar",
    AQIQAH: "Aqiqah",
}

# Monthly contribution per participant, by sacrifice type
SACRIFICE_TYPE_PRICING = {
    KORBAN_SUNAT: 100,
    KORBAN_NAZAR: 100,
    AQIQAH: 100,
}

# Collection period, August 2025 to March 2026
MONTHS = [
    "2025-08",
    "2025-09",
    "2025-10",
    "2025-11",
    "2025-12",
    "2026-01",
    "2026-02",
    "2026-03",
]

MONTH_LABELS = {
    "2025-08": "Ogos 2025",
    "2025-09": "September 2025",
    "2025-10": "Oktober 2025",
    "2025-11": "November 2025",
    "2025-12": "Disember 2025",
    "2026-01": "Januari 2026",
    "2026-02": "Februari 2026",
    "2026-03": "Mac 2026",
}

# Receipt validation
IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
PDF_TYPE = "application/pdf"
MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_PDF_BYTES = 10 * 1024 * 1024
MIN_IMAGE_DIMENSION = 100
MAX_IMAGE_DIMENSION = 5000

# Storage paths
RECEIPTS_PREFIX = "receipts/"
PROFILES_PREFIX = "profiles/"
BACKUP_MANIFEST_NAME = "backup-manifest.json"

# Storage alerts
RECEIPT_FILE_ALERT_THRESHOLD = 1000
STORAGE_WARNING_PERCENT = 80
STORAGE_CRITICAL_PERCENT = 95

# Email-related constants
SMTP_AUTH_ERROR_CODE = 534
