import os

# ========= REMOTE API =========
API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8080")
API_TIMEOUT_SECONDS = float(os.environ.get("API_TIMEOUT_SECONDS", "10"))

# ========= TABLES =========
TABLE_CONFIG = {
    "sessions":      os.environ.get("SESSIONS_TABLE",      "dev.TimesheetSessions.ddb-table"),
    "confirmations": os.environ.get("CONFIRMATIONS_TABLE", "dev.PendingConfirmations.ddb-table"),
}

# ========= SESSION / CONFIRMATION =========
SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "sessionId")
CONFIRMATION_TTL_SECONDS = int(os.environ.get("CONFIRMATION_TTL_SECONDS", "300"))

# ========= CORS =========
DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,http://localhost:5173"
ALLOWED_ORIGINS = {
    origin.strip().rstrip("/")
    for origin in os.environ.get("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS).split(",")
    if origin.strip()
}

# ========= CONSTANTS =========
MAX_BATCH_IDS = int(os.environ.get("MAX_BATCH_IDS", "200"))
