import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# "mysql" or "memory"
STORAGE = os.getenv("STORAGE", "mysql")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

HOUR_BANK_MAX_POSITIVE_MINUTES = int(os.getenv("HOUR_BANK_MAX_POSITIVE_MINUTES", "2400"))
HOUR_BANK_MAX_NEGATIVE_MINUTES = int(os.getenv("HOUR_BANK_MAX_NEGATIVE_MINUTES", "600"))
HIGH_IMPACT_EDIT_MINUTES = int(os.getenv("HIGH_IMPACT_EDIT_MINUTES", "120"))
AUTO_APPROVE_SESSION_DELTAS = bool(int(os.getenv("AUTO_APPROVE_SESSION_DELTAS", "1")))
