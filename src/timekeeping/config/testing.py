import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping_test"),
}

DEBUG = False
LOG_LEVEL = "WARNING"

STORAGE = "memory"
AUTO_INIT_DB = False

HOUR_BANK_MAX_POSITIVE_MINUTES = 2400
HOUR_BANK_MAX_NEGATIVE_MINUTES = 600
HIGH_IMPACT_EDIT_MINUTES = 120
AUTO_APPROVE_SESSION_DELTAS = True
