import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "timekeeping_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

STORAGE = "mysql"
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

HOUR_BANK_MAX_POSITIVE_MINUTES = int(os.getenv("HOUR_BANK_MAX_POSITIVE_MINUTES", "2400"))
HOUR_BANK_MAX_NEGATIVE_MINUTES = int(os.getenv("HOUR_BANK_MAX_NEGATIVE_MINUTES", "600"))
HIGH_IMPACT_EDIT_MINUTES = int(os.getenv("HIGH_IMPACT_EDIT_MINUTES", "120"))
AUTO_APPROVE_SESSION_DELTAS = bool(int(os.getenv("AUTO_APPROVE_SESSION_DELTAS", "0")))
