import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "lecture_attendance_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

CLOSE_MAX_ATTEMPTS = int(os.getenv("CLOSE_MAX_ATTEMPTS", "3"))
REJECT_DUPLICATE_SESSIONS = bool(int(os.getenv("REJECT_DUPLICATE_SESSIONS", "0")))

# Memory backend only: "course:student,student;course:student", e.g. "1:101,102;2:201"
MEMORY_ROSTERS = os.getenv("MEMORY_ROSTERS", "")
