import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "lecture_attendance"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# mysql | memory
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also load demo departments/courses/students on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))

CLOSE_MAX_ATTEMPTS = int(os.getenv("CLOSE_MAX_ATTEMPTS", "3"))
# Reject a second session for the same course/date/lecture number
REJECT_DUPLICATE_SESSIONS = bool(int(os.getenv("REJECT_DUPLICATE_SESSIONS", "0")))

# Memory backend only: "course:student,student;course:student", e.g. "1:101,102;2:201"
MEMORY_ROSTERS = os.getenv("MEMORY_ROSTERS", "")
