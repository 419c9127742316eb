"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_CLOSE_MAX_ATTEMPTS = 3
LOW_ATTENDANCE_THRESHOLD = 75
INITIAL_SESSION_VERSION = 1
NOT_AVAILABLE = "N/A"
