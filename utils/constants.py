"""
Application-wide constants.
Centralizes scheduling limits and permission names.
"""

# Recurrence limits
MAX_SERIES_OCCURRENCES = 366  # Hard cap on occurrences generated by one pattern
MIN_INTERVAL_WEEKS = 1
WEEKDAY_MIN = 0  # Sunday
WEEKDAY_MAX = 6  # Saturday

# Time constants
DEFAULT_STEP_MINUTES = 5
CONFLICT_LOOKBEHIND_DAYS = 1  # Fetch window padding for appointments spanning midnight

# Permission names
PERMISSION_VIEW_ALL = "appointments:view_all"
PERMISSION_VIEW_OWN = "appointments:view_own"
PERMISSION_CREATE = "appointments:create"
PERMISSION_UPDATE = "appointments:update"
PERMISSION_DELETE = "appointments:delete"

WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)
