"""Constants for timetable generation."""

# Accepted day names, keyed by their accent-free lowercase form.
# Spanish names come from the entity editor the data is exported from.
DAY_ALIASES = {
    "monday": "monday",
    "mon": "monday",
    "lunes": "monday",
    "tuesday": "tuesday",
    "tue": "tuesday",
    "martes": "tuesday",
    "wednesday": "wednesday",
    "wed": "wednesday",
    "miercoles": "wednesday",
    "thursday": "thursday",
    "thu": "thursday",
    "jueves": "thursday",
    "friday": "friday",
    "fri": "friday",
    "viernes": "friday",
    "saturday": "saturday",
    "sat": "saturday",
    "sabado": "saturday",
}

# Every session lasts exactly one hour
SESSION_MINUTES = 60

MINUTES_PER_DAY = 24 * 60

# Search budgets
DEFAULT_NODE_LIMIT = 200_000
DEFAULT_TIME_LIMIT = 30  # seconds

# CP-SAT determinism
CP_SAT_RANDOM_SEED = 0
CP_SAT_WORKERS = 1
