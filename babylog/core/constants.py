"""Backup format version, day-window bounds and collection names."""

# ── BACKUP FORMAT ────────────────────────────────────────────────────────────
# Bump when a record shape changes incompatibly. Import only rejects a missing/zero version.
SCHEMA_VERSION = 1

# baby-log-20240301-0815.json
BACKUP_FILENAME_PREFIX = "baby-log"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M"

# ── DAY WINDOW ───────────────────────────────────────────────────────────────
# A day is clipped to [00:00:00, 23:59:59]; the last second is not counted.
DAY_START_TIME = "00:00:00"
DAY_END_TIME = "23:59:59"

MS_PER_HOUR = 3_600_000
SLEEP_HOURS_DECIMALS = 1

# ── COLLECTIONS ──────────────────────────────────────────────────────────────
# Wire names, in backup document order
PROFILES = "profiles"
DAILY_LOGS = "dailyLogs"
FEED_EVENTS = "feedEvents"
SLEEP_EVENTS = "sleepEvents"
DIAPER_EVENTS = "diaperEvents"
GROWTH_RECORDS = "growthRecords"
VACCINE_RECORDS = "vaccineRecords"
MILESTONES = "milestones"
JOURNAL_ENTRIES = "journalEntries"

ALL_COLLECTIONS = (
    PROFILES,
    DAILY_LOGS,
    FEED_EVENTS,
    SLEEP_EVENTS,
    DIAPER_EVENTS,
    GROWTH_RECORDS,
    VACCINE_RECORDS,
    MILESTONES,
    JOURNAL_ENTRIES,
)

# Raw events that feed the daily aggregate
AGGREGATED_COLLECTIONS = (FEED_EVENTS, SLEEP_EVENTS, DIAPER_EVENTS)
