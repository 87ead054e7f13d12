"""ChainOps constants."""

from __future__ import annotations

# API
DEFAULT_API_URL = "http://127.0.0.1:8095"
API_URL_ENV_VAR = "CHAINOPS_API_URL"
USER_AGENT = "chainops-console"

# Refresh timing
REFRESH_INTERVAL_S = 30
REQUEST_TIMEOUT_S = 10
# Barrier deadline for a whole cycle; requests time out individually before this
CYCLE_DEADLINE_S = 45

# Cron projection
UNSCHEDULED_SORT_KEY = 99999
CRON_FIELD_COUNT = 6

# Dashboard
DEFAULT_SCHEDULE_LIMIT = 6
ISSUE_DETAILS_DISPLAY_LIMIT = 3
ACTIVITY_DISPLAY_LIMIT = 8

# Local state
STATE_DIR_NAME = ".chainops"
STATE_DIR_ENV_VAR = "CHAINOPS_DIR"
DB_FILE_NAME = "chainops.db"
CONSOLE_LOG_FILE_NAME = "console.log"

# Node operations that carry a cron schedule: (operation_type, enabled_field, schedule_field)
NODE_SCHEDULED_OPERATIONS = (
    ("pruning", "pruning_enabled", "pruning_schedule"),
    ("snapshot", "snapshots_enabled", "snapshot_schedule"),
    ("state_sync", "state_sync_enabled", "state_sync_schedule"),
)

OPERATION_LABELS = {
    "pruning": "Pruning",
    "snapshot": "Snapshot",
    "state_sync": "State Sync",
    "restore": "Restore",
    "restart": "Restart",
}
