# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics — single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "pbl_requests_total",
    "Total HTTP requests to the PBL teams service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "pbl_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "pbl_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
TEAMS_CREATED = Counter(
    "pbl_teams_created_total",
    "Total teams created",
)
TEAM_CONFLICTS = Counter(
    "pbl_team_conflicts_total",
    "Team creations rejected because a member or name was already taken",
)
GRADES_RECORDED = Counter(
    "pbl_grades_recorded_total",
    "Total member grades recorded",
)
MESSAGES_BROADCAST = Counter(
    "pbl_messages_broadcast_total",
    "Total broadcast messages sent by teachers",
)
SHEET_SYNC_RUNS = Counter(
    "pbl_sheet_sync_runs_total",
    "Spreadsheet sync runs",
    ["direction", "outcome"],
)
SHEET_SYNC_LATENCY = Histogram(
    "pbl_sheet_sync_duration_seconds",
    "Spreadsheet sync duration in seconds",
    ["direction"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
TEACHERS_PROVISIONED = Counter(
    "pbl_teachers_provisioned_total",
    "Teacher accounts created from spreadsheet mentor columns",
)
