"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

# Response time metrics
api_request_duration = Histogram(
    "api_request_duration_seconds", "API request duration in seconds", ["method", "endpoint", "status"]
)

# Reports
reports_total = Counter("reports_total", "Total number of report submissions", ["reason", "created"])

reports_revoked_total = Counter("reports_revoked_total", "Total number of reports revoked by their reporter")

reports_latency_seconds = Histogram(
    "reports_latency_seconds", "Time to process report creation from request to response"
)

# Moderation
moderation_actions_total = Counter(
    "moderation_actions_total", "Total number of review decisions taken on reports", ["action"]
)

bans_total = Counter("bans_total", "Total number of bans written", ["ban_type", "source"])

unbans_total = Counter("unbans_total", "Total number of unban calls", ["was_banned"])

ambiguous_ban_targets_total = Counter(
    "ambiguous_ban_targets_total", "Ban-from-report attempts whose author could not be resolved"
)

# Admin sessions
admin_logins_total = Counter("admin_logins_total", "Total number of admin login attempts", ["outcome"])

admin_sessions_rejected_total = Counter(
    "admin_sessions_rejected_total", "Admin requests rejected by session validation", ["reason"]
)

# Notifications
notifications_failed_total = Counter("notifications_failed_total", "Notification deliveries that raised", ["channel"])
