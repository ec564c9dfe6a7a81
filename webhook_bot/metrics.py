from prometheus_client import Counter

# Dispatched updates by update type ("message", "callback_query", "unknown", ...).
UPDATE_TOTAL = Counter(
    "telegram_updates_total",
    "Total number of Telegram updates dispatched",
    ["type"],
)

# Text message routes ("/photo", "video", "usage", ...).
COMMAND_TOTAL = Counter(
    "telegram_commands_total",
    "Total number of text messages routed by command",
    ["command"],
)

# Failures caught at the dispatch boundary (api or other).
UPDATE_ERRORS = Counter(
    "telegram_update_errors_total",
    "Total number of update handler failures",
    ["kind"],
)
