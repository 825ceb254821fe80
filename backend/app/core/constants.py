"""
Centralized constants for the scheduler and the notification engine.

Change job IDs, caps and user-facing texts here instead of scattering literals
across jobs, services and routes. Tunables that vary per environment live in app.config.
"""
# Scheduler job IDs (replace_existing keys on these)
DUE_DEBTS_SWEEP_JOB_ID = "due_debts_sweep"

# Notification inbox: GET /notifications limit bounds
NOTIFICATIONS_MAX_LIMIT = 100

# PAYMENT_DUE notification / push text
PAYMENT_DUE_TITLE = "To'lov muddati keldi"
PAYMENT_DUE_MESSAGE = "{name} bugun {amount} so'm qaytarishi kerak"

# Lateness buckets for the overdue summary (whole days past the due date)
CRITICAL_OVERDUE_DAYS = 10
CURRENCY_SUFFIX = "so'm"

# Expo push tokens look like ExponentPushToken[xxxx] (legacy) or ExpoPushToken[xxxx]
EXPO_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")

# Telegram: secret header sent with each webhook update when a secret is configured
TELEGRAM_SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"
TELEGRAM_PARSE_MODE = "HTML"
