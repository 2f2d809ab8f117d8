"""
Storage keys and limits shared by the client services. Keys are logical: the
cache store adds its own prefix.
"""

AUTH_TOKEN_KEY: str = "auth_token"
USER_PREFERENCES_KEY: str = "user_preferences"
ERROR_LOGS_KEY: str = "error_logs"
APP_VERSION_KEY: str = "app_version"
CACHE_NAMESPACE: str = "cache_"

FAVORITES_KEY: str = "favorites"
WATCHLIST_KEY: str = "watchlist"
WATCH_HISTORY_KEY: str = "watch_history"
SEARCH_HISTORY_KEY: str = "search_history"

WATCH_HISTORY_LIMIT: int = 50
SEARCH_HISTORY_LIMIT: int = 20

# Entries stored before now - STALE_ENTRY_AGE_SECONDS are dropped by cleanup()
STALE_ENTRY_AGE_SECONDS: int = 7 * 24 * 60 * 60

OFFLINE_QUEUED_MESSAGE: str = "Offline - request queued"
