"""Chat constants — defaults, limits, reference sentinels."""

# Session defaults
DEFAULT_SESSION_TITLE = "New Chat"
TITLE_PREFIX_LENGTH = 50
TITLE_ELLIPSIS = "..."
LIST_SESSIONS_LIMIT = 100

# Session summaries
LAST_MESSAGE_PREVIEW_LENGTH = 100

# References callers send when they hold no session id
PLACEHOLDER_REFERENCES = frozenset({"undefined", "null"})

# Fallback values when the analysis call degrades
DEFAULT_EMOTIONAL_STATE = "neutral"
DEFAULT_RISK_LEVEL = 0
DEFAULT_RECOMMENDED_APPROACH = "general support"
DEFAULT_GOAL = "general support"

# Per-client request limits
RATE_LIMIT_READ = "60/minute"
RATE_LIMIT_CREATE = "30/minute"
# Each turn makes two model calls
RATE_LIMIT_TURN = "20/minute"
