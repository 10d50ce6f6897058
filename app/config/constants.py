"""
Application constants.

Centralized constants for the application.
"""

from decimal import Decimal

# ========================================================================
# PAYMENT RETRY CONSTANTS
# ========================================================================

# In-request retry (gateway calls)
PAYMENT_RETRY_MAX_RETRIES = 3  # Attempts per gateway call
PAYMENT_RETRY_INITIAL_DELAY_SECONDS = 1.0  # Delay before second attempt
PAYMENT_RETRY_MAX_DELAY_SECONDS = 10.0  # Cap for a single delay
PAYMENT_RETRY_MULTIPLIER = 2.0  # 1s, 2s, 4s, 8s, 10s...
PAYMENT_RETRY_JITTER_FACTOR = 0.1  # Up to +10% per delay

# HTTP statuses worth retrying besides 5xx
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})

# Idempotency keys
IDEMPOTENCY_WINDOW_SECONDS = 60  # Time bucket for key derivation
IDEMPOTENCY_KEY_HASH_LENGTH = 16  # Hex chars kept from the digest

# Persisted retries (background job)
PERSISTED_RETRY_BASE_DELAY_MINUTES = 1  # 1min, 2min, 4min, 8min, 16min
PERSISTED_RETRY_MAX_ATTEMPTS = 5  # Attempts before moving to DLQ
PERSISTED_RETRY_BATCH_LIMIT = 100

# Gateway HTTP timeout (seconds)
PAYMENT_GATEWAY_TIMEOUT = 15.0

# ========================================================================
# PRICING CONSTANTS (INR)
# ========================================================================

PRICE_PER_WORD = Decimal("0.5")
PRICE_PER_PAGE = Decimal("150")
MINIMUM_BASE_PRICE = Decimal("500")

# Urgency multipliers keyed by hours-until-deadline upper bound
URGENCY_MULTIPLIERS = (
    (24, Decimal("1.5")),
    (48, Decimal("1.3")),
    (72, Decimal("1.15")),
)

COMPLEXITY_MULTIPLIERS = {
    "easy": Decimal("1"),
    "medium": Decimal("1.2"),
    "hard": Decimal("1.5"),
}

GST_PERCENT = Decimal("18")
SUPERVISOR_PERCENT = Decimal("15")
PLATFORM_PERCENT = Decimal("20")

QUOTE_VALIDITY_HOURS = 48

# ========================================================================
# WALLET CONSTANTS
# ========================================================================

MINIMUM_PAYOUT_AMOUNT = Decimal("500")
MINIMUM_TOP_UP_AMOUNT = Decimal("100")
MAXIMUM_TOP_UP_AMOUNT = Decimal("100000")
DEFAULT_CURRENCY = "INR"

# ========================================================================
# MODERATION CONSTANTS
# ========================================================================

MODERATION_MAX_VIOLATIONS_PER_HOUR = 5
MODERATION_MAX_VIOLATIONS_PER_DAY = 15
MODERATION_ESCALATION_THRESHOLD = 10
MODERATION_SUMMARY_CACHE_SECONDS = 300  # 5 minutes

# Total violations needed for each warning level
MODERATION_WARNING_LEVELS = (
    (10, "final"),
    (6, "second"),
    (3, "first"),
)

MODERATION_MIN_MATCH_LENGTH = 3

# ========================================================================
# RATE LIMIT CONSTANTS
# ========================================================================

RATE_LIMIT_WINDOW_SECONDS = 60
PAYMENT_WRITE_LIMIT_PER_MINUTE = 5
PAYMENT_READ_LIMIT_PER_MINUTE = 10

# ========================================================================
# CHAT & NOTIFICATION CONSTANTS
# ========================================================================

CHAT_MESSAGE_MAX_LENGTH = 5000
CHAT_PAGE_SIZE = 50
NOTIFICATION_PAGE_SIZE = 50
PUSH_SUBSCRIPTION_STALE_DAYS = 60

# ========================================================================
# LOCK TIMEOUTS (seconds)
# ========================================================================

DISTRIBUTED_LOCK_TIMEOUT = 30
LOCK_TIMEOUT_LONG = 300
