"""
Payment Retry Service Constants.

Module: constants.py
Contains configuration constants for the persisted retry mechanism.
"""

from app.config.constants import (
    PERSISTED_RETRY_BASE_DELAY_MINUTES,
    PERSISTED_RETRY_BATCH_LIMIT,
    PERSISTED_RETRY_MAX_ATTEMPTS,
)

# Exponential backoff: 1min, 2min, 4min, 8min, 16min
BASE_RETRY_DELAY_SECONDS = PERSISTED_RETRY_BASE_DELAY_MINUTES * 60
MAX_RETRY_DELAY_SECONDS = BASE_RETRY_DELAY_SECONDS * 2 ** (PERSISTED_RETRY_MAX_ATTEMPTS - 1)
DEFAULT_MAX_RETRIES = PERSISTED_RETRY_MAX_ATTEMPTS
BATCH_LIMIT = PERSISTED_RETRY_BATCH_LIMIT
