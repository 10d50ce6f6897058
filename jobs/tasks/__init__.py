"""
Background tasks.

Importing this package registers every actor with the broker.
"""

import jobs.broker  # noqa: F401  (sets the default broker before actors register)
from jobs.tasks.payment_retry import process_payment_retries
from jobs.tasks.push_cleanup import prune_push_subscriptions
from jobs.tasks.quote_expiry import expire_stale_quotes

__all__ = [
    "expire_stale_quotes",
    "process_payment_retries",
    "prune_push_subscriptions",
]
