"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.activity_log import ActivityLog
from app.models.base import Base
from app.models.chat import ChatMessage, ChatParticipant, ChatRoom
from app.models.marketplace import MarketplaceListing
from app.models.moderation_log import ModerationLog
from app.models.notification import Notification, PushSubscription
from app.models.payment import Payment, PaymentMethod, PaymentRetry
from app.models.profile import Profile
from app.models.project import Project, ProjectQuote
from app.models.wallet import PayoutRequest, Wallet, WalletTransaction


__all__ = [
    "ActivityLog",
    "Base",
    "ChatMessage",
    "ChatParticipant",
    "ChatRoom",
    "MarketplaceListing",
    "ModerationLog",
    "Notification",
    "Payment",
    "PaymentMethod",
    "PaymentRetry",
    "PayoutRequest",
    "Profile",
    "Project",
    "ProjectQuote",
    "PushSubscription",
    "Wallet",
    "WalletTransaction",
]
