"""
Enumerations shared by models and services.

Values mirror the Postgres enum types of the hosted schema, so they are
stored as plain strings.
"""

from enum import Enum


class ProfileRole(str, Enum):
    CLIENT = "client"
    SUPERVISOR = "supervisor"
    DOER = "doer"
    ADMIN = "admin"


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    ANALYZING = "analyzing"
    QUOTED = "quoted"
    PAYMENT_PENDING = "payment_pending"
    PAID = "paid"
    ASSIGNING = "assigning"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    SUBMITTED_FOR_QC = "submitted_for_qc"
    QC_IN_PROGRESS = "qc_in_progress"
    QC_APPROVED = "qc_approved"
    QC_REJECTED = "qc_rejected"
    DELIVERED = "delivered"
    REVISION_REQUESTED = "revision_requested"
    IN_REVISION = "in_revision"
    COMPLETED = "completed"
    AUTO_APPROVED = "auto_approved"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class ServiceType(str, Enum):
    NEW_PROJECT = "new_project"
    PROOFREADING = "proofreading"
    PLAGIARISM_CHECK = "plagiarism_check"
    AI_DETECTION = "ai_detection"
    EXPERT_OPINION = "expert_opinion"


class QuoteStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    REFUND = "refund"
    WITHDRAWAL = "withdrawal"
    TOP_UP = "top_up"
    PROJECT_PAYMENT = "project_payment"
    PROJECT_EARNING = "project_earning"
    COMMISSION = "commission"
    BONUS = "bonus"
    PENALTY = "penalty"
    REVERSAL = "reversal"


class PaymentStatus(str, Enum):
    INITIATED = "initiated"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentPurpose(str, Enum):
    PROJECT = "project"
    WALLET_TOP_UP = "wallet_top_up"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentMethodType(str, Enum):
    CARD = "card"
    UPI = "upi"


class NotificationType(str, Enum):
    PROJECT_SUBMITTED = "project_submitted"
    QUOTE_READY = "quote_ready"
    PAYMENT_RECEIVED = "payment_received"
    PROJECT_ASSIGNED = "project_assigned"
    TASK_AVAILABLE = "task_available"
    TASK_ASSIGNED = "task_assigned"
    WORK_SUBMITTED = "work_submitted"
    QC_APPROVED = "qc_approved"
    QC_REJECTED = "qc_rejected"
    REVISION_REQUESTED = "revision_requested"
    PROJECT_DELIVERED = "project_delivered"
    PROJECT_COMPLETED = "project_completed"
    NEW_MESSAGE = "new_message"
    PAYOUT_PROCESSED = "payout_processed"
    SYSTEM_ALERT = "system_alert"
    PROMOTIONAL = "promotional"


class ChatRoomType(str, Enum):
    PROJECT_USER_SUPERVISOR = "project_user_supervisor"
    PROJECT_SUPERVISOR_DOER = "project_supervisor_doer"
    PROJECT_ALL = "project_all"
    SUPPORT = "support"
    DIRECT = "direct"


class MessageType(str, Enum):
    TEXT = "text"
    FILE = "file"
    IMAGE = "image"
    SYSTEM = "system"
    ACTION = "action"


class ListingType(str, Enum):
    SELL = "sell"
    RENT = "rent"
    FREE = "free"
    OPPORTUNITY = "opportunity"
    HOUSING = "housing"
    COMMUNITY_POST = "community_post"
    POLL = "poll"
    EVENT = "event"


class ListingStatus(str, Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    SOLD = "sold"
    RENTED = "rented"
    EXPIRED = "expired"
    REJECTED = "rejected"
    REMOVED = "removed"


class ViolationType(str, Enum):
    PHONE = "phone"
    EMAIL = "email"
    SOCIAL_MEDIA = "social_media"
    ADDRESS = "address"
    LINK = "link"
    MESSAGING_APP = "messaging_app"


class ModerationSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ModerationAction(str, Enum):
    BLOCKED = "blocked"
    WARNED = "warned"
    FLAGGED = "flagged"


class RetryOperation(str, Enum):
    """Gateway operations that can be persisted for background retry."""

    CREATE_REFUND = "create_refund"


class PaymentProvider(str, Enum):
    RAZORPAY = "razorpay"
    WALLET = "wallet"
