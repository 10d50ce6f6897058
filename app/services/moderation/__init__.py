"""
Chat content moderation.

``detector`` holds the pure pattern matching, ``service`` the logging,
rate limiting and warning escalation built on top of it.
"""

from .detector import (
    ModerationResult,
    ViolationMatch,
    build_violation_message,
    detect_evasion_attempt,
    moderate_content,
    moderate_content_enhanced,
    normalize_for_detection,
)
from .service import (
    WARNING_MESSAGES,
    ModerationActionResult,
    ModerationService,
    UserViolationSummary,
    warning_level_for,
)

__all__ = [
    "ModerationActionResult",
    "ModerationResult",
    "ModerationService",
    "UserViolationSummary",
    "ViolationMatch",
    "WARNING_MESSAGES",
    "build_violation_message",
    "detect_evasion_attempt",
    "moderate_content",
    "moderate_content_enhanced",
    "normalize_for_detection",
    "warning_level_for",
]
