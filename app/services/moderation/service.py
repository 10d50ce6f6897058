"""
Moderation service.

Stateful side of chat moderation: logs blocked messages, rate limits
repeat offenders and escalates warnings.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import (
    MODERATION_ESCALATION_THRESHOLD,
    MODERATION_MAX_VIOLATIONS_PER_DAY,
    MODERATION_MAX_VIOLATIONS_PER_HOUR,
    MODERATION_SUMMARY_CACHE_SECONDS,
    MODERATION_WARNING_LEVELS,
)
from app.models.enums import ModerationAction, ModerationSeverity
from app.models.moderation_log import ModerationLog
from app.repositories.moderation_log_repository import ModerationLogRepository
from app.services.base_service import BaseService
from app.utils.datetime_utils import utc_now

from .detector import ModerationResult, moderate_content, moderate_content_enhanced


WARNING_MESSAGES = {
    "first": (
        "This is your first warning. Sharing personal information is not "
        "allowed for your safety."
    ),
    "second": (
        "This is your second warning. Continued violations may result in "
        "temporary restrictions."
    ),
    "final": (
        "Final warning: You have been temporarily restricted from sending "
        "messages. Please contact support."
    ),
    "rate_limited": (
        "You have been temporarily restricted from sending messages due to "
        "repeated violations. Please try again later."
    ),
}

SUMMARY_CACHE_PREFIX = "moderation:summary:"


def warning_level_for(total_violations: int) -> str:
    """Escalation level for a lifetime violation count."""
    for threshold, level in MODERATION_WARNING_LEVELS:
        if total_violations >= threshold:
            return level
    return "none"


@dataclass
class UserViolationSummary:
    """Violation counters of one profile."""

    profile_id: uuid.UUID
    total_violations: int = 0
    recent_violations: int = 0  # last hour
    daily_violations: int = 0
    last_violation_at: datetime | None = None
    is_rate_limited: bool = False
    warning_level: str = "none"

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile_id": str(self.profile_id),
            "total_violations": self.total_violations,
            "recent_violations": self.recent_violations,
            "daily_violations": self.daily_violations,
            "last_violation_at": (
                self.last_violation_at.isoformat()
                if self.last_violation_at else None
            ),
            "is_rate_limited": self.is_rate_limited,
            "warning_level": self.warning_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserViolationSummary":
        last = data.get("last_violation_at")
        return cls(
            profile_id=uuid.UUID(data["profile_id"]),
            total_violations=data["total_violations"],
            recent_violations=data["recent_violations"],
            daily_violations=data["daily_violations"],
            last_violation_at=datetime.fromisoformat(last) if last else None,
            is_rate_limited=data["is_rate_limited"],
            warning_level=data["warning_level"],
        )


@dataclass
class ModerationActionResult:
    """What the chat layer should do with a message."""

    allowed: bool
    result: ModerationResult
    summary: UserViolationSummary | None = None
    rate_limited: bool = False
    warning_message: str | None = None
    should_notify_admin: bool = False


class ModerationService(BaseService):
    """
    Moderation service.

    Violation summaries are cached in Redis when a client is given; Redis
    failures degrade to uncached reads.
    """

    def __init__(
        self, session: AsyncSession, redis_client: Any | None = None
    ) -> None:
        super().__init__(session)
        self.redis_client = redis_client
        self.log_repo = ModerationLogRepository(session)

    async def moderate_message(
        self,
        content: str,
        profile_id: uuid.UUID,
        project_id: uuid.UUID | None = None,
        room_id: uuid.UUID | None = None,
    ) -> ModerationActionResult:
        """
        Moderate a chat message before it is stored.

        Rate-limited senders are blocked without analysing the content.
        Blocked messages are logged and escalate the sender's warning level.

        Args:
            content: Message text
            profile_id: Sender
            project_id: Project the room belongs to, if any
            room_id: Chat room

        Returns:
            ModerationActionResult
        """
        summary = await self.get_user_violation_summary(profile_id)

        if summary.is_rate_limited:
            self.logger.info(
                f"Message from rate-limited profile {profile_id} blocked",
                extra={"profile_id": str(profile_id)},
            )
            return ModerationActionResult(
                allowed=False,
                result=ModerationResult(
                    allowed=False,
                    message=WARNING_MESSAGES["rate_limited"],
                    severity=ModerationSeverity.HIGH,
                    sanitized_content=content,
                ),
                summary=summary,
                rate_limited=True,
                warning_message=WARNING_MESSAGES["rate_limited"],
            )

        result = moderate_content_enhanced(content)
        if result.allowed:
            return ModerationActionResult(
                allowed=True, result=result, summary=summary
            )

        await self.log_repo.create(
            profile_id=profile_id,
            project_id=project_id,
            room_id=room_id,
            original_content=content,
            sanitized_content=result.sanitized_content,
            violation_types=[t.value for t in result.violation_types],
            violations={
                "evasion_detected": result.evasion_detected,
                "matches": [v.to_dict() for v in result.violations],
            },
            severity=result.severity.value,
            action=ModerationAction.BLOCKED.value,
        )

        summary = await self.get_user_violation_summary(
            profile_id, use_cache=False
        )

        if summary.is_rate_limited:
            warning = WARNING_MESSAGES["rate_limited"]
        else:
            warning = WARNING_MESSAGES.get(
                summary.warning_level, WARNING_MESSAGES["first"]
            )

        should_notify_admin = (
            summary.total_violations >= MODERATION_ESCALATION_THRESHOLD
            or result.severity == ModerationSeverity.HIGH
        )

        self.logger.warning(
            f"Blocked message from profile {profile_id}: "
            f"{[t.value for t in result.violation_types]}",
            extra={
                "profile_id": str(profile_id),
                "room_id": str(room_id) if room_id else None,
                "severity": result.severity.value,
                "total_violations": summary.total_violations,
            },
        )

        return ModerationActionResult(
            allowed=False,
            result=result,
            summary=summary,
            rate_limited=summary.is_rate_limited,
            warning_message=warning,
            should_notify_admin=should_notify_admin,
        )

    def quick_check(self, content: str) -> ModerationResult:
        """Detector only: no logging, no rate limit (typing indicators)."""
        return moderate_content(content)

    async def get_user_violation_summary(
        self, profile_id: uuid.UUID, use_cache: bool = True
    ) -> UserViolationSummary:
        """
        Violation counters for a profile.

        Rate limited at 5 violations in the last hour or 15 in the last
        day. Violations released by ``clear_rate_limit`` do not count.
        """
        if use_cache:
            cached = await self._get_cached_summary(profile_id)
            if cached is not None:
                return cached

        now = utc_now()
        hour_count = await self.log_repo.count_since(
            profile_id, now - timedelta(hours=1), limit_only=True
        )
        day_count = await self.log_repo.count_since(
            profile_id, now - timedelta(days=1), limit_only=True
        )
        total = await self.log_repo.count_since(profile_id)

        summary = UserViolationSummary(
            profile_id=profile_id,
            total_violations=total,
            recent_violations=hour_count,
            daily_violations=day_count,
            last_violation_at=await self.log_repo.last_violation_at(profile_id),
            is_rate_limited=(
                hour_count >= MODERATION_MAX_VIOLATIONS_PER_HOUR
                or day_count >= MODERATION_MAX_VIOLATIONS_PER_DAY
            ),
            warning_level=warning_level_for(total),
        )

        await self._cache_summary(summary)
        return summary

    async def get_violation_history(
        self, profile_id: uuid.UUID, limit: int = 50
    ) -> list[ModerationLog]:
        return await self.log_repo.find_for_profile(profile_id, limit=limit)

    async def get_project_violation_stats(
        self, project_id: uuid.UUID
    ) -> dict[str, Any]:
        """
        Aggregate violations inside one project.

        Returns:
            Dict with total_violations, unique_profiles, violations_by_type
            and the 10 most recent log rows
        """
        logs = await self.log_repo.find_for_project(project_id)

        by_type: dict[str, int] = {}
        for entry in logs:
            for violation_type in entry.violation_types:
                by_type[violation_type] = by_type.get(violation_type, 0) + 1

        return {
            "total_violations": len(logs),
            "unique_profiles": len({entry.profile_id for entry in logs}),
            "violations_by_type": by_type,
            "recent_violations": logs[:10],
        }

    async def clear_rate_limit(self, profile_id: uuid.UUID) -> int:
        """
        Lift a rate limit (supervisor action).

        Past violations stay in the history and the lifetime total but no
        longer count toward the hourly and daily limits.

        Returns:
            Number of log rows released
        """
        released = await self.log_repo.release_from_limit(profile_id)
        await self._invalidate_summary(profile_id)
        self.logger.info(
            f"Rate limit cleared for profile {profile_id} "
            f"({released} violations released)"
        )
        return released

    # Summary cache

    def _cache_key(self, profile_id: uuid.UUID) -> str:
        return f"{SUMMARY_CACHE_PREFIX}{profile_id}"

    async def _get_cached_summary(
        self, profile_id: uuid.UUID
    ) -> UserViolationSummary | None:
        if not self.redis_client:
            return None
        try:
            raw = await self.redis_client.get(self._cache_key(profile_id))
        except (RedisError, ConnectionError, TimeoutError) as e:
            self.logger.warning(
                f"Redis error reading moderation summary: {type(e).__name__}. "
                "Continuing without cache."
            )
            return None
        if not raw:
            return None
        try:
            return UserViolationSummary.from_dict(json.loads(raw))
        except (ValueError, KeyError) as e:
            self.logger.warning(f"Discarding corrupt moderation summary: {e}")
            return None

    async def _cache_summary(self, summary: UserViolationSummary) -> None:
        if not self.redis_client:
            return
        try:
            await self.redis_client.setex(
                self._cache_key(summary.profile_id),
                MODERATION_SUMMARY_CACHE_SECONDS,
                json.dumps(summary.to_dict()),
            )
        except (RedisError, ConnectionError, TimeoutError) as e:
            self.logger.warning(
                f"Redis error caching moderation summary: {type(e).__name__}"
            )

    async def _invalidate_summary(self, profile_id: uuid.UUID) -> None:
        if not self.redis_client:
            return
        try:
            await self.redis_client.delete(self._cache_key(profile_id))
        except (RedisError, ConnectionError, TimeoutError) as e:
            self.logger.warning(
                f"Redis error clearing moderation summary: {type(e).__name__}"
            )
