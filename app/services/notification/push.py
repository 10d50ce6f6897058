"""
Push subscription management.

Stores Web Push subscriptions (endpoint plus ``p256dh``/``auth`` keys)
handed over by browsers. Delivery itself is done elsewhere.
"""

import uuid
from datetime import timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.constants import PUSH_SUBSCRIPTION_STALE_DAYS
from app.models.notification import PushSubscription
from app.repositories.notification_repository import PushSubscriptionRepository
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import ValidationError
from app.utils.security import mask_sensitive


class PushSubscriptionMixin:
    """Mixin for Web Push subscription methods."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize push subscription mixin."""
        self.session = session
        self.push_repo = PushSubscriptionRepository(session)

    async def subscribe(
        self,
        profile_id: uuid.UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None = None,
    ) -> PushSubscription:
        """
        Register a browser subscription (upsert by endpoint).

        An endpoint re-registered by another profile (shared device) moves
        to the new profile.
        """
        if not endpoint or not endpoint.startswith("https://"):
            raise ValidationError("Push endpoint must be an https URL")
        if not p256dh or not auth:
            raise ValidationError("Push subscription keys are required")

        existing = await self.push_repo.get_by_endpoint(endpoint)
        if existing:
            existing.profile_id = profile_id
            existing.p256dh = p256dh
            existing.auth = auth
            existing.user_agent = user_agent
            await self.session.flush()
            logger.info(
                f"Push subscription {mask_sensitive(endpoint)} refreshed "
                f"for {profile_id}"
            )
            return existing

        subscription = await self.push_repo.create(
            profile_id=profile_id,
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
            user_agent=user_agent,
        )
        logger.info(
            f"Push subscription {mask_sensitive(endpoint)} added for {profile_id}"
        )
        return subscription

    async def unsubscribe(self, profile_id: uuid.UUID, endpoint: str) -> bool:
        return await self.push_repo.delete_by_endpoint(profile_id, endpoint)

    async def list_for_profile(
        self, profile_id: uuid.UUID
    ) -> list[PushSubscription]:
        return await self.push_repo.find_all(profile_id=profile_id)

    async def prune_stale(
        self, older_than_days: int = PUSH_SUBSCRIPTION_STALE_DAYS
    ) -> int:
        """Delete subscriptions without a successful delivery in N days."""
        cutoff = utc_now() - timedelta(days=older_than_days)
        removed = await self.push_repo.delete_stale(cutoff)
        if removed:
            logger.info(f"Pruned {removed} stale push subscriptions")
        return removed
