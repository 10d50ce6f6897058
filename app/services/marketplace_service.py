"""
Marketplace service.

Campus listings: creation goes through the content detector and a
supervisor review before a listing becomes searchable.
"""

import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ListingStatus, ListingType
from app.models.marketplace import MarketplaceListing
from app.repositories.marketplace_repository import MarketplaceListingRepository
from app.repositories.profile_repository import ProfileRepository
from app.services.base_service import BaseService, log_operation
from app.services.moderation import moderate_content_enhanced
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    ContentViolationError,
    InvalidStateTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.validators import validate_amount, validate_text


PRICED_TYPES = frozenset({ListingType.SELL, ListingType.RENT, ListingType.HOUSING})
MAX_IMAGES = 10


class MarketplaceService(BaseService):
    """Listing creation, review and search."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.listing_repo = MarketplaceListingRepository(session)
        self.profile_repo = ProfileRepository(session)

    async def _require_supervisor(self, profile_id: uuid.UUID) -> None:
        profile = await self.profile_repo.get_by_id(profile_id)
        if profile is None or not profile.is_supervisor:
            raise PermissionDeniedError("Only supervisors can review listings")

    async def _lock_owned(
        self, listing_id: uuid.UUID, seller_id: uuid.UUID
    ) -> MarketplaceListing:
        listing = await self.listing_repo.get_for_update(listing_id)
        if listing is None or listing.seller_id != seller_id:
            raise NotFoundError("Listing not found")
        return listing

    @staticmethod
    def _move(
        listing: MarketplaceListing,
        allowed_from: set[ListingStatus],
        target: ListingStatus,
    ) -> None:
        if ListingStatus(listing.status) not in allowed_from:
            raise InvalidStateTransitionError(listing.status, target.value)
        listing.status = target.value

    @log_operation
    async def create_listing(
        self,
        seller_id: uuid.UUID,
        listing_type: ListingType,
        title: str,
        description: str | None = None,
        price: object = None,
        city: str | None = None,
        image_urls: list[str] | None = None,
    ) -> MarketplaceListing:
        """
        Create a listing awaiting review.

        Raises:
            ValidationError: Bad field values
            ContentViolationError: Title or description shares contact details
        """
        valid, title_text, error = validate_text(title, 255, "Title")
        if not valid:
            raise ValidationError(error)
        valid, description_text, error = validate_text(
            description, 5000, "Description", required=False
        )
        if not valid:
            raise ValidationError(error)

        parsed_price: Decimal | None = None
        if listing_type in PRICED_TYPES:
            valid, parsed_price, error = validate_amount(price, Decimal("0"))
            if not valid:
                raise ValidationError(error)
        elif listing_type == ListingType.FREE:
            parsed_price = Decimal("0")

        images = list(image_urls or [])
        if len(images) > MAX_IMAGES:
            raise ValidationError(f"At most {MAX_IMAGES} images per listing")
        if any(not str(url).startswith("https://") for url in images):
            raise ValidationError("Image URLs must use https")

        text = "\n".join(part for part in (title_text, description_text) if part)
        result = moderate_content_enhanced(text)
        if not result.allowed:
            self.logger.info(
                f"Listing from {seller_id} blocked by moderation",
                extra={"violation_types": [t.value for t in result.violation_types]},
            )
            raise ContentViolationError(
                result.message or "Listing contains restricted content",
                violation_types=[t.value for t in result.violation_types],
                severity=result.severity.value,
            )

        return await self.listing_repo.create(
            seller_id=seller_id,
            listing_type=listing_type.value,
            title=title_text,
            description=description_text,
            price=parsed_price,
            city=city.strip() if city else None,
            image_urls=images or None,
            status=ListingStatus.PENDING_REVIEW.value,
        )

    @log_operation
    async def approve_listing(
        self, listing_id: uuid.UUID, supervisor_id: uuid.UUID
    ) -> MarketplaceListing:
        await self._require_supervisor(supervisor_id)
        listing = self._require(
            await self.listing_repo.get_for_update(listing_id), "Listing not found"
        )
        self._move(listing, {ListingStatus.PENDING_REVIEW}, ListingStatus.ACTIVE)
        listing.reviewed_by = supervisor_id
        listing.reviewed_at = utc_now()
        listing.rejection_reason = None
        await self.session.flush()
        return listing

    @log_operation
    async def reject_listing(
        self, listing_id: uuid.UUID, supervisor_id: uuid.UUID, reason: str
    ) -> MarketplaceListing:
        valid, reason_text, error = validate_text(reason, 1000, "Reason")
        if not valid:
            raise ValidationError(error)

        await self._require_supervisor(supervisor_id)
        listing = self._require(
            await self.listing_repo.get_for_update(listing_id), "Listing not found"
        )
        self._move(
            listing,
            {ListingStatus.PENDING_REVIEW, ListingStatus.ACTIVE},
            ListingStatus.REJECTED,
        )
        listing.reviewed_by = supervisor_id
        listing.reviewed_at = utc_now()
        listing.rejection_reason = reason_text
        await self.session.flush()
        return listing

    @log_operation
    async def mark_sold(
        self, listing_id: uuid.UUID, seller_id: uuid.UUID
    ) -> MarketplaceListing:
        listing = await self._lock_owned(listing_id, seller_id)
        target = (
            ListingStatus.RENTED
            if listing.listing_type
            in (ListingType.RENT.value, ListingType.HOUSING.value)
            else ListingStatus.SOLD
        )
        self._move(listing, {ListingStatus.ACTIVE}, target)
        await self.session.flush()
        return listing

    @log_operation
    async def remove_listing(
        self, listing_id: uuid.UUID, seller_id: uuid.UUID
    ) -> MarketplaceListing:
        listing = await self._lock_owned(listing_id, seller_id)
        if listing.status == ListingStatus.REMOVED.value:
            return listing
        listing.status = ListingStatus.REMOVED.value
        await self.session.flush()
        return listing

    async def get_listing(
        self, listing_id: uuid.UUID, viewer_id: uuid.UUID
    ) -> MarketplaceListing:
        """
        Get a listing; only active listings are public.

        Views by anyone but the seller are counted.
        """
        listing = self._require(
            await self.listing_repo.get_by_id(listing_id), "Listing not found"
        )
        if listing.seller_id == viewer_id:
            return listing
        if listing.status != ListingStatus.ACTIVE.value:
            raise NotFoundError("Listing not found")
        listing.view_count += 1
        await self.session.flush()
        return listing

    async def search_listings(
        self,
        listing_type: ListingType | None = None,
        query: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        city: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[MarketplaceListing]:
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError("min_price must not exceed max_price")
        return await self.listing_repo.search(
            listing_type=listing_type.value if listing_type else None,
            query=query,
            min_price=min_price,
            max_price=max_price,
            city=city,
            limit=min(max(limit, 1), 100),
            offset=max(offset, 0),
        )

    async def list_pending(
        self, supervisor_id: uuid.UUID, limit: int = 50
    ) -> list[MarketplaceListing]:
        await self._require_supervisor(supervisor_id)
        return await self.listing_repo.find_all(
            limit=limit, status=ListingStatus.PENDING_REVIEW.value
        )

    async def list_own(self, seller_id: uuid.UUID) -> list[MarketplaceListing]:
        return await self.listing_repo.find_all(seller_id=seller_id)
