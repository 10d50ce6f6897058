"""
Marketplace repository.

Listing search.
"""

from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ListingStatus
from app.models.marketplace import MarketplaceListing
from app.repositories.base import BaseRepository


class MarketplaceListingRepository(BaseRepository[MarketplaceListing]):
    """Listing repository."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(MarketplaceListing, session)

    async def search(
        self,
        listing_type: str | None = None,
        query: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        city: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[MarketplaceListing]:
        """
        Search active listings.

        Args:
            listing_type: Restrict to one listing type
            query: Case-insensitive substring of title or description
            min_price: Inclusive lower price bound
            max_price: Inclusive upper price bound
            city: Exact city (case-insensitive)
            limit: Page size
            offset: Rows to skip

        Returns:
            Matching listings, newest first
        """
        stmt = select(MarketplaceListing).where(
            MarketplaceListing.status == ListingStatus.ACTIVE.value
        )

        if listing_type:
            stmt = stmt.where(MarketplaceListing.listing_type == listing_type)
        if query:
            pattern = f"%{query.strip()}%"
            stmt = stmt.where(
                or_(
                    MarketplaceListing.title.ilike(pattern),
                    MarketplaceListing.description.ilike(pattern),
                )
            )
        if min_price is not None:
            stmt = stmt.where(MarketplaceListing.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(MarketplaceListing.price <= max_price)
        if city:
            stmt = stmt.where(MarketplaceListing.city.ilike(city.strip()))

        stmt = (
            stmt.order_by(MarketplaceListing.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
