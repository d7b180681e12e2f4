from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.domain.entities.listing import Listing
from booking_engine.infrastructure.db.tables import listings


def _to_listing(row) -> Listing:
    return Listing(
        id=row["id"],
        owner_id=row["owner_id"],
        daily_rate=row["daily_rate"],
        weekly_rate=row["weekly_rate"],
        monthly_rate=row["monthly_rate"],
        security_deposit=row["security_deposit"],
        instant_book=bool(row["instant_book"]),
        shipping_fee=row["shipping_fee"],
        currency_code=row["currency_code"],
        title=row["title"],
        created_at=row["created_at"],
    )


class ListingRepoSQL(ListingRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, listing: Listing) -> Listing:
        stmt = insert(listings).values(
            id=listing.id,
            owner_id=listing.owner_id,
            title=listing.title,
            daily_rate=listing.daily_rate,
            weekly_rate=listing.weekly_rate,
            monthly_rate=listing.monthly_rate,
            security_deposit=listing.security_deposit,
            shipping_fee=listing.shipping_fee,
            instant_book=listing.instant_book,
            currency_code=listing.currency_code,
            created_at=listing.created_at,
            booking_version=0,
        )
        await self._session.execute(stmt)
        return listing

    async def get(self, listing_id: str) -> Listing | None:
        stmt = select(listings).where(listings.c.id == listing_id).limit(1)
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        return _to_listing(row) if row else None

    async def lock_for_booking(self, listing_id: str) -> Listing | None:
        stmt = select(listings).where(listings.c.id == listing_id).with_for_update()
        result = await self._session.execute(stmt)
        row = result.mappings().first()
        if not row:
            return None
        # SQLite ignora FOR UPDATE; la escritura toma el lock de la base igual.
        await self._session.execute(
            update(listings)
            .where(listings.c.id == listing_id)
            .values(booking_version=listings.c.booking_version + 1)
        )
        return _to_listing(row)
