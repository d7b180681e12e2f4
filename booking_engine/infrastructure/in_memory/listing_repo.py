import copy

from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.domain.entities.listing import Listing
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryListingRepo(ListingRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add(self, listing: Listing) -> Listing:
        self._store.listings[listing.id] = copy.deepcopy(listing)
        return listing

    async def get(self, listing_id: str) -> Listing | None:
        listing = self._store.listings.get(listing_id)
        return copy.deepcopy(listing) if listing else None

    async def lock_for_booking(self, listing_id: str) -> Listing | None:
        # El transaction manager ya serializa a todos los escritores.
        return await self.get(listing_id)
