from booking_engine.domain.entities.listing import Listing


class ListingRepo:
    async def add(self, listing: Listing) -> Listing:
        raise NotImplementedError

    async def get(self, listing_id: str) -> Listing | None:
        raise NotImplementedError

    async def lock_for_booking(self, listing_id: str) -> Listing | None:
        """
        Devuelve el listing serializando a los escritores de su calendario.

        Debe llamarse dentro de una transacción; el lock dura hasta el commit.
        """
        raise NotImplementedError
