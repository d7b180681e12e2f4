import logging

from booking_engine.api.schemas.listings import RegisterListingRequest
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.listing_repo import ListingRepo
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.application.interfaces.uuid_generator import UUIDGenerator
from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.entities.listing import Listing
from booking_engine.domain.errors import ForbiddenError


class RegisterListingUseCase:
    def __init__(
        self,
        listing_repo: ListingRepo,
        transaction_manager: TransactionManager,
        uuid_generator: UUIDGenerator,
        clock: Clock,
    ) -> None:
        self._listing_repo = listing_repo
        self._transaction_manager = transaction_manager
        self._uuid_generator = uuid_generator
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, actor: Actor, request: RegisterListingRequest) -> Listing:
        if actor.role != ActorRole.OWNER:
            raise ForbiddenError("Only owners can register listings")

        listing = Listing(
            id=self._uuid_generator.generate_uuid(),
            owner_id=actor.id,
            title=request.title,
            daily_rate=request.daily_rate,
            weekly_rate=request.weekly_rate,
            monthly_rate=request.monthly_rate,
            security_deposit=request.security_deposit,
            shipping_fee=request.shipping_fee,
            instant_book=request.instant_book,
            currency_code=request.currency_code,
            created_at=self._clock.now(),
        )
        async with self._transaction_manager.start():
            await self._listing_repo.add(listing)

        self._logger.info(
            "Listing registered",
            extra={"listing_id": listing.id, "owner_id": actor.id},
        )
        return listing
