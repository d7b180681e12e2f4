import logging

from booking_engine.application.interfaces.account_repo import AccountRepo
from booking_engine.application.interfaces.clock import Clock
from booking_engine.application.interfaces.payment_gateway import PaymentGateway
from booking_engine.application.interfaces.transaction_manager import TransactionManager
from booking_engine.domain.entities.actor import Actor, ActorRole
from booking_engine.domain.entities.listing import PayoutAccount
from booking_engine.domain.errors import ForbiddenError


class LinkPayoutAccountUseCase:
    """Asocia la cuenta conectada del owner y lee sus capacidades del procesador."""

    def __init__(
        self,
        account_repo: AccountRepo,
        payment_gateway: PaymentGateway,
        transaction_manager: TransactionManager,
        clock: Clock,
    ) -> None:
        self._account_repo = account_repo
        self._payment_gateway = payment_gateway
        self._transaction_manager = transaction_manager
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    async def execute(self, actor: Actor, processor_account_id: str) -> PayoutAccount:
        if actor.role != ActorRole.OWNER:
            raise ForbiddenError("Only owners can link a payout account")

        processor_account = await self._payment_gateway.retrieve_account(processor_account_id)
        account = PayoutAccount(
            owner_id=actor.id,
            processor_account_id=processor_account.id,
            charges_enabled=processor_account.charges_enabled,
            payouts_enabled=processor_account.payouts_enabled,
            updated_at=self._clock.now(),
        )
        async with self._transaction_manager.start():
            await self._account_repo.save_payout_account(account)

        self._logger.info(
            "Payout account linked",
            extra={
                "owner_id": actor.id,
                "processor_account_id": account.processor_account_id,
                "can_accept_payments": account.can_accept_payments,
            },
        )
        return account
