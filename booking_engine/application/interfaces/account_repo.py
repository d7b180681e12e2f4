from booking_engine.domain.entities.listing import PayerProfile, PayoutAccount


class AccountRepo:
    async def get_payout_account(self, owner_id: str) -> PayoutAccount | None:
        raise NotImplementedError

    async def find_payout_account_by_processor_id(
        self,
        processor_account_id: str,
    ) -> PayoutAccount | None:
        raise NotImplementedError

    async def save_payout_account(self, account: PayoutAccount) -> PayoutAccount:
        raise NotImplementedError

    async def get_payer_profile(self, renter_id: str) -> PayerProfile | None:
        raise NotImplementedError

    async def save_payer_profile(self, profile: PayerProfile) -> PayerProfile:
        raise NotImplementedError
