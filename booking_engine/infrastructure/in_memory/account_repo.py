import copy

from booking_engine.application.interfaces.account_repo import AccountRepo
from booking_engine.domain.entities.listing import PayerProfile, PayoutAccount
from booking_engine.infrastructure.in_memory.store import InMemoryStore


class InMemoryAccountRepo(AccountRepo):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_payout_account(self, owner_id: str) -> PayoutAccount | None:
        account = self._store.payout_accounts.get(owner_id)
        return copy.deepcopy(account) if account else None

    async def find_payout_account_by_processor_id(
        self,
        processor_account_id: str,
    ) -> PayoutAccount | None:
        for account in self._store.payout_accounts.values():
            if account.processor_account_id == processor_account_id:
                return copy.deepcopy(account)
        return None

    async def save_payout_account(self, account: PayoutAccount) -> PayoutAccount:
        self._store.payout_accounts[account.owner_id] = copy.deepcopy(account)
        return account

    async def get_payer_profile(self, renter_id: str) -> PayerProfile | None:
        profile = self._store.payer_profiles.get(renter_id)
        return copy.deepcopy(profile) if profile else None

    async def save_payer_profile(self, profile: PayerProfile) -> PayerProfile:
        self._store.payer_profiles[profile.renter_id] = copy.deepcopy(profile)
        return profile
