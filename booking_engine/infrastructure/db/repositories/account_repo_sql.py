from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.application.interfaces.account_repo import AccountRepo
from booking_engine.domain.entities.listing import PayerProfile, PayoutAccount
from booking_engine.infrastructure.db.tables import payer_profiles, payout_accounts


def _to_payout_account(row) -> PayoutAccount:
    return PayoutAccount(
        owner_id=row["owner_id"],
        processor_account_id=row["processor_account_id"],
        charges_enabled=bool(row["charges_enabled"]),
        payouts_enabled=bool(row["payouts_enabled"]),
        updated_at=row["updated_at"],
    )


class AccountRepoSQL(AccountRepo):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_payout_account(self, owner_id: str) -> PayoutAccount | None:
        stmt = select(payout_accounts).where(payout_accounts.c.owner_id == owner_id)
        row = (await self._session.execute(stmt)).mappings().first()
        return _to_payout_account(row) if row else None

    async def find_payout_account_by_processor_id(
        self,
        processor_account_id: str,
    ) -> PayoutAccount | None:
        stmt = select(payout_accounts).where(
            payout_accounts.c.processor_account_id == processor_account_id
        )
        row = (await self._session.execute(stmt)).mappings().first()
        return _to_payout_account(row) if row else None

    async def save_payout_account(self, account: PayoutAccount) -> PayoutAccount:
        values = {
            "processor_account_id": account.processor_account_id,
            "charges_enabled": account.charges_enabled,
            "payouts_enabled": account.payouts_enabled,
            "updated_at": account.updated_at,
        }
        result = await self._session.execute(
            update(payout_accounts)
            .where(payout_accounts.c.owner_id == account.owner_id)
            .values(values)
        )
        if result.rowcount == 0:
            await self._session.execute(
                insert(payout_accounts).values(owner_id=account.owner_id, **values)
            )
        return account

    async def get_payer_profile(self, renter_id: str) -> PayerProfile | None:
        stmt = select(payer_profiles).where(payer_profiles.c.renter_id == renter_id)
        row = (await self._session.execute(stmt)).mappings().first()
        if not row:
            return None
        return PayerProfile(
            renter_id=row["renter_id"],
            processor_customer_id=row["processor_customer_id"],
            created_at=row["created_at"],
        )

    async def save_payer_profile(self, profile: PayerProfile) -> PayerProfile:
        await self._session.execute(
            insert(payer_profiles).values(
                renter_id=profile.renter_id,
                processor_customer_id=profile.processor_customer_id,
                created_at=profile.created_at,
            )
        )
        return profile
