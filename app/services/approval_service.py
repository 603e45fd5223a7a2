"""Approval queue operations."""

from datetime import datetime

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.accounts import accounts
from app.models.approval_requests import approval_requests


class ApprovalQueue:
    """
    Professional accounts awaiting an admin decision.

    A request is open while ``resolved_at`` is NULL. Writes here never
    commit; the caller owns the transaction so account and queue change together.
    """

    # Newest open requests shown on the admin overview
    OVERVIEW_LIMIT = 200

    def __init__(self, db: AsyncSession):
        """Initialize queue with a database session."""
        self.db = db

    async def open_request(self, account_id: str, submitted_at: datetime) -> None:
        """Insert an open request for an account."""
        await self.db.execute(
            insert(approval_requests).values(account_id=account_id, submitted_at=submitted_at)
        )

    async def get_open_request(self, account_id: str) -> dict | None:
        """Get the open request of an account, if any."""
        query = select(approval_requests).where(
            approval_requests.c.account_id == account_id,
            approval_requests.c.resolved_at.is_(None),
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        return dict(row) if row else None

    async def list_history(self, account_id: str) -> list[dict]:
        """All requests of an account, oldest first."""
        query = (
            select(approval_requests)
            .where(approval_requests.c.account_id == account_id)
            .order_by(approval_requests.c.submitted_at, approval_requests.c.id)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def list_pending(self, limit: int = OVERVIEW_LIMIT) -> list[dict]:
        """Open requests joined with applicant profiles, newest first."""
        query = (
            select(
                approval_requests.c.account_id.label("user_id"),
                approval_requests.c.submitted_at,
                accounts.c.email,
                accounts.c.display_name,
                accounts.c.professional_type,
                accounts.c.license_number,
                accounts.c.specialization,
            )
            .join(accounts, accounts.c.id == approval_requests.c.account_id)
            .where(approval_requests.c.resolved_at.is_(None))
            .order_by(approval_requests.c.submitted_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def count_pending(self) -> int:
        """Number of open requests."""
        query = (
            select(func.count())
            .select_from(approval_requests)
            .where(approval_requests.c.resolved_at.is_(None))
        )
        result = await self.db.execute(query)
        return result.scalar_one()

    async def delete_for_account(self, account_id: str) -> None:
        """Remove every request of an account."""
        await self.db.execute(
            delete(approval_requests).where(approval_requests.c.account_id == account_id)
        )
