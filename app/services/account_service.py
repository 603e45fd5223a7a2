"""Account store operations."""

from datetime import UTC, datetime

import structlog
from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotPendingException, ValidationException
from app.core.identity import Identity
from app.core.roles import ApprovalStatus, Role, normalize_account
from app.models.accounts import accounts
from app.models.articles import articles
from app.schemas.accounts import RegistrationRequest
from app.services.approval_service import ApprovalQueue

logger = structlog.get_logger(__name__)

DELETED_AUTHOR_NAME = "Deleted user"

_email_adapter = TypeAdapter(EmailStr)


class AccountService:
    """Persisted record of every account."""

    def __init__(self, db: AsyncSession):
        """Initialize service with a database session."""
        self.db = db
        self.queue = ApprovalQueue(db)

    async def get_account(self, account_id: str) -> dict | None:
        """Get account by id."""
        query = select(accounts).where(accounts.c.id == account_id)
        result = await self.db.execute(query)
        account = result.mappings().first()
        return dict(account) if account else None

    async def list_accounts(self, status: ApprovalStatus | None = None) -> list[dict]:
        """
        List accounts newest first, optionally filtered by approval status.

        The filter applies to the normalized status, the same one responses report.
        """
        query = select(accounts).order_by(accounts.c.created_at.desc())
        result = await self.db.execute(query)
        records = [dict(row) for row in result.mappings().all()]
        if status is None:
            return records
        return [r for r in records if normalize_account(r).approval_status is status]

    async def register(
        self,
        identity: Identity,
        registration: RegistrationRequest,
        admin_email: str | None = None,
    ) -> dict:
        """
        Create the account of a newly verified identity.

        Professionals start pending with an open approval request written in the
        same transaction. The configured admin address is always created as admin.

        Raises:
            ValidationException: If the identity carries no usable email
            ConflictException: If the account already exists
        """
        try:
            email = _email_adapter.validate_python(identity.email)
        except ValidationError:
            raise ValidationException("A verified email address is required to register")

        if await self.get_account(identity.account_id) is not None:
            raise ConflictException("Account already registered")

        now = datetime.now(UTC)
        role = Role(registration.role)
        if admin_email and email.lower() == admin_email.strip().lower():
            role = Role.ADMIN

        status = ApprovalStatus.PENDING if role is Role.PROFESSIONAL else ApprovalStatus.APPROVED
        values = {
            "id": identity.account_id,
            "email": email,
            "display_name": registration.display_name.strip(),
            "phone": registration.phone_number,
            "role": role.value,
            "approval_status": status.value,
            "newsletter_subscribed": registration.newsletter_consent,
            "gdpr_consent": registration.gdpr_consent,
            "gdpr_consent_at": now,
            "created_at": now,
            "updated_at": now,
        }
        if role is Role.PROFESSIONAL:
            values.update(
                professional_type=registration.professional_type,
                other_professional_type=registration.other_professional_type,
                license_number=(registration.registration_number or "").strip(),
                specialization=registration.specialization,
            )

        try:
            await self.db.execute(insert(accounts).values(**values))
            if status is ApprovalStatus.PENDING:
                await self.queue.open_request(identity.account_id, now)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("Account already registered")
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "account_registered",
            account_id=identity.account_id,
            role=role.value,
            approval_status=status.value,
        )
        account = await self.get_account(identity.account_id)
        if not account:
            raise ValueError("Failed to create account")
        return account

    async def resubmit_for_approval(self, account_id: str) -> dict:
        """
        Reopen review for a rejected professional with a fresh approval request.

        Raises:
            NotPendingException: If the account is not a rejected professional
        """
        account = await self.get_account(account_id)
        standing = normalize_account(account)
        if (
            account is None
            or standing.role is not Role.PROFESSIONAL
            or standing.approval_status is not ApprovalStatus.REJECTED
        ):
            raise NotPendingException("Account is not eligible for resubmission")

        now = datetime.now(UTC)
        try:
            result = await self.db.execute(
                update(accounts)
                .where(
                    accounts.c.id == account_id,
                    accounts.c.role == account["role"],
                    accounts.c.approval_status == account["approval_status"],
                )
                .values(
                    role=Role.PROFESSIONAL.value,
                    approval_status=ApprovalStatus.PENDING.value,
                    updated_at=now,
                )
            )
            if result.rowcount == 0:  # type: ignore[attr-defined]
                raise NotPendingException("Account is not eligible for resubmission")
            await self.queue.open_request(account_id, now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("approval_resubmitted", account_id=account_id)
        refreshed = await self.get_account(account_id)
        if not refreshed:
            raise ValueError("Failed to reload account")
        return refreshed

    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account and its approval history in one transaction.

        Authored articles are kept and anonymized.

        Returns:
            False if no such account existed
        """
        try:
            await self.db.execute(
                update(articles)
                .where(articles.c.author_id == account_id)
                .values(author_id=None, author_name=DELETED_AUTHOR_NAME)
            )
            await self.queue.delete_for_account(account_id)
            result = await self.db.execute(delete(accounts).where(accounts.c.id == account_id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        deleted = result.rowcount > 0  # type: ignore[attr-defined]
        if deleted:
            logger.info("account_deleted", account_id=account_id)
        return deleted

    async def get_stats(self) -> dict[str, int]:
        """Headline counts for the admin overview."""

        async def count(table, *conditions) -> int:
            query = select(func.count()).select_from(table)
            if conditions:
                query = query.where(*conditions)
            result = await self.db.execute(query)
            return result.scalar_one()

        return {
            "total_users": await count(accounts),
            "pending_approvals": await self.queue.count_pending(),
            "approved_users": await count(
                accounts, accounts.c.approval_status == ApprovalStatus.APPROVED.value
            ),
            "total_articles": await count(articles),
            "published_articles": await count(articles, articles.c.status == "published"),
        }
