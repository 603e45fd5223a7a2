"""Admin decisions on pending professional accounts."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException, NotPendingException, ValidationException
from app.core.roles import ApprovalStatus, Role, normalize_account
from app.models.accounts import accounts
from app.models.approval_requests import approval_requests
from app.schemas.admin import ApprovalDecisionResult
from app.services.account_service import AccountService
from app.services.notification_service import (
    NotificationService,
    TemplateKind,
    dispatch_best_effort,
)

logger = structlog.get_logger(__name__)

TERMINAL_DECISIONS = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED})


class AdminWorkflowService:
    """
    Drives approval requests from pending to approved or rejected.

    Both transitions are terminal. The account flip and the request
    resolution commit together; the email to the applicant is sent after
    commit and its failure never affects the decision.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationService,
        notification_timeout: float = 10.0,
    ):
        """Initialize workflow with a database session and a notifier."""
        self.db = db
        self.accounts = AccountService(db)
        self.notifier = notifier
        self.notification_timeout = notification_timeout

    async def decide(
        self,
        account_id: str,
        reviewer_id: str,
        decision: ApprovalStatus,
        notes: str | None = None,
    ) -> ApprovalDecisionResult:
        """
        Record an admin decision on a pending account.

        The caller must already be authorized as admin.

        Args:
            account_id: Applicant account
            reviewer_id: Deciding admin
            decision: APPROVED or REJECTED
            notes: Optional free text, sent to the applicant as the rejection reason

        Returns:
            Committed decision

        Raises:
            ValidationException: If decision is not terminal
            NotFoundException: If the account does not exist
            NotPendingException: If the account is not awaiting a decision
        """
        if decision not in TERMINAL_DECISIONS:
            raise ValidationException("Decision must be 'approved' or 'rejected'")

        account = await self.accounts.get_account(account_id)
        if account is None:
            raise NotFoundException("Account not found")

        standing = normalize_account(account)
        if (
            standing.role is not Role.PROFESSIONAL
            or standing.approval_status is not ApprovalStatus.PENDING
        ):
            raise NotPendingException()

        notes = notes.strip() if notes and notes.strip() else None
        now = datetime.now(UTC)

        try:
            # Compare-and-set on the values read above; a repeated decision matches no row
            result = await self.db.execute(
                update(accounts)
                .where(
                    accounts.c.id == account_id,
                    accounts.c.role == account["role"],
                    accounts.c.approval_status == account["approval_status"],
                )
                .values(
                    role=Role.PROFESSIONAL.value,
                    approval_status=decision.value,
                    review_notes=notes,
                    reviewed_by=reviewer_id,
                    reviewed_at=now,
                    updated_at=now,
                )
            )
            if result.rowcount == 0:  # type: ignore[attr-defined]
                raise NotPendingException()

            resolved = await self.db.execute(
                update(approval_requests)
                .where(
                    approval_requests.c.account_id == account_id,
                    approval_requests.c.resolved_at.is_(None),
                )
                .values(
                    reviewer_id=reviewer_id,
                    decision=decision.value,
                    notes=notes,
                    resolved_at=now,
                )
            )
            if resolved.rowcount == 0:  # type: ignore[attr-defined]
                logger.warning("approval_request_missing", account_id=account_id)
                await self.db.execute(
                    insert(approval_requests).values(
                        account_id=account_id,
                        submitted_at=account.get("created_at") or now,
                        reviewer_id=reviewer_id,
                        decision=decision.value,
                        notes=notes,
                        resolved_at=now,
                    )
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "approval_decided",
            account_id=account_id,
            reviewer_id=reviewer_id,
            decision=decision.value,
        )

        approved = decision is ApprovalStatus.APPROVED
        data = {"name": account.get("display_name"), "approved": approved}
        if not approved:
            data["reason"] = notes
        notification_sent = await dispatch_best_effort(
            self.notifier,
            account.get("email"),
            TemplateKind.APPROVAL_DECISION,
            data,
            timeout=self.notification_timeout,
        )

        return ApprovalDecisionResult(
            account_id=account_id,
            reviewer_id=reviewer_id,
            decision=decision,
            notes=notes,
            resolved_at=now,
            notification_sent=notification_sent,
        )

    async def approve(
        self, account_id: str, reviewer_id: str, notes: str | None = None
    ) -> ApprovalDecisionResult:
        return await self.decide(account_id, reviewer_id, ApprovalStatus.APPROVED, notes)

    async def reject(
        self, account_id: str, reviewer_id: str, notes: str | None = None
    ) -> ApprovalDecisionResult:
        return await self.decide(account_id, reviewer_id, ApprovalStatus.REJECTED, notes)
