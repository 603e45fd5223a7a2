"""Admin-only endpoints for account review and management."""

import structlog
from fastapi import APIRouter, Depends, Query

from app.config import settings
from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.core.firebase import delete_firebase_user, is_firebase_initialized
from app.core.roles import ApprovalStatus
from app.dependencies import (
    AccountServiceDep,
    AdminDecision,
    DatabaseSession,
    Notifier,
    admin_rate_limit,
)
from app.schemas.accounts import AccountResponse
from app.schemas.admin import (
    ActionResponse,
    AdminOverviewResponse,
    AdminStats,
    AdminUserListResponse,
    DecisionRequest,
    DeleteUserRequest,
    PendingApprovalResponse,
)
from app.services.admin_workflow import AdminWorkflowService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def _ensure_reviewer_is_caller(request: DecisionRequest, admin: AdminDecision) -> None:
    """The recorded reviewer must be the authenticated admin."""
    if admin.identity is None or request.reviewer_id != admin.identity.account_id:
        raise ForbiddenException("reviewerId must match the authenticated admin")


async def _decide(
    request: DecisionRequest,
    decision: ApprovalStatus,
    admin: AdminDecision,
    db: DatabaseSession,
    notifier: Notifier,
) -> None:
    _ensure_reviewer_is_caller(request, admin)
    workflow = AdminWorkflowService(
        db, notifier, notification_timeout=settings.notification_timeout_seconds
    )
    await workflow.decide(request.user_id, request.reviewer_id, decision, request.notes)


@router.post(
    "/users/approve",
    response_model=ActionResponse,
    summary="Approve a pending professional account (admin only)",
    dependencies=[Depends(admin_rate_limit("users.approve"))],
)
async def approve_user(
    request: DecisionRequest,
    admin: AdminDecision,
    db: DatabaseSession,
    notifier: Notifier,
) -> ActionResponse:
    """
    Approve a pending professional account.

    The applicant is emailed on a best-effort basis; delivery problems do
    not change the response.
    """
    await _decide(request, ApprovalStatus.APPROVED, admin, db, notifier)
    return ActionResponse(message="User has been approved")


@router.post(
    "/users/reject",
    response_model=ActionResponse,
    summary="Reject a pending professional account (admin only)",
    dependencies=[Depends(admin_rate_limit("users.reject"))],
)
async def reject_user(
    request: DecisionRequest,
    admin: AdminDecision,
    db: DatabaseSession,
    notifier: Notifier,
) -> ActionResponse:
    """
    Reject a pending professional account.

    ``notes`` are sent to the applicant as the reason.
    """
    await _decide(request, ApprovalStatus.REJECTED, admin, db, notifier)
    return ActionResponse(message="User has been rejected")


@router.get(
    "/users/list",
    response_model=AdminUserListResponse,
    summary="List all accounts (admin only)",
)
async def list_users(
    admin: AdminDecision,
    account_service: AccountServiceDep,
    status: ApprovalStatus | None = Query(None, description="Filter by approval status"),
) -> AdminUserListResponse:
    """Get all accounts, newest first."""
    records = await account_service.list_accounts(status)
    return AdminUserListResponse(users=[AccountResponse.from_record(r) for r in records])


@router.post(
    "/users/delete",
    response_model=ActionResponse,
    summary="Delete an account (admin only)",
    dependencies=[Depends(admin_rate_limit("users.delete"))],
)
async def delete_user(
    request: DeleteUserRequest,
    admin: AdminDecision,
    account_service: AccountServiceDep,
) -> ActionResponse:
    """
    Delete an account and its approval history.

    Authored articles are anonymized. Removing the identity provider user is
    best-effort and only logged on failure.
    """
    if admin.identity is not None and request.user_id == admin.identity.account_id:
        raise BadRequestException("Admins cannot delete their own account")

    deleted = await account_service.delete_account(request.user_id)
    if not deleted:
        raise NotFoundException("Account not found")

    if is_firebase_initialized():
        try:
            await delete_firebase_user(request.user_id)
        except Exception as e:
            logger.warning("identity_user_delete_failed", account_id=request.user_id, error=str(e))

    return ActionResponse()


@router.get(
    "/overview",
    response_model=AdminOverviewResponse,
    summary="Dashboard statistics and pending approvals (admin only)",
)
async def get_overview(
    admin: AdminDecision,
    account_service: AccountServiceDep,
) -> AdminOverviewResponse:
    """Get headline statistics and the newest pending approval requests."""
    stats = await account_service.get_stats()
    pending = await account_service.queue.list_pending()
    return AdminOverviewResponse(
        stats=AdminStats(**stats),
        pending=[PendingApprovalResponse(**row) for row in pending],
    )
