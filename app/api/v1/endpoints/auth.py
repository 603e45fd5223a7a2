"""Registration and session endpoints."""

import structlog
from fastapi import APIRouter, Query, status

from app.config import settings
from app.core.exceptions import NotFoundException
from app.core.navigation import PageRequirements, SessionSnapshot, redirect_for
from app.core.roles import ApprovalStatus
from app.dependencies import (
    AccountServiceDep,
    AuthenticatedDecision,
    Gate,
    Notifier,
    OptionalIdentity,
    VerifiedIdentity,
)
from app.schemas.accounts import (
    AccountResponse,
    RegistrationRequest,
    RegistrationResponse,
    SessionResponse,
)
from app.services.notification_service import TemplateKind, dispatch_best_effort

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register the account of the signed-in identity",
)
async def register(
    registration: RegistrationRequest,
    identity: VerifiedIdentity,
    account_service: AccountServiceDep,
    notifier: Notifier,
) -> RegistrationResponse:
    """
    Create the account record for a verified identity.

    Professionals start pending review. A welcome email is sent after the
    account is stored; delivery failures are only logged.

    Raises:
        ConflictException: If the identity already has an account
    """
    record = await account_service.register(identity, registration, settings.admin_email)
    account = AccountResponse.from_record(record)

    await dispatch_best_effort(
        notifier,
        account.email,
        TemplateKind.WELCOME,
        {
            "name": account.display_name,
            "pending_review": account.approval_status is ApprovalStatus.PENDING,
        },
        timeout=settings.notification_timeout_seconds,
    )

    return RegistrationResponse(account=account)


@router.get(
    "/me",
    response_model=AccountResponse,
    summary="Get the caller's account",
)
async def get_me(
    decision: AuthenticatedDecision,
    account_service: AccountServiceDep,
) -> AccountResponse:
    """Get the account of the signed-in identity."""
    record = await account_service.get_account(decision.identity.account_id)  # type: ignore[union-attr]
    if record is None:
        raise NotFoundException("Account not found")
    return AccountResponse.from_record(record)


@router.post(
    "/approval-request/resubmit",
    response_model=AccountResponse,
    summary="Resubmit a rejected professional account for review",
)
async def resubmit_approval_request(
    decision: AuthenticatedDecision,
    account_service: AccountServiceDep,
) -> AccountResponse:
    """
    Return a rejected professional account to pending with a new request.

    Raises:
        NotPendingException: If the account is not a rejected professional
    """
    record = await account_service.resubmit_for_approval(
        decision.identity.account_id  # type: ignore[union-attr]
    )
    return AccountResponse.from_record(record)


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Caller standing and required navigation",
)
async def get_session(
    identity: OptionalIdentity,
    gate: Gate,
    require_approved: bool = Query(True, alias="requireApproved"),
    require_admin: bool = Query(False, alias="requireAdmin"),
) -> SessionResponse:
    """
    Describe the caller's standing and where a protected page must send them.

    Guests get ``authenticated=false`` and a redirect to the sign-in page.
    """
    requirements = PageRequirements(require_admin=require_admin, require_approved=require_approved)

    if identity is None:
        redirect = redirect_for(SessionSnapshot(loading=False), requirements)
        return SessionResponse(authenticated=False, redirect=redirect)

    standing = await gate.load_standing(identity)
    return SessionResponse(
        authenticated=True,
        account_id=identity.account_id,
        role=standing.role,
        approval_status=standing.approval_status,
        origin=standing.origin.value,
        redirect=redirect_for(SessionSnapshot(loading=False, standing=standing), requirements),
    )
