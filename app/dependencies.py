"""FastAPI dependencies."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.authorization import (
    ADMIN_ONLY,
    AUTHENTICATED,
    AccessPolicy,
    AuthorizationGate,
    Decision,
    DenyReason,
    denial_to_exception,
)
from app.core.exceptions import RateLimitException
from app.core.identity import (
    FirebaseIdentityProvider,
    Identity,
    IdentityProvider,
    IdentityVerifier,
    LocalTokenIdentityProvider,
)
from app.core.rate_limiter import FixedWindowRateLimiter
from app.database import get_db
from app.services.account_service import AccountService
from app.services.notification_service import EmailNotificationService, NotificationService

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


def build_identity_provider() -> IdentityProvider:
    """Identity provider selected by AUTH_PROVIDER."""
    if settings.auth_provider == "local":
        return LocalTokenIdentityProvider()
    return FirebaseIdentityProvider()


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """Verifier owned by the application."""
    return request.app.state.identity_verifier


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    """Rate limiter owned by the application."""
    return request.app.state.rate_limiter


def get_notifier(request: Request) -> NotificationService:
    """Notifier owned by the application."""
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        notifier = EmailNotificationService(settings)
        request.app.state.notifier = notifier
    return notifier


async def get_optional_identity(
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
    authorization: Annotated[str | None, Header()] = None,
) -> Identity | None:
    """
    Resolve the bearer credential of the request.

    Missing or invalid credentials yield None (guest), never an error.
    """
    return await verifier.resolve(authorization)


def get_account_service(db: DatabaseSession) -> AccountService:
    """Account store bound to the request session."""
    return AccountService(db)


def get_authorization_gate(
    account_service: Annotated[AccountService, Depends(get_account_service)],
) -> AuthorizationGate:
    """Gate reading accounts through the request session."""
    return AuthorizationGate(account_service.get_account, timeout=settings.database_timeout_seconds)


OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
Gate = Annotated[AuthorizationGate, Depends(get_authorization_gate)]
Notifier = Annotated[NotificationService, Depends(get_notifier)]
RateLimiterDep = Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)]


def require_access(policy: AccessPolicy) -> Callable[..., Awaitable[Decision]]:
    """
    Build a dependency that enforces ``policy`` on every request.

    Raises the mapped application exception when the gate denies.
    """

    async def dependency(identity: OptionalIdentity, gate: Gate) -> Decision:
        decision = await gate.authorize(identity, policy)
        if not decision.allowed:
            raise denial_to_exception(decision.reason or DenyReason.UNAUTHENTICATED)
        return decision

    return dependency


def require_identity(identity: OptionalIdentity) -> Identity:
    """Verified identity, regardless of account registration."""
    if identity is None:
        raise denial_to_exception(DenyReason.UNAUTHENTICATED)
    return identity


AuthenticatedDecision = Annotated[Decision, Depends(require_access(AUTHENTICATED))]
AdminDecision = Annotated[Decision, Depends(require_access(ADMIN_ONLY))]
VerifiedIdentity = Annotated[Identity, Depends(require_identity)]


def admin_rate_limit(route: str) -> Callable[..., Awaitable[None]]:
    """Throttle a mutating admin route per admin."""

    async def dependency(decision: AdminDecision, limiter: RateLimiterDep) -> None:
        key = f"admin:{decision.identity.account_id}:{route}"  # type: ignore[union-attr]
        result = limiter.check(
            key, settings.admin_rate_limit_max_requests, settings.admin_rate_limit_window_ms
        )
        if not result.allowed:
            raise RateLimitException("Too many requests. Please try again later.")

    return dependency
