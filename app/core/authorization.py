"""Request-scoped authorization decisions."""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from app.core.exceptions import (
    AppException,
    ForbiddenException,
    NotFoundException,
    PendingApprovalException,
    UnauthorizedException,
    UpstreamFailureException,
)
from app.core.identity import Identity
from app.core.roles import AccountStanding, Role, StandingOrigin, normalize_account

logger = structlog.get_logger(__name__)

AccountLookup = Callable[[str], Awaitable[Mapping[str, Any] | None]]


class DenyReason(StrEnum):
    """Why a request was refused."""

    UNAUTHENTICATED = "unauthenticated"
    NOT_FOUND = "not_found"
    PENDING_APPROVAL = "pending_approval"
    INSUFFICIENT_ROLE = "insufficient_role"
    UPSTREAM_FAILURE = "upstream_failure"


@dataclass(frozen=True)
class AccessPolicy:
    """Minimum role and whether professional approval is required."""

    min_role: Role = Role.PATIENT
    require_approved: bool = False


AUTHENTICATED = AccessPolicy()
APPROVED = AccessPolicy(require_approved=True)
ADMIN_ONLY = AccessPolicy(min_role=Role.ADMIN, require_approved=True)


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    reason: DenyReason | None = None
    identity: Identity | None = None
    standing: AccountStanding | None = None

    @classmethod
    def allow(cls, identity: Identity, standing: AccountStanding) -> "Decision":
        return cls(allowed=True, identity=identity, standing=standing)

    @classmethod
    def deny(
        cls,
        reason: DenyReason,
        identity: Identity | None = None,
        standing: AccountStanding | None = None,
    ) -> "Decision":
        return cls(allowed=False, reason=reason, identity=identity, standing=standing)

    @property
    def role(self) -> Role | None:
        return self.standing.role if self.standing else None


_DENIAL_EXCEPTIONS: dict[DenyReason, Callable[[], AppException]] = {
    DenyReason.UNAUTHENTICATED: lambda: UnauthorizedException("Authentication required"),
    DenyReason.NOT_FOUND: lambda: NotFoundException("Account not found"),
    DenyReason.PENDING_APPROVAL: lambda: PendingApprovalException(),
    DenyReason.INSUFFICIENT_ROLE: lambda: ForbiddenException("Insufficient role"),
    DenyReason.UPSTREAM_FAILURE: lambda: UpstreamFailureException(
        "Could not verify account permissions"
    ),
}


def denial_to_exception(reason: DenyReason) -> AppException:
    """Map a denial to the HTTP-facing exception."""
    return _DENIAL_EXCEPTIONS[reason]()


class AuthorizationGate:
    """
    Decides whether a verified identity may proceed under a policy.

    The gate is read-only and keeps no state between calls. Approval state
    can change at any time, so every protected request must consult it.
    """

    def __init__(self, lookup: AccountLookup, timeout: float = 5.0):
        """
        Initialize gate.

        Args:
            lookup: Async callable returning the raw account record or None
            timeout: Seconds allowed for the account lookup
        """
        self.lookup = lookup
        self.timeout = timeout

    async def load_standing(self, identity: Identity) -> AccountStanding:
        """
        Fetch and normalize the account behind an identity.

        Raises:
            UpstreamFailureException: If the lookup fails or times out
        """
        try:
            record = await asyncio.wait_for(self.lookup(identity.account_id), timeout=self.timeout)
        except TimeoutError:
            logger.error(
                "account_lookup_timeout", account_id=identity.account_id, timeout=self.timeout
            )
            raise UpstreamFailureException("Account lookup timed out")
        except Exception as e:
            logger.error("account_lookup_failed", account_id=identity.account_id, error=str(e))
            raise UpstreamFailureException("Account lookup failed") from e
        return normalize_account(record)

    async def authorize(self, identity: Identity | None, policy: AccessPolicy) -> Decision:
        """
        Evaluate a policy for an identity.

        Checks run in order: authentication, account existence for elevated
        policies, professional approval, minimum role. Lookup failures deny.

        Args:
            identity: Verified identity, None for guests
            policy: Requirements of the protected operation

        Returns:
            Allow or deny decision
        """
        if identity is None:
            return Decision.deny(DenyReason.UNAUTHENTICATED)

        try:
            standing = await self.load_standing(identity)
        except UpstreamFailureException:
            return Decision.deny(DenyReason.UPSTREAM_FAILURE, identity)

        if standing.origin is StandingOrigin.UNREGISTERED and not standing.role.satisfies(
            policy.min_role
        ):
            logger.info(
                "authorization_denied",
                account_id=identity.account_id,
                reason=DenyReason.NOT_FOUND.value,
            )
            return Decision.deny(DenyReason.NOT_FOUND, identity, standing)

        if (
            policy.require_approved
            and standing.role is Role.PROFESSIONAL
            and not standing.is_approved
        ):
            logger.info(
                "authorization_denied",
                account_id=identity.account_id,
                reason=DenyReason.PENDING_APPROVAL.value,
            )
            return Decision.deny(DenyReason.PENDING_APPROVAL, identity, standing)

        if not standing.role.satisfies(policy.min_role):
            logger.info(
                "authorization_denied",
                account_id=identity.account_id,
                reason=DenyReason.INSUFFICIENT_ROLE.value,
                role=standing.role.value,
            )
            return Decision.deny(DenyReason.INSUFFICIENT_ROLE, identity, standing)

        return Decision.allow(identity, standing)
