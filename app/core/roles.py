"""Account roles, approval states and record normalization."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class Role(StrEnum):
    """Account role, ordered from least to most privileged."""

    PATIENT = "patient"
    PROFESSIONAL = "professional"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def satisfies(self, required: "Role") -> bool:
        """Whether this role meets a minimum role requirement."""
        return self.rank >= required.rank


_ROLE_RANK = {Role.PATIENT: 0, Role.PROFESSIONAL: 1, Role.ADMIN: 2}


class ApprovalStatus(StrEnum):
    """Review state of a professional account."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StandingOrigin(StrEnum):
    """Where an account standing was derived from."""

    STORED = "stored"
    UNREGISTERED = "unregistered"
    UNRECOGNIZED_ROLE = "unrecognized_role"


@dataclass(frozen=True)
class AccountStanding:
    """Effective role and approval state of an account."""

    role: Role
    approval_status: ApprovalStatus
    origin: StandingOrigin

    @property
    def is_approved(self) -> bool:
        return self.approval_status is ApprovalStatus.APPROVED

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


UNREGISTERED_STANDING = AccountStanding(
    role=Role.PATIENT,
    approval_status=ApprovalStatus.APPROVED,
    origin=StandingOrigin.UNREGISTERED,
)


def parse_role(value: Any) -> Role | None:
    """Return the matching role, or None for missing or unknown values."""
    if isinstance(value, str):
        try:
            return Role(value.strip().lower())
        except ValueError:
            return None
    return None


def parse_approval_status(value: Any) -> ApprovalStatus | None:
    """Return the matching approval status, or None for missing or unknown values."""
    if isinstance(value, str):
        try:
            return ApprovalStatus(value.strip().lower())
        except ValueError:
            return None
    return None


def normalize_account(record: Mapping[str, Any] | None) -> AccountStanding:
    """
    Derive the effective standing of a raw account record.

    This is the only place raw ``role`` / ``approval_status`` values are
    interpreted. Unknown roles never escalate: they collapse to patient.
    A professional with an unknown approval status is treated as pending.

    Args:
        record: Account row, or None when no account exists

    Returns:
        Normalized account standing
    """
    if record is None:
        return UNREGISTERED_STANDING

    role = parse_role(record.get("role"))
    if role is None:
        logger.warning(
            "account_role_unrecognized",
            account_id=record.get("id"),
            stored_role=record.get("role"),
        )
        return AccountStanding(
            role=Role.PATIENT,
            approval_status=ApprovalStatus.APPROVED,
            origin=StandingOrigin.UNRECOGNIZED_ROLE,
        )

    if role is not Role.PROFESSIONAL:
        return AccountStanding(role, ApprovalStatus.APPROVED, StandingOrigin.STORED)

    status = parse_approval_status(record.get("approval_status")) or ApprovalStatus.PENDING
    return AccountStanding(role, status, StandingOrigin.STORED)
