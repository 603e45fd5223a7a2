"""Account schemas for request/response validation."""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.core.roles import ApprovalStatus, Role, normalize_account


class CamelModel(BaseModel):
    """Base schema exchanged with the web client in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AccountResponse(CamelModel):
    """Account as returned to admins and to its owner."""

    id: str
    email: str
    display_name: str | None = None
    phone: str | None = None
    role: Role
    approval_status: ApprovalStatus
    professional_type: str | None = None
    other_professional_type: str | None = None
    license_number: str | None = None
    specialization: str | None = None
    newsletter_subscribed: bool = False
    gdpr_consent: bool = False
    review_notes: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "AccountResponse":
        """Build a response with role and status passed through normalization."""
        standing = normalize_account(record)
        data = dict(record)
        data["role"] = standing.role
        data["approval_status"] = standing.approval_status
        return cls.model_validate(data)


class RegistrationRequest(CamelModel):
    """Profile submitted when an identity first registers an account."""

    display_name: str = Field(..., min_length=1, max_length=200)
    phone_number: str | None = Field(None, max_length=32)
    role: Literal["patient", "professional"] = "patient"
    professional_type: str | None = Field(None, max_length=100)
    other_professional_type: str | None = Field(None, max_length=200)
    registration_number: str | None = Field(None, max_length=100)
    specialization: str | None = Field(None, max_length=200)
    gdpr_consent: bool
    newsletter_consent: bool = False

    @model_validator(mode="after")
    def check_professional_fields(self) -> "RegistrationRequest":
        """Professionals must provide a license number; consent is mandatory."""
        if not self.gdpr_consent:
            raise ValueError("GDPR consent is required")
        if self.role == Role.PROFESSIONAL:
            if not self.registration_number or not self.registration_number.strip():
                raise ValueError("registrationNumber is required for professional accounts")
            if not self.professional_type:
                raise ValueError("professionalType is required for professional accounts")
        return self


class RegistrationResponse(CamelModel):
    """Result of a registration."""

    success: bool = True
    account: AccountResponse


class SessionResponse(CamelModel):
    """Caller's standing and the navigation a client must perform."""

    authenticated: bool
    account_id: str | None = None
    role: Role | None = None
    approval_status: ApprovalStatus | None = None
    origin: str | None = None
    redirect: str | None = None
