"""Admin-specific schemas."""

from datetime import datetime

from pydantic import Field

from app.core.roles import ApprovalStatus
from app.schemas.accounts import AccountResponse, CamelModel


class DecisionRequest(CamelModel):
    """Body of approve/reject calls."""

    user_id: str = Field(..., min_length=1, description="Account to decide on")
    reviewer_id: str = Field(..., min_length=1, description="Admin recording the decision")
    notes: str | None = Field(None, max_length=2000)


class DeleteUserRequest(CamelModel):
    """Body of the delete call."""

    user_id: str = Field(..., min_length=1)


class ActionResponse(CamelModel):
    """Generic success envelope."""

    success: bool = True
    message: str | None = None


class AdminUserListResponse(CamelModel):
    """Response schema for admin user listing."""

    success: bool = True
    users: list[AccountResponse]


class PendingApprovalResponse(CamelModel):
    """Open approval request joined with the applicant profile."""

    user_id: str
    email: str
    display_name: str | None = None
    professional_type: str | None = None
    license_number: str | None = None
    specialization: str | None = None
    submitted_at: datetime


class AdminStats(CamelModel):
    """Headline numbers for the admin dashboard."""

    total_users: int = Field(..., examples=[120])
    pending_approvals: int = Field(..., examples=[4])
    approved_users: int = Field(..., examples=[110])
    total_articles: int = Field(..., examples=[58])
    published_articles: int = Field(..., examples=[41])


class AdminOverviewResponse(CamelModel):
    """Response schema for the admin overview."""

    success: bool = True
    stats: AdminStats
    pending: list[PendingApprovalResponse]


class ApprovalDecisionResult(CamelModel):
    """Committed outcome of an admin decision."""

    account_id: str
    reviewer_id: str
    decision: ApprovalStatus
    notes: str | None = None
    resolved_at: datetime
    notification_sent: bool = False
