"""Tests for registration and session endpoints."""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.main import app
from app.services.account_service import AccountService
from app.services.notification_service import NotificationError, TemplateKind
from conftest import bearer

PATIENT_BODY = {"displayName": "Pat Smith", "gdprConsent": True}
PROFESSIONAL_BODY = {
    "displayName": "Dr. Ana Lee",
    "role": "professional",
    "professionalType": "doctor",
    "registrationNumber": "REG-42",
    "specialization": "Neurology",
    "gdprConsent": True,
    "newsletterConsent": True,
}


class TestRegister:
    """Tests for POST /auth/register."""

    async def test_patient_is_approved(self, client: AsyncClient, notifier):
        response = await client.post(
            "/api/v1/auth/register",
            json=PATIENT_BODY,
            headers=bearer("p1", "p1@medblog.org"),
        )

        assert response.status_code == 201
        account = response.json()["account"]
        assert account["role"] == "patient"
        assert account["approvalStatus"] == "approved"
        assert notifier.sent == [
            (
                "p1@medblog.org",
                TemplateKind.WELCOME,
                {"name": "Pat Smith", "pending_review": False},
            )
        ]

    async def test_professional_is_pending_with_open_request(
        self, client: AsyncClient, db_session: AsyncSession, notifier
    ):
        response = await client.post(
            "/api/v1/auth/register",
            json=PROFESSIONAL_BODY,
            headers=bearer("d1", "d1@medblog.org"),
        )

        assert response.status_code == 201
        account = response.json()["account"]
        assert account["role"] == "professional"
        assert account["approvalStatus"] == "pending"
        assert account["licenseNumber"] == "REG-42"
        assert await AccountService(db_session).queue.get_open_request("d1") is not None
        assert notifier.sent[0][2]["pending_review"] is True

    async def test_configured_admin_email_registers_admin(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json=PROFESSIONAL_BODY,
            headers=bearer("root", settings.admin_email),
        )

        account = response.json()["account"]
        assert account["role"] == "admin"
        assert account["approvalStatus"] == "approved"

    async def test_professional_requires_registration_number(self, client: AsyncClient):
        body = {**PROFESSIONAL_BODY, "registrationNumber": "  "}

        response = await client.post(
            "/api/v1/auth/register", json=body, headers=bearer("d1", "d1@medblog.org")
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_consent_is_required(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={**PATIENT_BODY, "gdprConsent": False},
            headers=bearer("p1", "p1@medblog.org"),
        )

        assert response.status_code == 400

    async def test_duplicate_registration_conflicts(self, client: AsyncClient):
        headers = bearer("p1", "p1@medblog.org")
        await client.post("/api/v1/auth/register", json=PATIENT_BODY, headers=headers)

        response = await client.post("/api/v1/auth/register", json=PATIENT_BODY, headers=headers)

        assert response.status_code == 409

    async def test_identity_without_email_is_rejected(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register", json=PATIENT_BODY, headers=bearer("p1")
        )

        assert response.status_code == 400

    async def test_guest_cannot_register(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json=PATIENT_BODY)

        assert response.status_code == 401

    async def test_welcome_email_failure_does_not_fail_registration(
        self, client: AsyncClient, notifier
    ):
        notifier.error = NotificationError("mail provider down")

        response = await client.post(
            "/api/v1/auth/register", json=PATIENT_BODY, headers=bearer("p1", "p1@medblog.org")
        )

        assert response.status_code == 201


class TestResubmit:
    """Tests for POST /auth/approval-request/resubmit."""

    async def test_rejected_professional_resubmits(
        self, client: AsyncClient, make_account, db_session: AsyncSession
    ):
        await make_account("u3", role="professional", approval_status="rejected")

        response = await client.post(
            "/api/v1/auth/approval-request/resubmit", headers=bearer("u3")
        )

        assert response.status_code == 200
        assert response.json()["approvalStatus"] == "pending"
        assert await AccountService(db_session).queue.get_open_request("u3") is not None

    async def test_patient_cannot_resubmit(self, client: AsyncClient, make_account):
        await make_account("p1")

        response = await client.post(
            "/api/v1/auth/approval-request/resubmit", headers=bearer("p1")
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Account is not eligible for resubmission"


class TestSession:
    """Tests for GET /auth/session."""

    async def test_guest(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/session")

        assert response.status_code == 200
        assert response.json()["authenticated"] is False
        assert response.json()["redirect"] == "/login"

    async def test_invalid_token_is_a_guest(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/session", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.json()["authenticated"] is False

    async def test_pending_professional(self, client: AsyncClient, pending_professional):
        response = await client.get("/api/v1/auth/session", headers=bearer("u1"))

        data = response.json()
        assert data["authenticated"] is True
        assert data["role"] == "professional"
        assert data["approvalStatus"] == "pending"
        assert data["redirect"] == "/pending-approval"

    async def test_pending_professional_on_unrestricted_page(
        self, client: AsyncClient, pending_professional
    ):
        response = await client.get(
            "/api/v1/auth/session", params={"requireApproved": "false"}, headers=bearer("u1")
        )

        assert response.json()["redirect"] is None

    async def test_non_admin_on_admin_page(self, client: AsyncClient, make_account):
        await make_account("p1")

        response = await client.get(
            "/api/v1/auth/session", params={"requireAdmin": "true"}, headers=bearer("p1")
        )

        assert response.json()["redirect"] == "/dashboard"

    async def test_unrecognized_role_reports_origin(self, client: AsyncClient, make_account):
        await make_account("odd", role="superuser")

        response = await client.get("/api/v1/auth/session", headers=bearer("odd"))

        data = response.json()
        assert data["role"] == "patient"
        assert data["origin"] == "unrecognized_role"


class TestMe:
    """Tests for GET /auth/me."""

    async def test_me(self, client: AsyncClient, pending_professional):
        response = await client.get("/api/v1/auth/me", headers=bearer("u1"))

        assert response.status_code == 200
        assert response.json()["id"] == "u1"

    async def test_me_unregistered(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers=bearer("ghost"))

        assert response.status_code == 404


class TestApiRateLimit:
    """Tests for the per-client API limit."""

    async def test_headers_and_throttling(self, client: AsyncClient):
        response = await client.get("/api/v1/ping")

        assert response.status_code == 200
        limit = settings.rate_limit_max_requests
        assert response.headers["X-RateLimit-Limit"] == str(limit)
        assert response.headers["X-RateLimit-Remaining"] == str(limit - 1)

        for _ in range(limit - 1):
            await client.get("/api/v1/ping")
        response = await client.get("/api/v1/ping")

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "error": "Too many requests. Please try again later.",
        }
        assert response.headers["X-RateLimit-Remaining"] == "0"

        # Other clients are unaffected
        other = await client.get("/api/v1/ping", headers={"X-Forwarded-For": "203.0.113.9"})
        assert other.status_code == 200
        assert len(app.state.rate_limiter) == 2

    async def test_root_is_not_limited(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers
