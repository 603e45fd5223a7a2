"""Tests for role normalization."""

import pytest

from app.core.roles import (
    ApprovalStatus,
    Role,
    StandingOrigin,
    normalize_account,
    parse_role,
)


class TestNormalizeAccount:
    """Tests for normalize_account."""

    def test_missing_record_is_unregistered_patient(self):
        standing = normalize_account(None)

        assert standing.role is Role.PATIENT
        assert standing.approval_status is ApprovalStatus.APPROVED
        assert standing.origin is StandingOrigin.UNREGISTERED

    @pytest.mark.parametrize("role", [None, "", "superuser", 42])
    def test_unknown_role_collapses_to_patient(self, role):
        standing = normalize_account({"id": "x", "role": role, "approval_status": "pending"})

        assert standing.role is Role.PATIENT
        assert standing.approval_status is ApprovalStatus.APPROVED
        assert standing.origin is StandingOrigin.UNRECOGNIZED_ROLE
        assert not standing.is_admin

    def test_admin_and_patient_are_implicitly_approved(self):
        admin = normalize_account({"role": "admin", "approval_status": "rejected"})
        patient = normalize_account({"role": "patient", "approval_status": None})

        assert admin.is_approved and admin.is_admin
        assert patient.is_approved
        assert admin.origin is StandingOrigin.STORED

    @pytest.mark.parametrize(
        "stored,expected",
        [
            ("pending", ApprovalStatus.PENDING),
            ("approved", ApprovalStatus.APPROVED),
            ("rejected", ApprovalStatus.REJECTED),
            ("unknown", ApprovalStatus.PENDING),
            (None, ApprovalStatus.PENDING),
        ],
    )
    def test_professional_carries_stored_status(self, stored, expected):
        standing = normalize_account({"role": "professional", "approval_status": stored})

        assert standing.role is Role.PROFESSIONAL
        assert standing.approval_status is expected

    def test_role_parsing_ignores_case_and_whitespace(self):
        assert parse_role(" Admin ") is Role.ADMIN
        assert parse_role("owner") is None


def test_role_order():
    assert Role.ADMIN.satisfies(Role.PROFESSIONAL)
    assert Role.PROFESSIONAL.satisfies(Role.PATIENT)
    assert not Role.PATIENT.satisfies(Role.PROFESSIONAL)
    assert not Role.PROFESSIONAL.satisfies(Role.ADMIN)
