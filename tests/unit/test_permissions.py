"""
Unit tests for the role capability table
"""
from types import SimpleNamespace

import pytest

from campushub.constants.constants import APPROVAL_STAGE_DELEGATES, Capability, UserRole
from campushub.core.exceptions import ForbiddenError
from campushub.utils.check_capability import (
    can_check_in, can_manage_event, capabilities_for, ensure_capability, has_capability,
)


def user(role, user_id="u-1"):
    return SimpleNamespace(user_id=user_id, role=role)


class TestHasCapability:

    def test_every_role_can_create_events(self):
        for role in UserRole:
            assert has_capability(role, Capability.event_create)

    def test_only_hod_bypasses_approval(self):
        bypass = [role for role in UserRole if has_capability(role, Capability.event_bypass_approval)]
        assert bypass == [UserRole.hod]

    @pytest.mark.parametrize("role", [
        UserRole.teacher, UserRole.hod, UserRole.registrar, UserRole.financial_head, UserRole.admin,
    ])
    def test_reviewer_roles_can_approve(self, role):
        assert has_capability(role, Capability.event_approve)

    @pytest.mark.parametrize("role", [UserRole.student, UserRole.club_member, UserRole.club_head])
    def test_students_cannot_approve_or_book(self, role):
        assert not has_capability(role, Capability.event_approve)
        assert not has_capability(role, Capability.inventory_manage)

    def test_accepts_role_values_as_strings(self):
        assert has_capability("technical_staff", Capability.inventory_manage)

    def test_unknown_role_has_nothing(self):
        assert not has_capability("janitor", Capability.event_create)
        assert capabilities_for("janitor") == []

    def test_every_approving_role_has_a_stage(self):
        for role in UserRole:
            if has_capability(role, Capability.event_approve):
                assert APPROVAL_STAGE_DELEGATES.get(role)


class TestEnsureCapability:

    def test_raises_forbidden(self):
        with pytest.raises(ForbiddenError):
            ensure_capability(user(UserRole.student), Capability.booking_review)

    def test_custom_message(self):
        with pytest.raises(ForbiddenError, match="staff only"):
            ensure_capability(user(UserRole.student), Capability.booking_review, "staff only")

    def test_passes_silently(self):
        ensure_capability(user(UserRole.admin), Capability.booking_review)


class TestEventScopedChecks:

    def test_organizer_manages_own_event(self):
        event = SimpleNamespace(organizer_id="u-1")
        assert can_manage_event(user(UserRole.student, "u-1"), event)
        assert not can_manage_event(user(UserRole.teacher, "u-2"), event)
        assert can_manage_event(user(UserRole.admin, "u-3"), event)

    def test_check_in_staff(self):
        event = SimpleNamespace(organizer_id="u-1")
        assert can_check_in(user(UserRole.student, "u-1"), event)
        assert can_check_in(user(UserRole.technical_staff, "u-2"), event)
        assert not can_check_in(user(UserRole.student, "u-2"), event)

    def test_capabilities_for_is_sorted(self):
        caps = capabilities_for(UserRole.admin)
        assert caps == sorted(caps, key=lambda c: c.value)
        assert Capability.event_bypass_approval not in caps
