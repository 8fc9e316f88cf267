"""
Unit tests for UserProfile and ProfilePatch in za.egovsa.auth.model.user
"""

import pytest
from pydantic import ValidationError

from za.egovsa.auth.model.user import ProfilePatch
from tests.test_helpers import make_profile


class TestProfilePatch:
    """Test suite for field-wise patch application."""

    def test_set_fields_override(self):
        profile = make_profile("U1")
        patched = ProfilePatch(first_name="Lerato", phone="+27831112222").apply(profile)

        assert patched.first_name == "Lerato"
        assert patched.phone == "+27831112222"
        assert patched.last_name == profile.last_name
        assert patched.email == profile.email
        assert patched.id == "U1"
        assert patched.created_at == profile.created_at

    def test_unset_fields_are_left_alone(self):
        profile = make_profile("U1", gender="female")
        patched = ProfilePatch(id_number="9001015009087").apply(profile)

        assert patched.gender == "female"
        assert patched.id_number == "9001015009087"

    def test_explicit_none_clears_optional_field(self):
        profile = make_profile("U1", phone="+27821234567")
        patched = ProfilePatch(phone=None).apply(profile)
        assert patched.phone is None

    def test_clearing_required_field_rejected(self):
        profile = make_profile("U1")
        with pytest.raises(ValidationError):
            ProfilePatch(first_name=None).apply(profile)

    def test_apply_returns_new_profile(self):
        profile = make_profile("U1")
        patched = ProfilePatch(last_name="Dlamini").apply(profile)
        assert profile.last_name == "Nkosi"
        assert patched is not profile

    def test_empty_patch(self):
        profile = make_profile("U1")
        patch = ProfilePatch()
        assert patch.is_empty()
        assert patch.apply(profile) == profile

    def test_id_not_patchable(self):
        with pytest.raises(ValidationError):
            ProfilePatch(id="U2")
