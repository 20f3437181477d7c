"""
Tests for the permission tier evaluator.

The pure ``tier`` function is checked with Hypothesis for its ordering
properties; ``member_tier`` and ``require_tier`` are checked against mock
members.
"""

import os
import sys

import pytest
from hypothesis import given
from hypothesis import strategies as st

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from tests.mock_factories import MockMemberFactory, MockRoleFactory, MockUserFactory
from utils.exceptions import RolePermissionError
from utils.permissions import RoleSettings, Tier, member_tier, require_tier, tier

VERIFIED, GUARDIAN, ADMIN = 1001, 1002, 1003
SETTINGS = RoleSettings(verified_role_id=VERIFIED, guardian_role_id=GUARDIAN, admin_role_id=ADMIN)

role_ids = st.sets(st.sampled_from([VERIFIED, GUARDIAN, ADMIN, 42, 43]))
optional_ids = st.one_of(st.none(), st.sampled_from([VERIFIED, GUARDIAN, ADMIN]))
settings_strategy = st.builds(
    RoleSettings,
    verified_role_id=optional_ids,
    guardian_role_id=optional_ids,
    admin_role_id=optional_ids,
    open_reporting=st.booleans(),
)


class TestTier:
    def test_plain_member_has_no_tier(self):
        assert tier([42], False, SETTINGS) is Tier.NONE

    def test_each_configured_role(self):
        assert tier([VERIFIED], False, SETTINGS) is Tier.VERIFIED
        assert tier([GUARDIAN], False, SETTINGS) is Tier.GUARDIAN
        assert tier([ADMIN], False, SETTINGS) is Tier.ADMIN

    def test_administrator_permission_is_admin(self):
        assert tier([], True, SETTINGS) is Tier.ADMIN

    def test_unset_verified_role_closed_by_default(self):
        settings = RoleSettings(guardian_role_id=GUARDIAN, admin_role_id=ADMIN)
        assert tier([], False, settings) is Tier.NONE

    def test_unset_verified_role_with_open_reporting(self):
        settings = RoleSettings(guardian_role_id=GUARDIAN, admin_role_id=ADMIN, open_reporting=True)
        assert tier([], False, settings) is Tier.VERIFIED

    def test_unset_admin_role_grants_nothing(self):
        settings = RoleSettings(verified_role_id=VERIFIED)
        assert tier([VERIFIED, 42], False, settings) is Tier.VERIFIED

    @given(roles=role_ids, extra=role_ids, admin=st.booleans(), settings=settings_strategy)
    def test_more_roles_never_lower_the_tier(self, roles, extra, admin, settings):
        assert tier(roles | extra, admin, settings) >= tier(roles, admin, settings)

    @given(roles=role_ids, settings=settings_strategy)
    def test_administrator_dominates(self, roles, settings):
        assert tier(roles, True, settings) is Tier.ADMIN
        assert tier(roles, True, settings) >= tier(roles, False, settings)

    @given(roles=role_ids, admin=st.booleans())
    def test_result_is_a_known_tier(self, roles, admin):
        assert tier(roles, admin, SETTINGS) in set(Tier)


class TestMemberTier:
    def test_non_member_has_no_tier(self):
        user = MockUserFactory.create()
        assert member_tier(user, SETTINGS) is Tier.NONE

    def test_member_roles_are_used(self):
        member = MockMemberFactory.create(roles=[MockRoleFactory.create(role_id=GUARDIAN)])
        assert member_tier(member, SETTINGS) is Tier.GUARDIAN

    def test_require_tier_passes_and_returns_actual(self):
        member = MockMemberFactory.create(roles=[MockRoleFactory.create(role_id=ADMIN)])
        assert require_tier(member, Tier.GUARDIAN, SETTINGS) is Tier.ADMIN

    def test_require_tier_rejects_lower_tier(self):
        member = MockMemberFactory.create(roles=[MockRoleFactory.create(role_id=VERIFIED)])

        with pytest.raises(RolePermissionError) as exc_info:
            require_tier(member, Tier.ADMIN, SETTINGS)

        assert exc_info.value.required_tier == "admin"
