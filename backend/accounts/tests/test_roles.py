"""
Unit tests for role helpers and the identity lookups used by other apps.
"""

from __future__ import annotations

import pytest

from accounts.services import UserDirectory
from core.domain.access import apply_role_scope, get_user_role_name, require_role, user_has_role
from core.domain.exceptions import PermissionDenied


@pytest.mark.django_db
class TestRoleHelpers:

    def test_role_name_is_normalised(self, create_user, role):
        user = create_user(role=role("Investigator"))
        assert get_user_role_name(user) == "investigator"
        assert user.has_role("investigator")

    def test_user_without_role(self, create_user):
        user = create_user()
        assert get_user_role_name(user) is None
        assert not user_has_role(user, "admin")

    def test_require_role(self, create_user):
        officer = create_user(role="officer")
        require_role(officer, "officer", "admin")
        with pytest.raises(PermissionDenied):
            require_role(officer, "admin")

    def test_apply_role_scope_uses_first_matching_rule(self, create_user):
        from accounts.models import User

        admin = create_user(role="admin")
        reporter = create_user(role="reporter")
        rules = [
            ({"admin"}, lambda qs, u: qs),
            (None, lambda qs, u: qs.filter(pk=u.pk)),
        ]

        assert apply_role_scope(User.objects.all(), admin, scope_rules=rules).count() == 2
        assert list(apply_role_scope(User.objects.all(), reporter, scope_rules=rules)) == [reporter]


@pytest.mark.django_db
class TestUserDirectory:

    def test_get_missing_user(self):
        assert UserDirectory.get(987654) is None
        assert UserDirectory.get("not-a-number") is None

    def test_active_with_role_includes_superusers_for_admin(self, create_user):
        admin = create_user(role="admin")
        root = create_user(is_superuser=True)
        create_user(role="admin", is_active=False)
        create_user(role="reporter")

        assert set(UserDirectory.active_with_role("admin")) == {admin, root}
