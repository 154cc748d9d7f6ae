"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``role`` factory fixture returning a ``Role`` by name.
  - ``create_user`` factory fixture for creating test users.
  - ``auth_header`` fixture for authenticated requests (JWT).
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def role(db):
    """
    Factory fixture returning (creating if needed) the named ``Role``.

    Usage::

        def test_something(role):
            investigator_role = role("investigator")
    """
    from accounts.models import Role

    def _get(name: str):
        obj, _ = Role.objects.get_or_create(name=name)
        return obj

    return _get


@pytest.fixture()
def create_user(db, role):
    """
    Factory fixture that creates a user with sensible defaults.

    ``role`` may be a ``Role`` instance or a role name.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice")
            investigator = create_user(role="investigator")
    """
    from accounts.models import User

    get_role = role
    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        role=None,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"
        if isinstance(role, str):
            role = get_role(role)

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            is_active=is_active,
            role=role,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper function that creates a user and returns an
    ``Authorization`` header dict with a valid JWT access token.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(role="admin")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/audit-logs/")
            assert resp.status_code == 200

    The returned dict looks like::

        {"Authorization": "Bearer eyJ..."}
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(
        *,
        username: str | None = None,
        role=None,
        **user_kwargs,
    ) -> dict[str, str]:
        user = create_user(username=username, role=role, **user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make
