"""
Integration tests — ``GET /api/accounts/me/`` and token refresh.
"""

from __future__ import annotations

import pytest
from django.urls import reverse
from rest_framework import status


@pytest.mark.django_db
class TestMeEndpoint:

    def test_requires_authentication(self, api_client):
        resp = api_client.get(reverse("accounts:me"))
        assert resp.status_code == status.HTTP_401_UNAUTHORIZED

    def test_returns_profile_and_role(self, api_client, auth_header):
        header = auth_header(username="me_user", role="officer")
        api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])

        resp = api_client.get(reverse("accounts:me"))

        assert resp.status_code == status.HTTP_200_OK
        assert resp.data["username"] == "me_user"
        assert resp.data["role_name"] == "officer"

    def test_superuser_reports_admin_role(self, api_client, create_user):
        user = create_user(username="root", is_superuser=True, is_staff=True)
        api_client.force_authenticate(user)

        resp = api_client.get(reverse("accounts:me"))

        assert resp.data["role_name"] == "admin"


@pytest.mark.django_db
def test_refresh_token_issues_new_access_token(api_client, create_user):
    create_user(username="refresher", password="Refresh!Pass1")
    login = api_client.post(
        reverse("accounts:login"),
        {"identifier": "refresher", "password": "Refresh!Pass1"},
        format="json",
    )

    resp = api_client.post(
        reverse("accounts:token-refresh"),
        {"refresh": login.data["refresh"]},
        format="json",
    )

    assert resp.status_code == status.HTTP_200_OK
    assert "access" in resp.data
