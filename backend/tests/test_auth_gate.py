"""
Tests for the edge gatekeeper and the pages it protects.
"""
import uuid
from datetime import timedelta

import pytest
from fastapi import status

from guruchat.auth import create_access_token
from guruchat.middleware.auth_gate import is_auth_page, is_excluded, is_public_api


@pytest.mark.unit
class TestPathClassification:

    @pytest.mark.parametrize("path", ["/static/css/site.css", "/images/a.png", "/favicon.ico", "/health", "/docs"])
    def test_excluded(self, path):
        assert is_excluded(path)

    @pytest.mark.parametrize("path", ["/", "/chat", "/api/chats", "/login"])
    def test_not_excluded(self, path):
        assert not is_excluded(path)

    def test_auth_pages(self):
        assert is_auth_page("/login")
        assert is_auth_page("/register")
        assert not is_auth_page("/chat")

    def test_public_api(self):
        assert is_public_api("/api/auth/login")
        assert is_public_api("/api/auth/register")
        assert not is_public_api("/api/auth/logout")


@pytest.mark.integration
class TestAnonymousRequests:

    @pytest.mark.parametrize("path", ["/", "/chat"])
    def test_pages_redirect_to_login(self, client, path):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
        assert response.headers["location"] == "/login"

    @pytest.mark.parametrize("path", ["/api/gurus", "/api/chats"])
    def test_api_gets_401(self, client, path):
        response = client.get(path)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error_code"] == "AUTHENTICATION_ERROR"

    @pytest.mark.parametrize("path", ["/login", "/register"])
    def test_auth_pages_render(self, client, path):
        response = client.get(path)
        assert response.status_code == status.HTTP_200_OK
        assert "text/html" in response.headers["content-type"]

    def test_excluded_paths_pass(self, client):
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get("/static/css/site.css").status_code == status.HTTP_200_OK

    def test_options_is_not_gated(self, client):
        response = client.options("/api/gurus")
        assert response.status_code != status.HTTP_401_UNAUTHORIZED

    def test_tampered_cookie_is_anonymous(self, client):
        client.cookies.set("jwt_token", create_access_token(uuid.uuid4()) + "x")
        assert client.get("/", follow_redirects=False).status_code == status.HTTP_307_TEMPORARY_REDIRECT
        assert client.get("/api/gurus").status_code == status.HTTP_401_UNAUTHORIZED
        assert client.get("/login").status_code == status.HTTP_200_OK

    def test_expired_cookie_is_anonymous(self, client):
        client.cookies.set("jwt_token", create_access_token(uuid.uuid4(), expires_delta=timedelta(seconds=-5)))
        response = client.get("/chat", follow_redirects=False)
        assert response.headers["location"] == "/login"


@pytest.mark.integration
class TestAuthenticatedRequests:

    @pytest.mark.parametrize("path", ["/login", "/register"])
    def test_auth_pages_redirect_home(self, auth_client, path):
        response = auth_client.get(path, follow_redirects=False)
        assert response.status_code == status.HTTP_307_TEMPORARY_REDIRECT
        assert response.headers["location"] == "/"

    def test_home_renders(self, auth_client):
        response = auth_client.get("/")
        assert response.status_code == status.HTTP_200_OK
        assert "Choose your Guru" in response.text
        assert 'id="history-search"' in response.text

    def test_chat_page_carries_guru_id(self, auth_client, guru):
        response = auth_client.get("/chat", params={"guruId": str(guru.id)})
        assert response.status_code == status.HTTP_200_OK
        assert f'data-guru-id="{guru.id}"' in response.text

    def test_security_headers(self, auth_client):
        response = auth_client.get("/")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "x-request-id" in response.headers
