"""
Pruebas de la API de autenticación: registro, inicio de sesión, sesión actual.
"""
from uuid import uuid4

import pytest

from app.core.config import settings
from app.core.rate_limit import InMemoryRateLimiter, limiter
from app.core.security import create_access_token

from conftest import register_user


def _register_payload(**overrides) -> dict:
    suffix = uuid4().hex[:8]
    payload = {
        "email": f"user-{suffix}@example.com",
        "password": "SecurePass123!",
        "nickname": f"nick_{suffix}",
        "realName": "Ana García",
        "birthDate": "1992-03-10",
    }
    payload.update(overrides)
    return payload


class TestAuthRegister:
    """Registro de usuarios."""

    def test_register_success(self, client):
        """Registro correcto devuelve usuario y token."""
        payload = _register_payload()
        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["email"] == payload["email"]
        assert body["data"]["user"]["nickname"] == payload["nickname"]
        assert body["data"]["user"]["realName"] == "Ana García"
        assert "hashedPassword" not in body["data"]["user"]
        assert body["data"]["token"]

    def test_register_duplicate_email(self, client):
        payload = _register_payload()
        client.post("/api/auth/register", json=payload)

        response = client.post(
            "/api/auth/register",
            json=_register_payload(email=payload["email"]),
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Este email ya está registrado"}

    def test_register_duplicate_nickname(self, client):
        payload = _register_payload()
        client.post("/api/auth/register", json=payload)

        response = client.post(
            "/api/auth/register",
            json=_register_payload(nickname=payload["nickname"]),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Este nickname ya está en uso"

    def test_register_invalid_email(self, client):
        """Los errores de validación se devuelven como 400."""
        response = client.post("/api/auth/register", json=_register_payload(email="not-an-email"))

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_register_short_password(self, client):
        response = client.post("/api/auth/register", json=_register_payload(password="short"))
        assert response.status_code == 400

    def test_register_missing_birth_date(self, client):
        payload = _register_payload()
        del payload["birthDate"]
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 400


class TestAuthLogin:
    """Inicio de sesión."""

    def test_login_success(self, client):
        user = register_user(client)

        response = client.post(
            "/api/auth/login",
            json={"email": user["user"]["email"], "password": user["password"]},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == user["user"]["id"]
        assert data["token"]

    def test_login_wrong_password(self, client):
        user = register_user(client)

        response = client.post(
            "/api/auth/login",
            json={"email": user["user"]["email"], "password": "WrongPass999!"},
        )

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Email o contraseña incorrectos"}

    def test_login_unknown_email(self, client):
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": "SecurePass123!"},
        )
        assert response.status_code == 401


class TestAuthMe:
    """Sesión actual y token Bearer."""

    def test_me_with_token(self, client):
        user = register_user(client)

        response = client.get("/api/auth/me", headers=user["headers"])

        assert response.status_code == 200
        assert response.json()["data"]["id"] == user["user"]["id"]

    def test_me_requires_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Token de acceso requerido"}

    def test_me_invalid_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer invalid.token.here"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token inválido"

    def test_me_expired_token(self, client):
        user = register_user(client)
        expired = create_access_token(str(user["user"]["id"]), expires_delta_minutes=-1)

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})

        assert response.status_code == 401

    def test_me_token_for_missing_user(self, client):
        token = create_access_token("999999")
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Usuario no encontrado"

    def test_logout(self, client):
        user = register_user(client)
        response = client.post("/api/auth/logout", headers=user["headers"])
        assert response.status_code == 200
        assert response.json()["success"] is True


@pytest.fixture
def rate_limiting(monkeypatch):
    """Turns the limiter on for one test and leaves no counters behind."""
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    limiter._entries.clear()
    yield limiter
    limiter._entries.clear()


class TestAuthRateLimit:
    """Límite de peticiones en inicio de sesión y registro."""

    def test_login_throttled_after_limit(self, client, rate_limiting):
        user = register_user(client)
        body = {"email": user["user"]["email"], "password": "WrongPass1!"}

        for _ in range(settings.rate_limit_login_requests):
            response = client.post("/api/auth/login", json=body)
            assert response.status_code == 401

        response = client.post("/api/auth/login", json=body)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        assert response.json()["success"] is False
        assert response.json()["message"].startswith("Demasiadas solicitudes")

    def test_correct_password_also_throttled(self, client, rate_limiting):
        user = register_user(client)
        for _ in range(settings.rate_limit_login_requests):
            client.post("/api/auth/login", json={"email": user["user"]["email"], "password": "WrongPass1!"})

        response = client.post(
            "/api/auth/login",
            json={"email": user["user"]["email"], "password": user["password"]},
        )

        assert response.status_code == 429

    def test_register_throttled_after_limit(self, client, rate_limiting):
        for _ in range(settings.rate_limit_requests):
            assert client.post("/api/auth/register", json=_register_payload()).status_code == 201

        response = client.post("/api/auth/register", json=_register_payload())

        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_disabled_limiter_never_throttles(self, client):
        body = {"email": "nobody@example.com", "password": "WrongPass1!"}
        for _ in range(settings.rate_limit_login_requests + 2):
            assert client.post("/api/auth/login", json=body).status_code == 401


class TestRateLimiter:
    """Ventana deslizante del limitador en memoria."""

    def test_window_counts_per_key(self):
        local = InMemoryRateLimiter()

        assert local.is_allowed("a", 2, 60) == (True, 0)
        assert local.is_allowed("a", 2, 60) == (True, 0)
        allowed, retry_after = local.is_allowed("a", 2, 60)
        assert allowed is False
        assert 1 <= retry_after <= 61
        assert local.is_allowed("b", 2, 60) == (True, 0)

        local.reset("a")
        assert local.is_allowed("a", 2, 60) == (True, 0)
