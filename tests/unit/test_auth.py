#!/usr/bin/env python3
"""
Unit tests for authentication helpers and the require_auth decorator.
"""

from unittest.mock import patch

import pytest
from flask import Flask, jsonify, g
from jose import jwt

from apps.api.auth import (
    hash_password, verify_password, create_token, decode_token, require_auth, ALGORITHM
)

SECRET = "unit-test-secret-key-which-is-long-enough"


@pytest.fixture
def app():
    """Minimal app with one protected route"""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["JWT_SECRET"] = SECRET

    @app.route("/protected")
    @require_auth
    def protected():
        return jsonify({"user_id": g.user_id})

    return app


@pytest.fixture
def client(app):
    return app.test_client()


class TestPasswords:
    """Tests for password hashing."""

    def test_hash_and_verify(self):
        hashed = hash_password("secret123")

        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("secret123") != hash_password("secret123")

    def test_empty_or_corrupt_hash(self):
        assert not verify_password("secret123", "")
        assert not verify_password("secret123", "not-a-bcrypt-hash")


class TestTokens:
    """Tests for token signing."""

    def test_round_trip(self):
        token = create_token("user1", SECRET)
        assert decode_token(token, SECRET) == "user1"

    def test_payload_shape(self):
        payload = jwt.decode(create_token("user1", SECRET), SECRET, algorithms=[ALGORITHM])
        assert payload["user"] == {"id": "user1"}
        assert "exp" in payload

    def test_wrong_secret(self):
        token = create_token("user1", SECRET)
        assert decode_token(token, "another-secret") is None

    def test_expired(self):
        token = create_token("user1", SECRET, expires_days=-1)
        assert decode_token(token, SECRET) is None

    def test_garbage(self):
        assert decode_token("not.a.token", SECRET) is None


class TestRequireAuth:
    """Tests for the require_auth decorator."""

    def test_missing_token(self, client):
        response = client.get("/protected")

        assert response.status_code == 401
        assert response.get_json() == {"msg": "No token, authorization denied"}

    def test_invalid_token(self, client):
        response = client.get("/protected", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.get_json() == {"msg": "Token is not valid"}

    def test_valid_token(self, client):
        token = create_token("user1", SECRET)

        response = client.get("/protected", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.get_json() == {"user_id": "user1"}

    def test_token_without_bearer_prefix(self, client):
        token = create_token("user1", SECRET)

        response = client.get("/protected", headers={"Authorization": token})

        assert response.status_code == 200

    @patch("apps.api.auth.decode_token", return_value=None)
    def test_decoder_rejection(self, mock_decode, client):
        response = client.get("/protected", headers={"Authorization": "Bearer abc"})

        assert response.status_code == 401
        mock_decode.assert_called_once_with("abc", SECRET)
