"""Tests for photofolio.core.auth — bearer token verification."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from photofolio.core.auth import (
    AuthUser,
    FirebaseTokenVerifier,
    StaticTokenVerifier,
    extract_bearer_token,
)
from photofolio.core.errors import AuthError


class TestExtractBearerToken:
    def test_valid_header(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "bearer abc"])
    def test_invalid_headers(self, header):
        with pytest.raises(AuthError):
            extract_bearer_token(header)


class TestStaticTokenVerifier:
    def test_accepts_matching_token(self):
        verifier = StaticTokenVerifier("secret", uid="me")
        assert verifier.verify("secret") == AuthUser(uid="me")

    def test_rejects_other_token(self):
        with pytest.raises(AuthError):
            StaticTokenVerifier("secret").verify("guess")

    def test_requires_token(self):
        with pytest.raises(ValueError):
            StaticTokenVerifier("")


class TestFirebaseTokenVerifier:
    def test_returns_decoded_user(self):
        with patch("firebase_admin.auth.verify_id_token") as verify:
            verify.return_value = {"uid": "firebase-uid", "email": "owner@example.test"}
            user = FirebaseTokenVerifier(app="app").verify("id-token")

        verify.assert_called_once_with("id-token", app="app")
        assert user == AuthUser(uid="firebase-uid", email="owner@example.test")

    def test_invalid_token_raises_auth_error(self):
        with patch("firebase_admin.auth.verify_id_token", side_effect=ValueError("bad token")):
            with pytest.raises(AuthError):
                FirebaseTokenVerifier().verify("junk")
