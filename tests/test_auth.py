"""tests/test_auth.py – password hashing, tokens, signup and login."""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

import config
from auth import (
    AuthenticationError,
    Identity,
    generate_tokens,
    hash_password,
    validate_token,
    verify_password,
)
from schemas import LoginRequest, SignupRequest
from services import Conflict, NotFound


def signup_payload(**kw) -> SignupRequest:
    defaults = dict(
        first_name="Ada", last_name="Lovelace", password="secret123",
        email="ada@example.com", phone="+44100200300",
    )
    defaults.update(kw)
    return SignupRequest(**defaults)


# ── Passwords ──────────────────────────────────────────────────────────────────

class TestPasswords:
    def test_hash_is_not_plaintext(self):
        digest = hash_password("secret123")
        assert digest != "secret123"
        assert digest.startswith("$2")

    def test_verify(self):
        digest = hash_password("secret123")
        assert verify_password("secret123", digest)
        assert not verify_password("wrong", digest)


# ── Tokens ─────────────────────────────────────────────────────────────────────

class TestTokens:
    def test_round_trip_claims(self):
        token, _ = generate_tokens("a@b.com", "Ada", "Lovelace", "u1")
        assert validate_token(token) == Identity("a@b.com", "Ada", "Lovelace", "u1")

    def test_expiry_windows(self):
        token, refresh = generate_tokens("a@b.com", "Ada", "Lovelace", "u1")
        now = datetime.now(timezone.utc).timestamp()
        access_exp = jwt.decode(token, config.SECRET_KEY, algorithms=["HS256"])["exp"]
        refresh_exp = jwt.decode(refresh, config.SECRET_KEY, algorithms=["HS256"])["exp"]
        assert abs(access_exp - (now + 24 * 3600)) < 5
        assert abs(refresh_exp - (now + 168 * 3600)) < 5

    def test_expired(self):
        token = jwt.encode(
            {"email": "a@b.com", "first_name": "A", "last_name": "B", "uid": "u1",
             "exp": datetime.now(timezone.utc) - timedelta(seconds=10)},
            config.SECRET_KEY, algorithm="HS256",
        )
        with pytest.raises(AuthenticationError, match="token is expired"):
            validate_token(token)

    def test_wrong_signature(self):
        token, _ = generate_tokens("a@b.com", "Ada", "Lovelace", "u1", secret="another-secret")
        with pytest.raises(AuthenticationError, match="token invalid"):
            validate_token(token)

    def test_garbage(self):
        with pytest.raises(AuthenticationError, match="token invalid"):
            validate_token("not-a-token")

    def test_refresh_token_is_not_an_identity(self):
        _, refresh = generate_tokens("a@b.com", "Ada", "Lovelace", "u1")
        with pytest.raises(AuthenticationError, match="token invalid"):
            validate_token(refresh)


# ── Signup / login ─────────────────────────────────────────────────────────────

class TestSignup:
    def test_creates_user_with_tokens(self, services, store):
        user = services.users.signup(signup_payload())
        assert "password" not in user
        assert user["user_id"]
        assert validate_token(user["token"]).uid == user["user_id"]
        assert user["refresh_token"]
        stored = store.find_document("users", {"user_id": user["user_id"]})
        assert stored["password"] != "secret123"
        assert verify_password("secret123", stored["password"])

    def test_duplicate_email(self, services, store):
        services.users.signup(signup_payload())
        with pytest.raises(Conflict, match="email already exists"):
            services.users.signup(signup_payload(phone="+1999"))
        assert store.count_documents("users") == 1

    def test_duplicate_phone(self, services, store):
        services.users.signup(signup_payload())
        with pytest.raises(Conflict, match="phone number already exists"):
            services.users.signup(signup_payload(email="other@example.com"))
        assert store.count_documents("users") == 1

    def test_short_password_is_invalid(self):
        with pytest.raises(Exception):
            signup_payload(password="123")


class TestLogin:
    def test_success_rotates_tokens(self, services, store):
        user = services.users.signup(signup_payload())
        # tokens signed within the same second are identical
        store.update_document("users", {"user_id": user["user_id"]}, {"token": "stale"})
        logged_in = services.users.login(LoginRequest(email="ada@example.com", password="secret123"))
        assert "password" not in logged_in
        assert logged_in["token"] != "stale"
        stored = store.find_document("users", {"user_id": user["user_id"]})
        assert stored["token"] == logged_in["token"]
        assert stored["refresh_token"] == logged_in["refresh_token"]
        assert store.count_documents("users") == 1

    def test_same_message_for_unknown_email_and_bad_password(self, services):
        services.users.signup(signup_payload())
        with pytest.raises(AuthenticationError) as wrong_password:
            services.users.login(LoginRequest(email="ada@example.com", password="nope-nope"))
        with pytest.raises(AuthenticationError) as unknown_email:
            services.users.login(LoginRequest(email="ghost@example.com", password="secret123"))
        assert wrong_password.value.message == unknown_email.value.message
        assert wrong_password.value.message == "login or password is incorrect"

    def test_user_removed_mid_login_is_not_recreated(self, services, store, monkeypatch):
        services.users.signup(signup_payload())
        find_document = store.find_document

        def find_then_remove(collection_name, filter_dict):
            doc = find_document(collection_name, filter_dict)
            store.collection("users").delete_many({})
            return doc

        monkeypatch.setattr(store, "find_document", find_then_remove)
        with pytest.raises(AuthenticationError, match="login or password is incorrect"):
            services.users.login(LoginRequest(email="ada@example.com", password="secret123"))
        assert store.count_documents("users") == 0


class TestUsers:
    def test_get_hides_password(self, services):
        user = services.users.signup(signup_payload())
        fetched = services.users.get(user["user_id"])
        assert fetched["email"] == "ada@example.com"
        assert "password" not in fetched
        assert "token" not in fetched
        assert "refresh_token" not in fetched

    def test_get_unknown(self, services):
        with pytest.raises(NotFound, match="user was not found"):
            services.users.get("nobody")

    def test_logout(self, services):
        identity = Identity("a@b.com", "Ada", "Lovelace", "u1")
        assert services.users.logout(identity) == {"message": "Successfully logged out"}
