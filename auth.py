"""
Password hashing and session tokens.

Tokens are HS256-signed JWTs. The access token carries the user's identity
claims; the refresh token only carries the uid. Nothing is kept server side
apart from the copy stored on the user document at signup/login.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Tuple

import jwt
from passlib.context import CryptContext

import config

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=config.BCRYPT_ROUNDS,
)


class AuthenticationError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class Identity:
    email: str
    first_name: str
    last_name: str
    uid: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def generate_tokens(email: str, first_name: str, last_name: str, uid: str,
                    secret: str = config.SECRET_KEY) -> Tuple[str, str]:
    """Return an (access, refresh) token pair for the given user."""
    now = datetime.now(timezone.utc)
    claims = {
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "uid": uid,
        "exp": now + timedelta(hours=config.ACCESS_TOKEN_HOURS),
    }
    refresh_claims = {
        "uid": uid,
        "exp": now + timedelta(hours=config.REFRESH_TOKEN_HOURS),
    }
    token = jwt.encode(claims, secret, algorithm=ALGORITHM)
    refresh_token = jwt.encode(refresh_claims, secret, algorithm=ALGORITHM)
    return token, refresh_token


def validate_token(token: str, secret: str = config.SECRET_KEY) -> Identity:
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("token is expired")
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected token: %s", exc)
        raise AuthenticationError("token invalid")

    try:
        return Identity(
            email=claims["email"],
            first_name=claims["first_name"],
            last_name=claims["last_name"],
            uid=claims["uid"],
        )
    except KeyError:
        # A refresh token is signed with the same key but carries no identity
        raise AuthenticationError("token invalid")
