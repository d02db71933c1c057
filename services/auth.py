"""Credential checks and signed access tokens."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Optional

import bcrypt
import jwt

from datastore.users_table import UserStore, build_default_user_store
from services.errors import InvalidCredentials, InvalidToken
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 12
TOKEN_ALGORITHM = "HS256"


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("ascii")


def verify_password(password: str, encoded: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), encoded.encode("utf-8"))
    except ValueError:
        # unparseable stored hash or a password bcrypt refuses
        return False


class TokenSigner:
    """HS256 JSON Web Tokens carrying the user email as ``sub``."""

    def __init__(self, secret: str, ttl_seconds: int) -> None:
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def sign(self, subject: str) -> str:
        issued_at = datetime.now(timezone.utc)
        claims = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(claims, self._secret, algorithm=TOKEN_ALGORITHM)

    def verify(self, token: str) -> str:
        """Return the token subject, raising :class:`InvalidToken` on any defect."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken("Token has expired.") from None
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(f"Rejected token: {exc}") from None
        return claims["sub"]


class AuthService:
    """Gates access to the ingestion and search endpoints."""

    def __init__(
        self,
        users: UserStore,
        signer: TokenSigner,
        rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self.users = users
        self.signer = signer
        self.rounds = rounds

    def authenticate(self, email: Any, password: Any) -> str:
        """Return an access token; unknown users and wrong passwords fail identically."""
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            raise InvalidCredentials()

        encoded = self.users.get_password_hash(email)
        if encoded is None or not verify_password(password, encoded):
            logger.info("Rejected login", extra={"email": email})
            raise InvalidCredentials()

        logger.info("Issued access token", extra={"email": email})
        return self.signer.sign(email)

    def verify_token(self, token: Optional[str]) -> str:
        if not token:
            raise InvalidToken("Missing token.")
        return self.signer.verify(token)

    def create_user(self, email: str, password: str) -> None:
        if not email or not password:
            raise ValueError("Email and password are required.")
        self.users.put(email, hash_password(password, self.rounds))
        logger.info("Stored user credentials", extra={"email": email})

    def ensure_user(self, email: str, password: str) -> bool:
        """Create the user unless it already exists; return whether it was created."""
        if self.users.exists(email):
            return False
        self.create_user(email, password)
        return True


@lru_cache
def build_default_auth_service() -> AuthService:
    settings = get_settings()
    signer = TokenSigner(secret=settings.token_secret, ttl_seconds=settings.token_ttl_seconds)
    return AuthService(users=build_default_user_store(), signer=signer)
