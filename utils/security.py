"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Access token signing/verification via PyJWT
- Random opaque tokens for refresh and password-reset ledgers
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

from services.errors import SigningFailure

logger = logging.getLogger(__name__)

# Fixed argon2id work factors; every stored hash carries them in its prefix
HASH_TIME_COST = 3
HASH_MEMORY_COST = 65536  # KiB
HASH_PARALLELISM = 4

ph = PasswordHasher(
    time_cost=HASH_TIME_COST,
    memory_cost=HASH_MEMORY_COST,
    parallelism=HASH_PARALLELISM,
)

# Verified against when no user matches, so unknown emails cost the same
DUMMY_PASSWORD_HASH = ph.hash("not-a-password")

ACCESS_TOKEN_TYPE = "access"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC now; every stored timestamp uses this form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_refresh_token() -> str:
    """32 random bytes, hex encoded."""
    return secrets.token_hex(32)


def generate_reset_token() -> str:
    """32 random bytes, url-safe so it can sit in a link."""
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class AccessTokenCheck:
    """Outcome of inspecting an access token.

    ``reason`` explains a rejection and is meant for logs only.
    """
    user_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.user_id is not None


class TokenSigner:
    """Issues and verifies short-lived access tokens (HS256 JWTs)."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(minutes=15),
        clock: Clock = utcnow,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock

    @property
    def expires_in(self) -> int:
        return int(self.ttl.total_seconds())

    def issue_access_token(self, user_id: int) -> str:
        now = self.clock().replace(tzinfo=timezone.utc)
        payload = {
            "sub": str(user_id),
            "type": ACCESS_TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        try:
            token = jwt.encode(payload, self.secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
            raise SigningFailure(str(exc)) from exc
        logger.debug("Access token issued for user %s", user_id)
        return token

    def inspect_access_token(self, token: str) -> AccessTokenCheck:
        """
        Check signature, type, expiry and subject. Expiry is judged against
        self.clock rather than the wall clock, so this is a pure function of
        (token, secret, clock).
        """
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={
                    "require": ["sub", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            return AccessTokenCheck(reason=f"malformed: {exc}")

        if decoded.get("type") != ACCESS_TOKEN_TYPE:
            return AccessTokenCheck(reason="wrong_type")

        exp = decoded.get("exp")
        now = self.clock().replace(tzinfo=timezone.utc).timestamp()
        if not isinstance(exp, (int, float)) or exp <= now:
            return AccessTokenCheck(reason="expired")

        try:
            user_id = int(decoded["sub"])
        except (TypeError, ValueError):
            return AccessTokenCheck(reason="bad_subject")
        if user_id <= 0:
            return AccessTokenCheck(reason="bad_subject")

        return AccessTokenCheck(user_id=user_id)

    def verify_access_token(self, token: str) -> Optional[int]:
        """Return the user id, or None for any kind of invalid token."""
        check = self.inspect_access_token(token)
        if not check.valid:
            logger.debug("Access token rejected: %s", check.reason)
        return check.user_id
