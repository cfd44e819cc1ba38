"""
Refresh token ledger.

Refresh tokens are opaque random strings persisted with an absolute expiry.
A token is live while its row exists and has not expired. Rotation deletes
the presented row and inserts a fresh one in the same commit, so a token can
be exchanged at most once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from services.errors import InvalidRefreshToken
from utils.security import Clock, generate_refresh_token, utcnow

logger = logging.getLogger(__name__)

REFRESH_TOKEN_TTL = timedelta(days=7)


@dataclass(frozen=True)
class Rotation:
    user_id: int
    token: str


class RefreshTokenLedger:
    def __init__(self, storage: DBStorage, ttl: timedelta = REFRESH_TOKEN_TTL, clock: Clock = utcnow):
        self.storage = storage
        self.ttl = ttl
        self.clock = clock

    def _add(self, user_id: int) -> str:
        now = self.clock()
        token = generate_refresh_token()
        self.storage.new(
            RefreshToken(
                user_id=user_id,
                token=token,
                expires_at=now + self.ttl,
                created_at=now,
                updated_at=now,
            )
        )
        return token

    def _find(self, token: str) -> RefreshToken | None:
        session = self.storage.get_session()
        return session.query(RefreshToken).filter(RefreshToken.token == token).first()

    def issue(self, user_id: int) -> str:
        token = self._add(user_id)
        self.storage.save()
        logger.debug("Refresh token issued for user %s", user_id)
        return token

    def rotate(self, token: str) -> Rotation:
        """Exchange a live token for a new one; raises InvalidRefreshToken otherwise."""
        row = self._find(token)
        if row is None:
            raise InvalidRefreshToken("unknown")
        if row.expires_at <= self.clock():
            raise InvalidRefreshToken("expired")

        user_id = row.user_id
        # Conditional delete: of two concurrent rotations only one removes the row
        session = self.storage.get_session()
        claimed = session.query(RefreshToken).filter(RefreshToken.id == row.id).delete()
        if claimed != 1:
            self.storage.rollback()
            raise InvalidRefreshToken("already_rotated")
        new_token = self._add(user_id)
        self.storage.save()
        return Rotation(user_id=user_id, token=new_token)

    def revoke(self, token: str) -> None:
        """Delete the token if present. Revoking an unknown token is not an error."""
        row = self._find(token)
        if row is None:
            return
        self.storage.delete(row)
        self.storage.save()
