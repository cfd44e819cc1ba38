"""
Password reset ledger.

Issues single-use reset tokens (one outstanding per user), validates them,
and consumes them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.password_reset_token import PasswordResetToken
from utils.security import Clock, generate_reset_token, utcnow

logger = logging.getLogger(__name__)

# Token lifetime
PASSWORD_RESET_TTL = timedelta(hours=1)

REASON_UNKNOWN = "unknown"
REASON_EXPIRED = "expired"

MESSAGES = {
    None: "Token is valid",
    REASON_UNKNOWN: "Invalid reset token",
    REASON_EXPIRED: "Reset token has expired",
}


@dataclass(frozen=True)
class ResetTokenCheck:
    valid: bool
    reason: Optional[str] = None
    user_id: Optional[int] = None

    @property
    def message(self) -> str:
        return MESSAGES[self.reason]


# -----------------------------------------------------------------------------

class PasswordResetLedger:
    def __init__(self, storage: DBStorage, ttl: timedelta = PASSWORD_RESET_TTL, clock: Clock = utcnow):
        self.storage = storage
        self.ttl = ttl
        self.clock = clock

    def _query(self):
        return self.storage.get_session().query(PasswordResetToken)

    def purge_expired(self) -> int:
        """Delete every lapsed token. Returns how many rows went."""
        removed = self._query().filter(PasswordResetToken.expires_at <= self.clock()).delete()
        self.storage.save()
        if removed:
            logger.debug("Purged %d expired password reset tokens", removed)
        return removed

    # -------------------------------------------------------------------------

    def issue(self, user_id: int) -> str:
        """
        Create a reset token for the user, replacing any outstanding one.
        """
        self.purge_expired()

        now = self.clock()
        raw_token = generate_reset_token()
        row = self._query().filter(PasswordResetToken.user_id == user_id).first()
        if row is None:
            row = PasswordResetToken(user_id=user_id, created_at=now)
            self.storage.new(row)
        row.token = raw_token
        row.expires_at = now + self.ttl
        row.updated_at = now
        try:
            self.storage.save()
        except IntegrityError:
            # A concurrent request inserted this user's row first; overwrite it
            row = self._query().filter(PasswordResetToken.user_id == user_id).one()
            row.token = raw_token
            row.expires_at = now + self.ttl
            row.updated_at = now
            self.storage.save()
        return raw_token

    # -------------------------------------------------------------------------

    def validate(self, raw_token: str) -> ResetTokenCheck:
        """
        Check a token without using it up. An expired token is deleted as a
        side effect; a live one is left alone so the check can be repeated.
        """
        row = self._query().filter(PasswordResetToken.token == raw_token).first()
        if row is None:
            return ResetTokenCheck(valid=False, reason=REASON_UNKNOWN)

        if row.expires_at <= self.clock():
            self.storage.delete(row)
            self.storage.save()
            return ResetTokenCheck(valid=False, reason=REASON_EXPIRED)

        return ResetTokenCheck(valid=True, user_id=row.user_id)

    # -------------------------------------------------------------------------

    def consume(self, raw_token: str) -> ResetTokenCheck:
        """
        Validate and, if valid, delete the token. The returned check carries
        the owning user id.
        """
        check = self.validate(raw_token)
        if not check.valid:
            return check

        claimed = self._query().filter(PasswordResetToken.token == raw_token).delete()
        if claimed != 1:
            # Used up by a concurrent confirmation
            self.storage.rollback()
            return ResetTokenCheck(valid=False, reason=REASON_UNKNOWN)
        self.storage.save()
        return check
