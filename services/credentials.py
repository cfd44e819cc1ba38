"""
Credential store: user records keyed by normalized email.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.user import User
from services.errors import AlreadyExists, NotFound
from utils.security import Clock, utcnow

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    def __init__(self, storage: DBStorage, clock: Clock = utcnow):
        self.storage = storage
        self.clock = clock

    def find_by_email(self, email: str) -> Optional[User]:
        session = self.storage.get_session()
        return session.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.storage.get(User, user_id)

    def create(
        self,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        """
        Insert a user. Raises AlreadyExists when the email is taken, whether
        the pre-check catches it or the unique index does on commit.
        """
        email = normalize_email(email)
        if self.find_by_email(email):
            raise AlreadyExists(email)

        now = self.clock()
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            created_at=now,
            updated_at=now,
        )
        self.storage.new(user)
        try:
            self.storage.save()
        except IntegrityError as exc:
            logger.info("Concurrent signup lost the race for %s", email)
            raise AlreadyExists(email) from exc
        return user

    def update_password_hash(self, user_id: int, new_hash: str) -> None:
        user = self.find_by_id(user_id)
        if not user:
            raise NotFound("User not found")
        user.password_hash = new_hash
        user.updated_at = self.clock()
        self.storage.save()
