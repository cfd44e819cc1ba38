"""
Password reset notification.

Delivering mail is not this service's job: a notifier receives the user and
the raw token once a reset has been requested. LogNotifier, the default,
writes the reset link to the log so an operator (or a log shipper wired to a
mailer) can pick it up.
"""
from __future__ import annotations

import logging

from models.user import User

logger = logging.getLogger(__name__)


class ResetNotifier:
    """Interface: deliver a password reset token to its owner."""

    def send_password_reset(self, user: User, token: str) -> None:
        raise NotImplementedError


class LogNotifier(ResetNotifier):
    def __init__(self, url_template: str = "{token}"):
        self.url_template = url_template

    def reset_link(self, token: str) -> str:
        return self.url_template.format(token=token)

    def send_password_reset(self, user: User, token: str) -> None:
        logger.info("Password reset requested for %s", user.email)
        logger.debug("Password reset link for user %s: %s", user.id, self.reset_link(token))
