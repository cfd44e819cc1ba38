"""
Session orchestration: signup, login, token refresh, logout, password reset
and request authentication.

SessionService composes the credential store, the access token signer and
the two token ledgers. Every flow is a short request/response sequence; no
state is kept between calls beyond what the database holds.

Failure details are flattened on purpose before they leave this module:
"no such user" and "wrong password" are the same Unauthorized, as are an
expired and a garbage refresh token. The specific reason goes to the log.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from models.db_storage import DBStorage
from models.user import User
from services.credentials import CredentialStore
from services.errors import AlreadyExists, BadRequest, Conflict, InvalidRefreshToken, Unauthorized
from services.notifications import LogNotifier, ResetNotifier
from services.password_reset import PasswordResetLedger, ResetTokenCheck
from services.refresh_tokens import RefreshTokenLedger
from utils.security import DUMMY_PASSWORD_HASH, Clock, TokenSigner, hash_password, utcnow, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
LOGGED_OUT = "Logged out successfully"
RESET_REQUESTED = "If the email exists, a password reset link has been sent"
RESET_DONE = "Password reset successfully"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    user: User
    access_token: str
    refresh_token: str


def parse_bearer(header_value: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` value."""
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class SessionService:
    def __init__(
        self,
        credentials: CredentialStore,
        signer: TokenSigner,
        refresh_tokens: RefreshTokenLedger,
        password_resets: PasswordResetLedger,
        notifier: ResetNotifier | None = None,
    ):
        self.credentials = credentials
        self.signer = signer
        self.refresh_tokens = refresh_tokens
        self.password_resets = password_resets
        self.notifier = notifier or LogNotifier()

    def _issue_tokens(self, user_id: int) -> TokenPair:
        return TokenPair(
            access_token=self.signer.issue_access_token(user_id),
            refresh_token=self.refresh_tokens.issue(user_id),
        )

    # signup / login --------------------------------------------------------

    def signup(self, email: str, password: str, first_name: str | None = None,
               last_name: str | None = None) -> AuthResult:
        if self.credentials.find_by_email(email):
            raise Conflict("User with this email already exists")

        try:
            user = self.credentials.create(email, hash_password(password), first_name, last_name)
        except AlreadyExists:
            raise Conflict("User with this email already exists")

        tokens = self._issue_tokens(user.id)
        logger.info("User registered: %s (id=%s)", user.email, user.id)
        return AuthResult(user, tokens.access_token, tokens.refresh_token)

    def login(self, email: str, password: str) -> AuthResult:
        user = self.credentials.find_by_email(email)
        if user is None:
            verify_password(password, DUMMY_PASSWORD_HASH)
            logger.warning("Login failed: unknown email")
            raise Unauthorized(INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            logger.warning("Login failed: wrong password for user %s", user.id)
            raise Unauthorized(INVALID_CREDENTIALS)

        tokens = self._issue_tokens(user.id)
        logger.info("User logged in: %s (id=%s)", user.email, user.id)
        return AuthResult(user, tokens.access_token, tokens.refresh_token)

    # refresh / logout ------------------------------------------------------

    def refresh(self, refresh_token: str) -> TokenPair:
        try:
            rotation = self.refresh_tokens.rotate(refresh_token)
        except InvalidRefreshToken as exc:
            logger.warning("Refresh rejected: %s", exc.reason)
            raise Unauthorized(INVALID_REFRESH_TOKEN)

        logger.info("Tokens refreshed for user %s", rotation.user_id)
        return TokenPair(
            access_token=self.signer.issue_access_token(rotation.user_id),
            refresh_token=rotation.token,
        )

    def logout(self, refresh_token: str) -> str:
        """Revoke the refresh token. Always reports success."""
        try:
            self.refresh_tokens.revoke(refresh_token)
        except Exception:
            logger.exception("Logout failed to revoke refresh token")
        return LOGGED_OUT

    # password reset --------------------------------------------------------

    def request_password_reset(self, email: str) -> str:
        """Issue and dispatch a reset token. The answer never reveals whether the email exists."""
        try:
            user = self.credentials.find_by_email(email)
            if user is None:
                logger.info("Password reset requested for unknown email")
                return RESET_REQUESTED
            token = self.password_resets.issue(user.id)
            self.notifier.send_password_reset(user, token)
        except Exception:
            logger.exception("Password reset request failed")
        return RESET_REQUESTED

    def validate_password_reset(self, token: str) -> ResetTokenCheck:
        return self.password_resets.validate(token)

    def confirm_password_reset(self, token: str, new_password: str) -> str:
        check = self.password_resets.consume(token)
        if not check.valid:
            logger.warning("Password reset rejected: %s", check.reason)
            raise BadRequest(check.message)

        self.credentials.update_password_hash(check.user_id, hash_password(new_password))
        logger.info("Password reset completed for user %s", check.user_id)
        return RESET_DONE

    # request guard ---------------------------------------------------------

    def authenticate(self, authorization: Optional[str]) -> User:
        """Resolve the user behind an Authorization header or raise Unauthorized."""
        token = parse_bearer(authorization)
        if token is None:
            raise Unauthorized("Access token is required")

        user_id = self.signer.verify_access_token(token)
        if user_id is None:
            raise Unauthorized("Invalid access token")

        user = self.credentials.find_by_id(user_id)
        if user is None:
            # Not a 404: a vanished user must look like any other bad token
            logger.warning("Access token for missing user %s", user_id)
            raise Unauthorized("Invalid access token")
        return user


def build_session_service(
    storage: DBStorage,
    config: Mapping,
    notifier: ResetNotifier | None = None,
    clock: Clock = utcnow,
) -> SessionService:
    """Wire a SessionService from Flask-style config keys."""
    signer = TokenSigner(
        secret=config["JWT_SECRET"],
        algorithm=config.get("JWT_ALGORITHM", "HS256"),
        ttl=config["ACCESS_TOKEN_EXPIRES"],
        clock=clock,
    )
    if notifier is None:
        notifier = LogNotifier(config.get("PASSWORD_RESET_URL", "{token}"))
    return SessionService(
        credentials=CredentialStore(storage, clock=clock),
        signer=signer,
        refresh_tokens=RefreshTokenLedger(storage, ttl=config["REFRESH_TOKEN_EXPIRES"], clock=clock),
        password_resets=PasswordResetLedger(storage, ttl=config["PASSWORD_RESET_EXPIRES"], clock=clock),
        notifier=notifier,
    )
