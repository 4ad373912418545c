"""
Auth command handlers.

Every handler is one logical unit of work: it stages its changes on the
injected storage and commits once with storage.save(). When a handler raises,
nothing has been committed and the mediator rolls the session back.
"""
from __future__ import annotations

import logging
import math
import secrets
from datetime import datetime, timedelta

from models.role import Role, UserRole, USER_ROLE_ID
from models.user import User
from services.auth.commands import (
    AuthTokens,
    ForgotPasswordCommand,
    GoogleLoginCommand,
    LoginCommand,
    LogoutCommand,
    RefreshTokenCommand,
    RegisterCommand,
    RegisterResult,
    ResendVerificationEmailCommand,
    ResetPasswordCommand,
    RevokeRefreshTokenCommand,
    VerifyEmailCommand,
)
from services.exceptions import (
    BadRequestError,
    ForbiddenError,
    GoogleTokenError,
    NotFoundError,
    RateLimitError,
    UnauthorizedError,
    ValidationError,
)
from utils.security import (
    CredentialHasher,
    PasswordVerificationResult,
    generate_raw_token,
    hash_token,
    normalize_email,
    utcnow,
)

logger = logging.getLogger(__name__)

EMAIL_VERIFICATION_LIFETIME = timedelta(hours=24)
PASSWORD_RESET_LIFETIME = timedelta(minutes=30)
SECURITY_EMAIL_COOLDOWN = timedelta(minutes=5)

REGISTER_OK_MESSAGE = "Registration successful. Please check your email."
REGISTER_MAIL_FAILED_MESSAGE = (
    "Registration successful, but we couldn't send the verification email. "
    "Please try resending it from your profile."
)
INVALID_REFRESH_TOKEN = "Invalid refresh token"
INVALID_OR_EXPIRED_TOKEN = "Invalid or expired token."


def _assign_default_role(storage, user: User) -> None:
    role = storage.get(Role, USER_ROLE_ID)
    if role is not None:
        user.user_roles.append(UserRole(role=role))
    else:
        user.user_roles.append(UserRole(role_id=USER_ROLE_ID))


def _enforce_security_email_cooldown(user: User, now: datetime) -> None:
    """Raise RateLimitError while the 5 minute security-email cooldown is running."""
    if user.last_security_email_sent_at is None:
        return
    next_allowed = user.last_security_email_sent_at + SECURITY_EMAIL_COOLDOWN
    if next_allowed > now:
        remaining = math.ceil((next_allowed - now).total_seconds())
        raise RateLimitError(remaining)


def _token_is_live(token_hash: str | None, expires: datetime | None, now: datetime) -> bool:
    return token_hash is not None and expires is not None and expires > now


class TokenIssuingHandler:
    """Shared access/refresh pair issuance for login, refresh and Google login."""

    def __init__(self, storage, token_service):
        self.storage = storage
        self.token_service = token_service

    def issue_tokens(self, user: User) -> AuthTokens:
        # expires_at must equal the signed exp claim
        now = utcnow()
        access_token = self.token_service.generate_access_token(user, user.role_names, now=now)
        refresh_token = self.token_service.create_refresh_token(user.id)
        self.storage.new(refresh_token)
        return AuthTokens(
            access_token=access_token,
            refresh_token=refresh_token.token,
            expires_at=self.token_service.access_token_expires_at(now),
        )


class RegisterHandler:
    def __init__(self, storage, email_service, hasher=None):
        self.storage = storage
        self.email_service = email_service
        self.hasher = hasher or CredentialHasher()

    def handle(self, command: RegisterCommand) -> RegisterResult:
        email = normalize_email(command.email)
        if self.storage.find_user_by_email(email) is not None:
            raise ValidationError({"email": ["This Email Already Registered."]})

        raw_token = generate_raw_token()
        user = User(
            email=email,
            username=command.username,
            password_hash=self.hasher.hash(command.password),
            email_verified=False,
            email_verification_token_hash=hash_token(raw_token),
            email_verification_expires=utcnow() + EMAIL_VERIFICATION_LIFETIME,
        )
        _assign_default_role(self.storage, user)
        self.storage.new(user)
        self.storage.save()

        # the account exists from here on; a mail failure only degrades the response
        try:
            self.email_service.send_verification_email(user.email, user.username, raw_token)
        except Exception:
            logger.exception("User registered but verification email failed to send for %s", user.email)
            return RegisterResult(message=REGISTER_MAIL_FAILED_MESSAGE)

        return RegisterResult(message=REGISTER_OK_MESSAGE)


class LoginHandler(TokenIssuingHandler):
    def __init__(self, storage, token_service, hasher=None):
        super().__init__(storage, token_service)
        self.hasher = hasher or CredentialHasher()

    def handle(self, command: LoginCommand) -> AuthTokens:
        user = self.storage.find_user_by_email(normalize_email(command.email))
        if user is None:
            raise UnauthorizedError("Invalid credentials")
        if self.hasher.verify(user.password_hash, command.password) is not PasswordVerificationResult.SUCCESS:
            raise UnauthorizedError("Invalid credentials")
        if not user.email_verified:
            raise ForbiddenError("Email not verified")

        tokens = self.issue_tokens(user)
        self.storage.save()
        return tokens


class RefreshTokenHandler(TokenIssuingHandler):
    def handle(self, command: RefreshTokenCommand) -> AuthTokens:
        current = self.storage.find_refresh_token(command.refresh_token)
        if current is None or not current.is_active(utcnow()):
            raise BadRequestError(INVALID_REFRESH_TOKEN)

        user = self.storage.get(User, current.user_id)
        if user is None:
            raise NotFoundError("User Not Exist")

        # rotation: the presented token can never be exchanged again
        current.revoked = True
        tokens = self.issue_tokens(user)
        self.storage.save()
        return tokens


class RevokeRefreshTokenHandler:
    def __init__(self, storage):
        self.storage = storage

    def handle(self, command: RevokeRefreshTokenCommand) -> None:
        if not command.user_id:
            raise UnauthorizedError("User not authenticated")

        token = self.storage.find_refresh_token(command.refresh_token, user_id=command.user_id)
        if token is None:
            raise NotFoundError("Refresh token not found")
        if token.revoked:
            return

        token.revoked = True
        self.storage.save()


class LogoutHandler:
    """Unlike revoke, an already revoked token is rejected here."""

    def __init__(self, storage):
        self.storage = storage

    def handle(self, command: LogoutCommand) -> None:
        token = None
        if command.user_id:
            token = self.storage.find_refresh_token(command.refresh_token, user_id=command.user_id)
        if token is None or token.revoked:
            raise BadRequestError(INVALID_REFRESH_TOKEN)

        token.revoked = True
        self.storage.save()


class VerifyEmailHandler:
    def __init__(self, storage):
        self.storage = storage

    def handle(self, command: VerifyEmailCommand) -> None:
        user = self.storage.find_user_by_verification_token(hash_token(command.token or ""))
        if user is None or not _token_is_live(
            user.email_verification_token_hash, user.email_verification_expires, utcnow()
        ):
            raise BadRequestError(INVALID_OR_EXPIRED_TOKEN)

        user.email_verified = True
        user.email_verification_token_hash = None
        user.email_verification_expires = None
        self.storage.save()


class ForgotPasswordHandler:
    def __init__(self, storage, email_service):
        self.storage = storage
        self.email_service = email_service

    def handle(self, command: ForgotPasswordCommand) -> None:
        user = self.storage.find_user_by_email(normalize_email(command.email))
        if user is None:
            return

        now = utcnow()
        _enforce_security_email_cooldown(user, now)

        raw_token = generate_raw_token()
        user.password_reset_token_hash = hash_token(raw_token)
        user.password_reset_expires = now + PASSWORD_RESET_LIFETIME
        user.last_security_email_sent_at = now

        self.email_service.send_password_reset_email(user.email, user.username, raw_token)
        self.storage.save()


class ResetPasswordHandler:
    def __init__(self, storage, hasher=None):
        self.storage = storage
        self.hasher = hasher or CredentialHasher()

    def handle(self, command: ResetPasswordCommand) -> None:
        user = self.storage.find_user_by_reset_token(hash_token(command.token or ""))
        if user is None or not _token_is_live(
            user.password_reset_token_hash, user.password_reset_expires, utcnow()
        ):
            raise BadRequestError(INVALID_OR_EXPIRED_TOKEN)

        user.password_hash = self.hasher.hash(command.new_password)
        user.password_reset_token_hash = None
        user.password_reset_expires = None
        self.storage.save()


class ResendVerificationEmailHandler:
    def __init__(self, storage, email_service):
        self.storage = storage
        self.email_service = email_service

    def handle(self, command: ResendVerificationEmailCommand) -> None:
        user = self.storage.find_user_by_email(normalize_email(command.email))
        if user is None or user.email_verified:
            return

        now = utcnow()
        _enforce_security_email_cooldown(user, now)

        raw_token = generate_raw_token()
        user.email_verification_token_hash = hash_token(raw_token)
        user.email_verification_expires = now + EMAIL_VERIFICATION_LIFETIME
        user.last_security_email_sent_at = now

        self.email_service.send_verification_email(user.email, user.username, raw_token)
        self.storage.save()


class GoogleLoginHandler(TokenIssuingHandler):
    def __init__(self, storage, token_service, google_validator, hasher=None):
        super().__init__(storage, token_service)
        self.google_validator = google_validator
        self.hasher = hasher or CredentialHasher()

    def handle(self, command: GoogleLoginCommand) -> AuthTokens:
        try:
            identity = self.google_validator.validate(command.id_token)
        except GoogleTokenError as exc:
            logger.warning("Google token rejected: %s", exc)
            raise UnauthorizedError("Invalid Google token")

        email = normalize_email(identity.email)
        user = self.storage.find_user_by_email(email)
        if user is None:
            user = User(
                email=email,
                username=identity.name or email.split("@")[0],
                email_verified=True,
                # unusable local password; the account signs in through Google
                password_hash=self.hasher.hash(secrets.token_urlsafe(32)),
            )
            _assign_default_role(self.storage, user)
            self.storage.new(user)
            self.storage.flush()
            logger.info("Created user %s from Google sign-in", user.id)

        tokens = self.issue_tokens(user)
        self.storage.save()
        return tokens
