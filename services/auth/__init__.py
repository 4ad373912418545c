"""
Auth feature: commands, handlers and the mediator wiring.

build_mediator() is the single place where handlers get their collaborators;
the Flask app calls it once at startup and stores the result in
app.extensions["mediator"].
"""
from services.auth import commands
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
from services.auth.handlers import (
    ForgotPasswordHandler,
    GoogleLoginHandler,
    LoginHandler,
    LogoutHandler,
    RefreshTokenHandler,
    RegisterHandler,
    ResendVerificationEmailHandler,
    ResetPasswordHandler,
    RevokeRefreshTokenHandler,
    VerifyEmailHandler,
)
from services.email_service import EmailService
from services.google_auth import GoogleTokenValidator
from services.mediator import Mediator
from services.token_service import TokenService
from utils.security import CredentialHasher


def build_mediator(
    storage,
    config,
    token_service=None,
    email_service=None,
    google_validator=None,
    hasher=None,
) -> Mediator:
    token_service = token_service or TokenService.from_config(config)
    email_service = email_service or EmailService.from_config(config)
    google_validator = google_validator or GoogleTokenValidator(config.get("GOOGLE_CLIENT_ID", ""))
    hasher = hasher or CredentialHasher()

    mediator = Mediator(storage)
    mediator.register(RegisterCommand, RegisterHandler(storage, email_service, hasher))
    mediator.register(LoginCommand, LoginHandler(storage, token_service, hasher))
    mediator.register(RefreshTokenCommand, RefreshTokenHandler(storage, token_service))
    mediator.register(RevokeRefreshTokenCommand, RevokeRefreshTokenHandler(storage))
    mediator.register(LogoutCommand, LogoutHandler(storage))
    mediator.register(VerifyEmailCommand, VerifyEmailHandler(storage))
    mediator.register(ForgotPasswordCommand, ForgotPasswordHandler(storage, email_service))
    mediator.register(ResetPasswordCommand, ResetPasswordHandler(storage, hasher))
    mediator.register(ResendVerificationEmailCommand, ResendVerificationEmailHandler(storage, email_service))
    mediator.register(GoogleLoginCommand, GoogleLoginHandler(storage, token_service, google_validator, hasher))
    return mediator


__all__ = [
    "build_mediator",
    "commands",
    "AuthTokens",
    "RegisterResult",
    "RegisterCommand",
    "LoginCommand",
    "RefreshTokenCommand",
    "RevokeRefreshTokenCommand",
    "LogoutCommand",
    "VerifyEmailCommand",
    "ForgotPasswordCommand",
    "ResetPasswordCommand",
    "ResendVerificationEmailCommand",
    "GoogleLoginCommand",
]
