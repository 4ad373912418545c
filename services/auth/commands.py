"""
Auth commands and results. Each command type has exactly one handler in
services.auth.handlers; the mediator dispatches on type(command).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class RegisterCommand:
    email: str
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class LoginCommand:
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class RefreshTokenCommand:
    refresh_token: str = field(repr=False)


@dataclass(frozen=True)
class RevokeRefreshTokenCommand:
    refresh_token: str = field(repr=False)
    user_id: Optional[str] = None


@dataclass(frozen=True)
class LogoutCommand:
    refresh_token: str = field(repr=False)
    user_id: Optional[str] = None


@dataclass(frozen=True)
class VerifyEmailCommand:
    token: str = field(repr=False)


@dataclass(frozen=True)
class ForgotPasswordCommand:
    email: str


@dataclass(frozen=True)
class ResetPasswordCommand:
    token: str = field(repr=False)
    new_password: str = field(repr=False)


@dataclass(frozen=True)
class ResendVerificationEmailCommand:
    email: str


@dataclass(frozen=True)
class GoogleLoginCommand:
    id_token: str = field(repr=False)


@dataclass(frozen=True)
class RegisterResult:
    message: str


@dataclass(frozen=True)
class AuthTokens:
    access_token: str
    refresh_token: str
    expires_at: datetime
