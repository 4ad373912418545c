"""
Token issuer:
- short-lived access tokens: HS256 JWTs carrying subject, roles, issuer/audience
- long-lived opaque refresh tokens: random strings persisted as RefreshToken rows
"""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable

import jwt

from models.refresh_token import RefreshToken
from services.exceptions import UnauthorizedError
from utils.security import utcnow


class TokenService:
    def __init__(
        self,
        secret: str,
        issuer: str,
        audience: str,
        access_token_minutes: int = 60,
        refresh_token_days: int = 7,
        algorithm: str = "HS256",
    ):
        self.secret = secret
        self.issuer = issuer
        self.audience = audience
        self.access_token_lifetime = timedelta(minutes=access_token_minutes)
        self.refresh_token_lifetime = timedelta(days=refresh_token_days)
        self.algorithm = algorithm

    @classmethod
    def from_config(cls, config) -> "TokenService":
        return cls(
            secret=config["JWT_SECRET"],
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
            access_token_minutes=int(config.get("JWT_ACCESS_TOKEN_MINUTES", 60)),
            refresh_token_days=int(config.get("JWT_REFRESH_TOKEN_DAYS", 7)),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        )

    def access_token_expires_at(self, now: datetime | None = None) -> datetime:
        return (now or utcnow()) + self.access_token_lifetime

    def generate_access_token(self, user, roles: Iterable[str], now: datetime | None = None) -> str:
        now = now or utcnow()
        payload = {
            "iss": self.issuer,
            "aud": self.audience,
            "sub": str(user.id),
            "email": user.email,
            "name": user.username,
            "roles": list(roles),
            "iat": now,
            "exp": self.access_token_expires_at(now),
            "jti": str(uuid.uuid4()),
            "type": "access",
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def create_refresh_token(self, user_id: str) -> RefreshToken:
        """Build (but do not persist) a refresh token for user_id."""
        return RefreshToken(
            token=secrets.token_urlsafe(64),
            user_id=user_id,
            expires_at=utcnow() + self.refresh_token_lifetime,
            revoked=False,
        )

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        """
        Decode and validate an access token. Raises UnauthorizedError on a bad
        signature, expiry, issuer/audience mismatch or wrong token type.
        """
        try:
            decoded = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Token expired")
        except jwt.InvalidTokenError as exc:
            raise UnauthorizedError(f"Invalid token: {exc}")

        if decoded.get("type") != "access":
            raise UnauthorizedError("Wrong token type")
        return decoded
