"""
Google ID token validation using PyJWT and Google's published signing keys.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import jwt
from jwt import PyJWKClient

from services.exceptions import GoogleTokenError

GOOGLE_CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass(frozen=True)
class GoogleIdentity:
    subject: str
    email: str
    name: Optional[str] = None


class GoogleTokenValidator:
    def __init__(self, client_id: str, jwks_client: PyJWKClient | None = None):
        self.client_id = client_id
        self._jwks_client = jwks_client or PyJWKClient(GOOGLE_CERTS_URL, cache_keys=True)

    def validate(self, id_token: str) -> GoogleIdentity:
        if not id_token:
            raise GoogleTokenError("Missing ID token")
        if not self.client_id:
            raise GoogleTokenError("GOOGLE_CLIENT_ID is not configured")
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(id_token)
            claims = jwt.decode(
                id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.client_id,
                options={"require": ["exp", "iss", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise GoogleTokenError(str(exc)) from exc

        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise GoogleTokenError(f"Unexpected issuer: {claims.get('iss')}")
        email = claims.get("email")
        if not email:
            raise GoogleTokenError("Token has no email claim")
        return GoogleIdentity(subject=claims["sub"], email=email, name=claims.get("name"))
