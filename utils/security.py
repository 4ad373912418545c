"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Random one-time tokens for email verification / password reset
- SHA-256 digests of those tokens (only the digest is ever stored)
- Email normalization shared by schemas and handlers
"""
from __future__ import annotations

import base64
import enum
import hashlib
import uuid
from datetime import datetime

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

ph = PasswordHasher()


class PasswordVerificationResult(enum.Enum):
    FAILED = 0
    SUCCESS = 1

    def __bool__(self):
        return self is PasswordVerificationResult.SUCCESS


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password_hash: str, password: str) -> PasswordVerificationResult:
    """Verify a plaintext password against an Argon2 hash.

    A mismatch, or a stored value that is not an Argon2 hash at all, is a
    FAILED result rather than an exception.
    """
    try:
        ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return PasswordVerificationResult.FAILED
    return PasswordVerificationResult.SUCCESS


class CredentialHasher:
    """Object form of hash_password/verify_password, injected into handlers."""

    def hash(self, plaintext: str) -> str:
        return hash_password(plaintext)

    def verify(self, password_hash: str, plaintext: str) -> PasswordVerificationResult:
        return verify_password(password_hash, plaintext)


def generate_raw_token() -> str:
    """32 hex chars from uuid4; emailed to the user, never stored."""
    return uuid.uuid4().hex


def hash_token(raw_token: str) -> str:
    """base64(SHA-256(raw_token)), the at-rest form of emailed tokens."""
    digest = hashlib.sha256(raw_token.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


def utcnow() -> datetime:
    """Naive UTC timestamp; every expiry column is stored in this form."""
    return datetime.utcnow()
