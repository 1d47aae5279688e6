"""
security helpers:
- Argon2 password hashing via argon2-cffi (salted, cost-factored, constant-time verify)
- JWT encoding/decoding via PyJWT
- Random opaque tokens for refresh, verification and reset flows
"""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHashError

ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def generate_token(nbytes: int = 32) -> str:
    """Random hex token with nbytes of entropy (32 bytes = 256 bits)."""
    return secrets.token_hex(nbytes)


def to_timestamp(value: datetime) -> int:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def encode_jwt(payload: Dict[str, Any], secret: str, algorithm: str = "HS256") -> str:
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_jwt(token: str, secret: str, algorithm: str = "HS256", issuer: str | None = None) -> Dict[str, Any]:
    """
    Verify signature and structure only. Expiry is checked by the caller
    against its own clock; jwt.InvalidTokenError propagates on failure.
    """
    return jwt.decode(
        token,
        secret,
        algorithms=[algorithm],
        issuer=issuer,
        options={
            "verify_exp": False,
            "verify_iat": False,
            "require": ["exp", "sub", "type"],
        },
    )
