"""Password hashing and access-token helpers."""
from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from guildhall.core.errors import UnauthenticatedError
from guildhall.core.settings import settings

_HASH_SCHEME = "pbkdf2_sha256"


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def _unb64(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def hash_password(password: str, *, iterations: int | None = None) -> str:
    """Return an encoded PBKDF2-SHA256 hash of ``password``.

    The result has the form ``pbkdf2_sha256$<iterations>$<salt>$<digest>``.
    """
    rounds = iterations or settings.password_hash_iterations
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return f"{_HASH_SCHEME}${rounds}${_b64(salt)}${_b64(digest)}"


def verify_password(password: str, encoded: str) -> bool:
    """Return True if ``password`` matches the encoded hash."""
    try:
        scheme, rounds, salt_b64, digest_b64 = encoded.split("$")
        if scheme != _HASH_SCHEME:
            return False
        salt = _unb64(salt_b64)
        expected = _unb64(digest_b64)
        candidate = hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), salt, int(rounds)
        )
    except (ValueError, TypeError):
        return False
    return hmac.compare_digest(candidate, expected)


def create_access_token(user_id: int, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for user authentication."""
    to_encode: dict[str, object] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> int:
    """Return the user id carried by a valid token.

    Raises:
        UnauthenticatedError: If the token is malformed, expired or has no subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise UnauthenticatedError() from err

    subject = payload.get("sub")
    if subject is None:
        raise UnauthenticatedError()
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise UnauthenticatedError() from err
