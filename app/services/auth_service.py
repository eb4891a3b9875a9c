"""
DevMatch — Identity Verifier

Issues and verifies the bearer credentials shared by the HTTP API and the
real-time chat gateway, and hashes account passwords.

Tokens are HS256 JWTs (python-jose) carrying ``sub`` (developer id) and
``name``.  Passwords are stored as scrypt digests (``cryptography``)::

    scrypt$<n>$<r>$<p>$<salt b64>$<digest b64>
"""

from __future__ import annotations

import base64
import os
import uuid
from datetime import datetime, timedelta, timezone

import structlog
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from jose import ExpiredSignatureError, JWTError, jwt

from app.config import get_settings
from app.exceptions import AuthenticationError
from app.models.developer import Developer
from app.repositories.developers import DeveloperRepository

logger = structlog.get_logger("devmatch.auth_service")

# ──────────────────────────────────────────────────────────────────────────────
# Password hashing
# ──────────────────────────────────────────────────────────────────────────────

_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
_SCRYPT_LENGTH = 32
_SALT_BYTES = 16


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _unb64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text.encode("ascii"))


def hash_password(password: str) -> str:
    salt = os.urandom(_SALT_BYTES)
    kdf = Scrypt(salt=salt, length=_SCRYPT_LENGTH, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    digest = kdf.derive(password.encode("utf-8"))
    return f"scrypt${_SCRYPT_N}${_SCRYPT_R}${_SCRYPT_P}${_b64(salt)}${_b64(digest)}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, n, r, p, salt, digest = stored.split("$")
        if scheme != "scrypt":
            return False
        expected = _unb64(digest)
        kdf = Scrypt(salt=_unb64(salt), length=len(expected), n=int(n), r=int(r), p=int(p))
        kdf.verify(password.encode("utf-8"), expected)
    except (InvalidKey, ValueError):
        return False
    return True


# ──────────────────────────────────────────────────────────────────────────────
# Bearer tokens
# ──────────────────────────────────────────────────────────────────────────────

def create_access_token(
    developer_id: uuid.UUID,
    name: str,
    expires_delta: timedelta | None = None,
) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(developer_id), "name": name, "iat": now, "exp": expires}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str | None) -> uuid.UUID:
    """Return the developer id carried by ``token``.

    Raises ``AuthenticationError`` when the token is missing, malformed,
    badly signed or expired.
    """
    if not token:
        raise AuthenticationError("Authentication error: token not provided.")

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise AuthenticationError("Authentication error: token has expired.") from exc
    except JWTError as exc:
        raise AuthenticationError("Authentication error: invalid token.") from exc

    subject = payload.get("sub")
    try:
        return uuid.UUID(str(subject))
    except ValueError as exc:
        raise AuthenticationError("Authentication error: invalid token.") from exc


class IdentityVerifier:
    """Resolves a bearer credential to a live developer profile."""

    def __init__(self, developers: DeveloperRepository) -> None:
        self._developers = developers

    async def verify(self, token: str | None) -> Developer:
        developer_id = decode_access_token(token)
        developer = await self._developers.get(developer_id)
        if developer is None or not developer.is_active:
            logger.warning("identity_unresolved", developer_id=str(developer_id))
            raise AuthenticationError("Authentication error: user not found.")
        return developer

    async def login(self, email: str, password: str) -> Developer:
        developer = await self._developers.get_by_email(email.strip().lower())
        if developer is None or not verify_password(password, developer.password_hash):
            raise AuthenticationError("Invalid credentials.")
        if not developer.is_active:
            raise AuthenticationError("Invalid credentials.")
        return developer
