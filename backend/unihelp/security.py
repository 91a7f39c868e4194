"""
UniHelp Backend — Password Hashing & Identity Tokens
======================================================

What:  Salted password hashing and signed, time-limited identity tokens.
Who:   AuthService (hash on register, recompute on login, issue token);
       the HTTP auth dependency and the WebSocket hub (decode token).

Password Hashing:
    Each user gets 16 random bytes of salt, stored in `users.password_salt`.
    The stored hash is the raw PBKDF2-HMAC-SHA512 digest of the password
    under that salt (computed through passlib's pbkdf2_sha512 handler).
    Login recomputes the digest with the stored salt and compares in
    constant time.

Tokens:
    HS512 JWTs (python-jose) with claims:
        sub       user id (string, per JWT convention)
        username  display name at issue time
        iat/exp   issued-at and expiry (iat + TOKEN_EXPIRE_HOURS)
    No refresh tokens. Verification checks signature and expiry only;
    no issuer/audience.
"""

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt
from passlib.hash import pbkdf2_sha512
from pydantic import BaseModel

from unihelp.config import Settings
from unihelp.exceptions import UnauthenticatedError

SALT_BYTES = 16
PBKDF2_ROUNDS = 25_000

_hasher = pbkdf2_sha512.using(rounds=PBKDF2_ROUNDS)


# ══════════════════════════════════════════════════════════════════════════
# Passwords
# ══════════════════════════════════════════════════════════════════════════

def generate_salt() -> bytes:
    return secrets.token_bytes(SALT_BYTES)


def compute_password_hash(password: str, salt: bytes) -> bytes:
    """Raw PBKDF2-SHA512 digest of `password` under `salt`."""
    encoded = _hasher.using(salt=salt).hash(password)
    return pbkdf2_sha512.from_string(encoded).checksum


def get_password_hash(password: str) -> Tuple[bytes, bytes]:
    """Hash a plaintext password with a fresh salt. Returns (hash, salt)."""
    salt = generate_salt()
    return compute_password_hash(password, salt), salt


def verify_password(password: str, password_hash: bytes, password_salt: bytes) -> bool:
    """Recompute the digest with the stored salt and compare in constant time."""
    candidate = compute_password_hash(password, password_salt)
    return hmac.compare_digest(candidate, password_hash)


# ══════════════════════════════════════════════════════════════════════════
# Tokens
# ══════════════════════════════════════════════════════════════════════════

class TokenClaims(BaseModel):
    """
    Identity carried by a verified token.

    `user_id` is None for a correctly signed token without a `sub` claim.
    HTTP endpoints reject such tokens; the WebSocket hub accepts the
    connection but leaves it ungrouped.
    """

    user_id: Optional[int] = None
    username: Optional[str] = None


def create_access_token(
    user_id: int,
    username: str,
    settings: Settings,
    now: Optional[datetime] = None,
) -> str:
    """Create a signed identity token expiring TOKEN_EXPIRE_HOURS after issue."""
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "username": username,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.token_expire_hours),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> TokenClaims:
    """
    Verify a token's signature and expiry and return its identity claims.

    Raises:
        UnauthenticatedError: Bad signature, malformed token, expired token,
                              or a `sub` claim that is not a user id.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False, "verify_iss": False},
        )
    except JWTError as e:
        raise UnauthenticatedError(context={"reason": type(e).__name__})

    subject = payload.get("sub")
    user_id = None
    if subject is not None:
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            raise UnauthenticatedError(context={"reason": "invalid_subject"})

    return TokenClaims(user_id=user_id, username=payload.get("username"))
