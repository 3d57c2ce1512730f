from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt
from jose.exceptions import JWTClaimsError
from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError

from app.core.config import settings

ph = PasswordHasher()  # Argon2id by default


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except VerifyMismatchError:
        return False


def token_lifetime() -> timedelta:
    return timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(subject: str, role: str, now: Optional[datetime] = None) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {"sub": subject, "role": role, "iat": issued, "exp": issued + token_lifetime()}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_token(token: str) -> dict:
    """Raises jose.JWTError on a bad signature, an expired token or a missing subject."""
    claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    if not claims.get("sub"):
        raise JWTClaimsError("Token has no subject")
    return claims
