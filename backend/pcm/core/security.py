from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from passlib.context import CryptContext
from pcm.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Check a password; the second value is a fresh hash when the stored one is outdated."""
    try:
        return pwd_context.verify_and_update(password, password_hash)
    except ValueError:
        # unrecognised hash format in the users table
        return False, None


def create_access_token(sub: str, user_id: int, expires_minutes: int | None = None) -> str:
    issued = datetime.now(timezone.utc)
    expires = issued + timedelta(minutes=expires_minutes or settings.JWT_EXPIRES_MIN)
    claims = {"sub": sub, "uid": user_id, "iat": int(issued.timestamp()), "exp": int(expires.timestamp())}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def token_subject(token: str) -> str | None:
    """Login carried by a valid token, or None for a bad, expired or subject-less one."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        return None
    return claims.get("sub") or None
