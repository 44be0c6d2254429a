# leadership_game/security.py

from datetime import datetime, timedelta
from passlib.context import CryptContext
from jose import JWTError, jwt
import hashlib

from leadership_game.config import JWT_SECRET, JWT_ALGORITHM, JWT_EXPIRE_MINUTES

# Configure the password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class PasswordHasher:
    @staticmethod
    def _truncate_password(password: str) -> str:
        """
        Pre-hash the password if it exceeds bcrypt's 72-byte limit.
        Longer passwords are hashed with SHA-256 first to produce a fixed-length string.
        """
        if len(password.encode('utf-8')) > 72:
            return hashlib.sha256(password.encode("utf-8")).hexdigest()
        return password

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a plain password against its hashed version."""
        if not hashed_password:
            return False
        plain_password = PasswordHasher._truncate_password(plain_password)
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a plain password, pre-hashing it when longer than bcrypt's limit."""
        password = PasswordHasher._truncate_password(password)
        return pwd_context.hash(password)


class TokenError(Exception):
    """Raised when a bearer token cannot be decoded or verified."""


def create_access_token(user_id: str, role: str, expires_delta: timedelta | None = None) -> str:
    """Issue a signed, time-limited token carrying the user's id and role."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=JWT_EXPIRE_MINUTES))
    to_encode = {"id": str(user_id), "role": role, "exp": expire}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise TokenError(str(e)) from e

    if not payload.get("id") or not payload.get("role"):
        raise TokenError("Token is missing identity claims")
    return payload
