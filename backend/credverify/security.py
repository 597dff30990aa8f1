"""
CredVerify - Security Primitives
Password hashing and JWT session tokens
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_HOURS


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')
    hashed_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hashed_bytes)


def create_access_token(
    user_id: str,
    email: str,
    role: Optional[str],
    expires_in: Optional[timedelta] = None,
) -> Tuple[str, str, datetime]:
    """
    Create a JWT access token with role claim.

    Returns (token, jti, expires_at).
    """
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS))
    jti = str(uuid4())
    to_encode = {
        "sub": user_id,
        "email": email,
        "role": role,
        "jti": jti,
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM), jti, expire


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token; expired or tampered tokens give None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
