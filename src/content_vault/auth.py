"""
Authentication utilities and JWT token handling
"""
import hashlib
import logging
import os
import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import config
from .db import get_db
from .db.models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "120"))

# Each increment doubles hashing time; tests lower it
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

http_bearer = HTTPBearer(auto_error=False)


def _bcrypt_input(password: str) -> bytes:
    """bcrypt only reads 72 bytes; longer passwords are pre-hashed with SHA256"""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > 72:
        return hashlib.sha256(password_bytes).hexdigest().encode("utf-8")
    return password_bytes


def get_password_hash(password: str) -> str:
    """Hash a password, handling bcrypt's 72-byte limit"""
    if not password:
        raise ValueError("Password cannot be empty")
    hashed = bcrypt.hashpw(_bcrypt_input(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_bcrypt_input(plain_password), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Password verification failed: {type(e).__name__}")
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token

    Args:
        data: Dictionary with user data (must include 'sub' - user ID)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    now = datetime.utcnow()
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "jti": str(uuid.uuid4()),
        "iat": now,
    })
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Verify and decode a JWT token"""
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("Token verification failed: Token has expired")
        return None
    except JWTError as e:
        logger.warning(f"Token verification failed: {type(e).__name__} - {str(e)}")
        return None


def get_auth_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> Optional[str]:
    """
    Extract authentication token from Authorization header or cookie.
    Returns None if no token is found.
    """
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get("auth_token")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Optional[str] = Depends(get_auth_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from token

    Checks both Authorization header (Bearer token) and auth_token cookie.
    """
    if not token or not token.strip():
        raise _unauthorized("Authentication token is missing. Please log in again.")

    payload = verify_token(token.strip())
    if payload is None:
        raise _unauthorized("Invalid or expired authentication token. Please log in again.")

    # JWT 'sub' claim is a string
    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        logger.warning(f"Authentication failed: Invalid user ID in token: {payload.get('sub')}")
        raise _unauthorized("Invalid token format: user identifier is not valid")

    user = db.get(User, user_id)
    if user is None:
        logger.warning(f"Authentication failed: User with ID {user_id} not found in database")
        raise _unauthorized("User account not found. Please log in again.")

    if not user.is_active:
        logger.warning(f"Authentication failed: User {user_id} account is inactive")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Single admin capability check, applied as a router dependency
    """
    if not current_user.is_admin:
        logger.warning(f"Non-admin user {current_user.id} attempted to access admin endpoint")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
