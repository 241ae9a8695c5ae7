"""
schoolfin/core/security.py
Password hashing and JWT session tokens
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from schoolfin.core.config import Settings
from schoolfin.core.errors import AuthError
from schoolfin.models.schemas import UserRole, TokenPayload
import logging

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    data: dict,
    settings: Settings,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, settings: Settings) -> TokenPayload:
    """
    Verify and decode JWT token

    Raises:
        AuthError: If the token is malformed, expired, badly signed or
            carries an unknown role
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise AuthError()

    user_id = payload.get("sub")
    role = payload.get("role")
    exp = payload.get("exp")

    if user_id is None or role is None or exp is None:
        logger.warning("JWT payload is missing sub, role or exp")
        raise AuthError()

    try:
        user_role = UserRole(role)
    except ValueError:
        logger.warning(f"JWT carries unknown role: {role}")
        raise AuthError()

    return TokenPayload(
        sub=str(user_id),
        role=user_role,
        exp=datetime.fromtimestamp(exp, tz=timezone.utc)
    )
