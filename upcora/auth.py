from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session

from upcora.config import JWT_SECRET
from upcora.db import get_session
from upcora.models import User, UserRole

logger = structlog.get_logger()

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7
REFRESH_TOKEN_EXPIRE_DAYS = 30

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _encode(subject: str, token_type: str, expire: datetime, **claims) -> str:
    to_encode = {"sub": subject, "exp": expire, "type": token_type, **claims}
    return jwt.encode(to_encode, JWT_SECRET, algorithm=ALGORITHM)


def create_access_token(subject: str, role: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"role": role} if role else {}
    token = _encode(subject, "access", expire, **claims)
    logger.info("access_token_created", user_id=subject, expires_at=expire.isoformat())
    return token


def create_refresh_token(subject: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
    token = _encode(subject, "refresh", expire)
    logger.info("refresh_token_created", user_id=subject, expires_at=expire.isoformat())
    return token


def verify_token(token: str, token_type: str = "access") -> Optional[dict]:
    """Return the payload of a valid, unexpired token of the given type."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning("token_verification_failed", error=str(e))
        return None

    if payload.get("type") != token_type:
        logger.warning("invalid_token_type", expected=token_type, actual=payload.get("type"))
        return None
    return payload


def decode_token(token: str) -> Optional[str]:
    payload = verify_token(token, "access")
    return payload.get("sub") if payload else None


def refresh_access_token(refresh_token: str, role: Optional[str] = None) -> Optional[str]:
    payload = verify_token(refresh_token, "refresh")
    if not payload:
        return None
    return create_access_token(payload["sub"], role=role)


# ----------------- Dependencies -----------------

def _user_from_credentials(credentials: Optional[HTTPAuthorizationCredentials], session: Session) -> Optional[User]:
    if credentials is None:
        return None
    user_id = decode_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token.")
    user = session.get(User, int(user_id))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found.")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    user = _user_from_credentials(credentials, session)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access denied. No token provided.")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[User]:
    try:
        return _user_from_credentials(credentials, session)
    except HTTPException:
        return None


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        logger.warning("admin_access_denied", user_id=user.id, role=user.role)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Admin required.")
    return user
