from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from bookstore.config import settings
from bookstore.database import get_session
from bookstore.models.user import User

# tokens are issued by the account service, this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def create_access_token(claims: dict, expires_in: Optional[timedelta] = None) -> str:
    lifetime = expires_in or timedelta(minutes=settings.access_token_expire_minutes)
    return jwt.encode(
        {**claims, "exp": datetime.utcnow() + lifetime},
        settings.secret_key,
        algorithm=settings.algorithm,
    )


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def _token_user_id(claims: dict) -> Optional[int]:
    raw = claims.get("user_id") or claims.get("sub")
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session)
) -> User:
    claims = decode_access_token(token)
    if claims is None:
        raise _unauthorized("Could not validate credentials")

    user_id = _token_user_id(claims)
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    user = session.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")

    # disabled accounts keep their tokens until expiry, refuse them here
    if not user.can_login:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled")

    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return current_user
