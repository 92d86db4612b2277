"""
hackhub/rbac.py
Role-Based Access Control for the assignment and submission routes

Tokens are issued elsewhere; this module only decodes them and gates
routes by role. create_access_token exists for tooling and tests.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import JWTError, jwt

from hackhub.config.settings import Settings
from hackhub.database import get_db
from hackhub.orm.user import User, UserRole
from hackhub.errors import UnauthorizedError, ForbiddenError

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ================= TOKEN UTILS =================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token; "sub" is the user's email."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=Settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({
        "exp": expire,
        "type": "access"
    })
    return jwt.encode(to_encode, Settings.JWT_SECRET_KEY, algorithm=Settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate JWT token"""
    try:
        return jwt.decode(token, Settings.JWT_SECRET_KEY, algorithms=[Settings.JWT_ALGORITHM])
    except JWTError:
        return None


# ================= AUTH DEPENDENCIES =================

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT access token.
    Returns 401 if token is invalid or expired.
    """
    credentials_exception = UnauthorizedError()

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        raise credentials_exception

    email = payload.get("sub")
    if not email:
        raise credentials_exception

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise credentials_exception

    return user


def require_roles(*allowed_roles: UserRole):
    """
    Dependency factory: require one of the given roles.
    Usage: current_user: User = Depends(require_roles(UserRole.admin))
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(
                f"Access denied: User {current_user.id} with role {current_user.role} "
                f"attempted to access resource requiring {[r.value for r in allowed_roles]}"
            )
            raise ForbiddenError(
                f"This action requires one of: {[r.value for r in allowed_roles]}",
                details={"current_role": current_user.role.value},
            )
        return current_user

    return dependency


require_admin = require_roles(UserRole.admin)
require_participant = require_roles(UserRole.participant)
require_judge_or_admin = require_roles(UserRole.judge, UserRole.admin)
