from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List, Optional

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import AuthError, ForbiddenError, TooManyRequestsError
from ..core.security import security, verify_token, UserRole, TokenPayload
from ..models.user import User

async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    if credentials is None:
        raise AuthError("No token provided")

    token_payload = verify_token(credentials.credentials)
    if not token_payload:
        raise AuthError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthError("Invalid token type")

    return token_payload

def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if not token_payload.sub:
        raise AuthError("Invalid token payload")

    user = db.get(User, token_payload.sub)
    if not user:
        raise AuthError("User not found")

    if not user.is_active:
        raise AuthError("User account is deactivated")

    return user

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires specific user roles."""
    def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if UserRole(current_user.role) not in allowed_roles:
            raise ForbiddenError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return current_user

    return role_checker

def get_admin_user(
    current_user: User = Depends(require_role([UserRole.ADMIN]))
) -> User:
    """Require admin role."""
    return current_user

def get_patient_user(
    current_user: User = Depends(require_role([UserRole.PATIENT]))
) -> User:
    """Require patient role."""
    return current_user

def get_patient_or_admin_user(
    current_user: User = Depends(require_role([UserRole.PATIENT, UserRole.ADMIN]))
) -> User:
    """Require patient or admin role."""
    return current_user

# Rate limiting dependency
def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window rate limiting for authentication endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{request.url.path}:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_REQUESTS:
            raise TooManyRequestsError()
        redis_client.incr(key)
