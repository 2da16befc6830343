from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Type, Union
from dataclasses import dataclass

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.errors import NotFoundError
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload
)
from ..models.admin import Admin
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.user import User
from ..services.upload_service import MediaUploader

Profile = Union[Admin, Doctor, Patient]

# Profile kind for each role
PROFILE_MODELS: Dict[UserRole, Type[Profile]] = {
    UserRole.ADMIN: Admin,
    UserRole.DOCTOR: Doctor,
    UserRole.PATIENT: Patient,
}

@dataclass(frozen=True)
class CurrentIdentity:
    """Authenticated user merged with their role-specific profile."""
    user: User
    role: UserRole
    profile: Profile

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def profile_id(self) -> int:
        return self.profile.id

async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    token_payload = verify_token(credentials.credentials)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    # Check if token is access token
    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    try:
        user_id = int(token_payload.sub or "")
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user

async def get_current_identity(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CurrentIdentity:
    """Resolve the caller's profile and attach the identity to the request."""
    role = UserRole(current_user.role)
    profile_model = PROFILE_MODELS[role]

    profile = db.query(profile_model).filter(
        profile_model.user_id == current_user.id
    ).first()
    if not profile:
        raise NotFoundError("Profile not found")

    identity = CurrentIdentity(user=current_user, role=role, profile=profile)
    request.state.identity = identity
    return identity

def _check_role(role: UserRole, allowed_roles: List[UserRole]) -> None:
    if role not in allowed_roles:
        raise AuthorizationError(
            f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
        )

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires a profile-backed identity with one of the roles."""
    async def role_checker(
        identity: CurrentIdentity = Depends(get_current_identity)
    ) -> CurrentIdentity:
        _check_role(identity.role, allowed_roles)
        return identity

    return role_checker

def require_account_role(allowed_roles: List[UserRole]):
    """Like require_role, for endpoints reached before a profile exists."""
    async def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        _check_role(UserRole(current_user.role), allowed_roles)
        return current_user

    return role_checker

get_doctor_identity = require_role([UserRole.DOCTOR])
get_patient_identity = require_role([UserRole.PATIENT])
get_any_identity = require_role([UserRole.ADMIN, UserRole.DOCTOR, UserRole.PATIENT])
get_doctor_account = require_account_role([UserRole.DOCTOR])

# Media upload dependency
def get_uploader() -> MediaUploader:
    return MediaUploader(settings)

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Basic per-IP rate limiting for authentication endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}:{request.url.path}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_REQUESTS:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
