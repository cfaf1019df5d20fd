from typing import List

from beanie import PydanticObjectId
from bson import ObjectId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from loguru import logger

from campushire.core.security import AuthenticationError, decode_access_token
from campushire.models.mongodb_models import User, UserRole

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> User:
    """Resolve the bearer token to a User document"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authorized, no valid token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None or not credentials.credentials:
        raise credentials_exception

    try:
        payload = decode_access_token(credentials.credentials)
    except AuthenticationError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise credentials_exception

    user_id = payload["sub"]
    if not ObjectId.is_valid(user_id):
        raise credentials_exception

    user = await User.get(PydanticObjectId(user_id))
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.is_blocked:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account has been blocked. Please contact admin.",
        )

    return user


def require_roles(allowed_roles: List[UserRole]):
    """Dependency factory restricting an endpoint to the given roles"""
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(
                f"Permission denied for {current_user.email} ({current_user.role.value}); "
                f"requires {[role.value for role in allowed_roles]}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions."
            )
        return current_user
    return role_checker


def require_verified(dependency=get_current_user, message: str = "Account verification required"):
    """Wrap a user dependency so unverified accounts get 403"""
    def verified_checker(current_user: User = Depends(dependency)) -> User:
        if not current_user.is_verified:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
        return current_user
    return verified_checker


# Role-based dependencies
get_admin = require_roles([UserRole.ADMIN])
get_student = require_roles([UserRole.STUDENT])
get_alumni = require_roles([UserRole.ALUMNI])
get_recruiter = require_roles([UserRole.RECRUITER])
get_student_or_alumni = require_roles([UserRole.STUDENT, UserRole.ALUMNI])
get_verified_student = require_verified(
    get_student, "Your account needs to be verified by admin before you can apply for jobs"
)
