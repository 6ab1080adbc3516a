from typing import Optional, Callable, Dict
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase

from contesto.database import get_database
from contesto.models.user import UserRole
from contesto.services.auth.firebase_auth import FirebaseAuthService, firebase_auth_service
from contesto.services.user.user_service import UserService

# Bearer scheme; missing or malformed headers are handled below instead of by FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service() -> FirebaseAuthService:
    """Identity verifier dependency"""
    return firebase_auth_service


async def get_current_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: FirebaseAuthService = Depends(get_auth_service)
) -> str:
    """Verified email of the caller; 401 when the bearer token is missing or invalid"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized access")

    identity = await auth_service.verify_token(credentials.credentials)
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized access")

    return identity["email"]


async def get_optional_email(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: FirebaseAuthService = Depends(get_auth_service)
) -> Optional[str]:
    """Verified email when a valid token is sent, None for anonymous callers"""
    if credentials is None or not credentials.credentials:
        return None

    identity = await auth_service.verify_token(credentials.credentials)
    return identity["email"] if identity else None


async def get_current_user(
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
) -> Dict:
    """Stored account of the caller; 403 when the verified email has no account"""
    user = await UserService(db).get_user_by_email(email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden access")
    return user


def require_role(*roles: UserRole) -> Callable:
    """
    Build a dependency that only lets callers whose stored role is in ``roles`` through.

    Authentication always runs first because the returned dependency depends on
    ``get_current_user``.
    """
    allowed = {role.value for role in roles}

    async def role_guard(user: Dict = Depends(get_current_user)) -> Dict:
        if user.get("role") not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="forbidden access")
        return user

    return role_guard


require_admin = require_role(UserRole.ADMIN)
require_creator = require_role(UserRole.CREATOR)
require_participant_role = require_role(UserRole.USER)
