from fastapi import APIRouter, Depends, Query
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from contesto.database import get_database
from contesto.models.user import UserCreate, UserUpdate, UserRoleUpdate
from contesto.services.user.user_service import UserService
from contesto.services.contest.submission import SubmissionService
from contesto.routes.auth.dependencies import get_current_email, get_current_user, require_admin
from contesto.utils.response import success_response, error_response, service_response

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("")
async def create_user(
    user_data: UserCreate,
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Register a user after Firebase sign-in.

    - Role is always ``user``
    - Existing emails are left untouched ("user already exist")
    """
    user_service = UserService(db)
    return service_response(await user_service.create_user(user_data))


@router.get("")
async def list_users(
    search_text: Optional[str] = Query(None, alias="searchText", max_length=100),
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """List users, filtered by name or email (admin only)"""
    user_service = UserService(db)
    users = await user_service.search_users(search_text)

    return success_response(
        message="Users retrieved successfully",
        data={"users": users, "total": len(users)}
    )


@router.get("/me")
async def get_my_profile(current_user: dict = Depends(get_current_user)):
    """Get the caller's account"""
    return success_response(
        message="Profile retrieved successfully",
        data={"user": current_user}
    )


@router.patch("/me")
async def update_my_profile(
    profile: UserUpdate,
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Update the caller's name and photo"""
    user_service = UserService(db)
    return service_response(await user_service.update_profile(email, profile), data_key="user")


@router.get("/me/role")
async def get_my_role(
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Get the caller's role"""
    user_service = UserService(db)
    role = await user_service.get_role(email)

    if role is None:
        return error_response(message="User not found", status_code=404)

    return success_response(message="Role retrieved successfully", data={"role": role})


@router.get("/me/wins")
async def get_my_wins(
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Contests the caller has won"""
    submission_service = SubmissionService(db)
    wins = await submission_service.get_user_wins(email)

    return success_response(
        message="Wins retrieved successfully",
        data={"wins": wins, "total": len(wins)}
    )


@router.patch("/{user_id}/role")
async def update_user_role(
    user_id: str,
    role_update: UserRoleUpdate,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Change a user's role (admin only)"""
    user_service = UserService(db)
    return service_response(await user_service.update_role(user_id, role_update.role, admin["email"]))
