from fastapi import APIRouter, Depends, Query
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from contesto.database import get_database
from contesto.models.creator import CreatorApply, CreatorReview, CreatorStatus
from contesto.services.user.creator_service import CreatorService
from contesto.routes.auth.dependencies import get_current_email, require_admin
from contesto.utils.response import success_response, error_response, service_response

router = APIRouter(prefix="/creators", tags=["Creators"])


@router.get("")
async def list_creator_applications(
    status: Optional[CreatorStatus] = Query(None),
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """List creator applications (admin only)"""
    creator_service = CreatorService(db)
    creators = await creator_service.get_applications(status)

    return success_response(
        message="Creator applications retrieved successfully",
        data={"creators": creators, "total": len(creators)}
    )


@router.post("")
async def apply_as_creator(
    application: CreatorApply,
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Apply to become a creator.

    - One application per account
    - Admins cannot apply
    """
    creator_service = CreatorService(db)
    return service_response(await creator_service.apply(email, application))


@router.get("/me")
async def get_my_application(
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Get the caller's creator application"""
    creator_service = CreatorService(db)
    application = await creator_service.get_application_by_email(email)

    if not application:
        return error_response(message="No creator application found", status_code=404)

    return success_response(message="Application retrieved successfully", data={"creator": application})


@router.patch("/{creator_id}")
async def review_creator_application(
    creator_id: str,
    review: CreatorReview,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Approve or reject an application; the applicant's role follows (admin only)"""
    creator_service = CreatorService(db)
    return service_response(await creator_service.review(creator_id, review.status))


@router.delete("/{creator_id}")
async def delete_creator_application(
    creator_id: str,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Delete an application (admin only)"""
    creator_service = CreatorService(db)
    return service_response(await creator_service.delete(creator_id))
