from fastapi import APIRouter, Depends, Query
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from contesto.database import get_database
from contesto.models.contest import (
    ContestCreate,
    ContestUpdate,
    ContestModeration,
    ContestStatus,
    ContestLifecycle
)
from contesto.models.user import UserRole
from contesto.services.contest.contest import ContestService
from contesto.services.contest.submission import SubmissionService
from contesto.services.user.user_service import UserService
from contesto.routes.auth.dependencies import (
    get_current_user,
    get_optional_email,
    require_admin,
    require_creator
)
from contesto.utils.response import success_response, error_response, service_response
from contesto.utils.serialize import parse_object_id

router = APIRouter(prefix="/contests", tags=["Contests"])
creator_router = APIRouter(prefix="/creator/contests", tags=["Creator Contests"])
admin_router = APIRouter(prefix="/admin/contests", tags=["Admin Contests"])


@router.get("")
async def get_contests(
    category: Optional[str] = Query(None, max_length=50),
    search_text: Optional[str] = Query(None, alias="searchText", max_length=100),
    contest_status: Optional[ContestLifecycle] = Query(None, alias="contestStatus"),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Get approved contests.

    Filters:
    - category
    - searchText (contest name)
    - contestStatus (open / completed)
    """
    contest_service = ContestService(db)
    contests = await contest_service.get_public_contests(
        category=category,
        search_text=search_text,
        lifecycle=contest_status
    )

    return success_response(
        message="Contests retrieved successfully",
        data={"contests": contests, "total": len(contests)}
    )


@router.get("/popular")
async def get_popular_contests(db: AsyncIOMotorDatabase = Depends(get_database)):
    """Top 8 approved contests by participant count"""
    contest_service = ContestService(db)
    contests = await contest_service.get_popular_contests()

    return success_response(
        message="Popular contests retrieved successfully",
        data={"contests": contests}
    )


@router.get("/{contest_id}")
async def get_contest(
    contest_id: str,
    email: Optional[str] = Depends(get_optional_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Get contest details.

    - Approved contests are public
    - Pending / rejected contests are visible to their creator and to admins
    """
    if parse_object_id(contest_id) is None:
        return error_response(message="Invalid contest ID", status_code=400)

    contest_service = ContestService(db)
    contest = await contest_service.get_contest_by_id(contest_id)

    if not contest:
        return error_response(message="Contest not found", status_code=404)

    if contest["status"] != ContestStatus.APPROVED.value:
        is_creator = email is not None and contest["creatorEmail"] == email
        is_admin = email is not None and await UserService(db).get_role(email) == UserRole.ADMIN.value
        if not (is_creator or is_admin):
            return error_response(message="Contest not found", status_code=404)

    return success_response(message="Contest retrieved successfully", data={"contest": contest})


@router.get("/{contest_id}/winner")
async def get_contest_winner(
    contest_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Winning submission of a completed contest"""
    if parse_object_id(contest_id) is None:
        return error_response(message="Invalid contest ID", status_code=400)

    contest_service = ContestService(db)
    contest = await contest_service.get_contest_by_id(contest_id)

    if not contest or contest["status"] != ContestStatus.APPROVED.value:
        return error_response(message="Contest not found", status_code=404)

    if contest.get("contestStatus") != ContestLifecycle.COMPLETED.value:
        return error_response(message="Winner has not been selected yet", status_code=404)

    submission_service = SubmissionService(db)
    winner = await submission_service.get_winner(contest_id)

    if not winner:
        return error_response(message="Winner has not been selected yet", status_code=404)

    return success_response(message="Winner retrieved successfully", data={"winner": winner})


@router.post("")
async def create_contest(
    contest_data: ContestCreate,
    creator: dict = Depends(require_creator),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Submit a new contest (creators only).

    - Starts as ``pending`` until an admin approves it
    - Creator email is taken from the token
    """
    contest_service = ContestService(db)
    return service_response(await contest_service.create_contest(contest_data, creator), data_key="contest")


@router.delete("/{contest_id}")
async def delete_contest(
    contest_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Delete a contest.

    - Creators: own contests while pending
    - Admins: any contest that is not completed
    """
    contest_service = ContestService(db)
    return service_response(await contest_service.delete_contest(
        contest_id=contest_id,
        email=current_user["email"],
        role=current_user.get("role")
    ))


@creator_router.get("")
async def get_my_created_contests(
    creator: dict = Depends(require_creator),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Contests created by the caller, any status"""
    contest_service = ContestService(db)
    contests = await contest_service.get_creator_contests(creator["email"])

    return success_response(
        message="Contests retrieved successfully",
        data={"contests": contests, "total": len(contests)}
    )


@creator_router.patch("/{contest_id}")
async def update_contest(
    contest_id: str,
    update: ContestUpdate,
    creator: dict = Depends(require_creator),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Edit an own contest while it is pending"""
    contest_service = ContestService(db)
    return service_response(
        await contest_service.update_contest(contest_id, creator["email"], update),
        data_key="contest"
    )


@creator_router.patch("/{contest_id}/winner/{submission_id}")
async def select_winner(
    contest_id: str,
    submission_id: str,
    creator: dict = Depends(require_creator),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Declare the winner and complete the contest.

    - Only after the participation deadline
    - Only once per contest (409 afterwards)
    - All other pending submissions are marked ``lost``
    """
    contest_service = ContestService(db)
    return service_response(await contest_service.select_winner(contest_id, submission_id, creator["email"]))


@admin_router.get("")
async def get_all_contests(
    status: Optional[ContestStatus] = Query(None),
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """All contests for moderation (admin only)"""
    contest_service = ContestService(db)
    contests = await contest_service.get_all_contests(status)

    return success_response(
        message="Contests retrieved successfully",
        data={"contests": contests, "total": len(contests)}
    )


@admin_router.patch("/{contest_id}")
async def moderate_contest(
    contest_id: str,
    moderation: ContestModeration,
    admin: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Approve (opens the contest) or reject a contest (admin only)"""
    contest_service = ContestService(db)
    return service_response(await contest_service.moderate_contest(contest_id, moderation.status))
