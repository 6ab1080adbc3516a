from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from contesto.database import get_database
from contesto.models.submission import SubmissionCreate, SubmissionUpdate
from contesto.services.contest.contest import ContestService
from contesto.services.contest.submission import SubmissionService
from contesto.routes.auth.dependencies import get_current_email, require_creator
from contesto.utils.response import success_response, error_response, service_response
from contesto.utils.serialize import parse_object_id

# Two routers: participant-facing submission endpoints, and the creator's review listing
router = APIRouter(prefix="/submissions", tags=["Submissions"])
creator_router = APIRouter(prefix="/creator/contests", tags=["Creator Submissions"])
leaderboard_router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.post("")
async def create_submission(
    submission_data: SubmissionCreate,
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """
    Submit an entry.

    - Contest must be open and within its participation window
    - Caller must have joined (paid for) the contest
    - One submission per contest
    """
    submission_service = SubmissionService(db)
    return service_response(
        await submission_service.create_submission(submission_data, email),
        data_key="submission"
    )


@router.get("/{contest_id}/my")
async def get_my_submission(
    contest_id: str,
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """The caller's own submission for a contest"""
    submission_service = SubmissionService(db)
    submission = await submission_service.get_own_submission(contest_id, email)

    if not submission:
        return error_response(message="Submission not found", status_code=404)

    return success_response(message="Submission retrieved successfully", data={"submission": submission})


@router.patch("/{submission_id}")
async def update_submission(
    submission_id: str,
    update: SubmissionUpdate,
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Edit an own pending submission while the contest is open"""
    submission_service = SubmissionService(db)
    return service_response(
        await submission_service.update_submission(submission_id, email, update),
        data_key="submission"
    )


@creator_router.get("/{contest_id}/submissions")
async def get_contest_submissions(
    contest_id: str,
    creator: dict = Depends(require_creator),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """All submissions of an own contest, with submitter name and photo"""
    if parse_object_id(contest_id) is None:
        return error_response(message="Invalid contest ID", status_code=400)

    contest_service = ContestService(db)
    contest = await contest_service.get_contest_by_id(contest_id)

    if not contest:
        return error_response(message="Contest not found", status_code=404)

    if contest["creatorEmail"] != creator["email"]:
        return error_response(message="forbidden access", status_code=403)

    submission_service = SubmissionService(db)
    submissions = await submission_service.get_contest_submissions(contest_id)

    return success_response(
        message="Submissions retrieved successfully",
        data={"submissions": submissions, "total": len(submissions)}
    )


@leaderboard_router.get("")
async def get_leaderboard(db: AsyncIOMotorDatabase = Depends(get_database)):
    """Top users by contests won"""
    submission_service = SubmissionService(db)
    leaders = await submission_service.get_leaderboard()

    return success_response(message="Leaderboard retrieved successfully", data={"leaderboard": leaders})
