from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from contesto.database import get_database
from contesto.services.contest.participant import ParticipantService
from contesto.routes.auth.dependencies import get_current_email
from contesto.utils.response import success_response

router = APIRouter(prefix="/participants", tags=["Participants"])


@router.get("/my-contests")
async def get_my_contests(
    email: str = Depends(get_current_email),
    db: AsyncIOMotorDatabase = Depends(get_database)
):
    """Contests the caller has joined, with their submission status"""
    participant_service = ParticipantService(db)
    contests = await participant_service.get_joined_contests(email)

    return success_response(
        message="Joined contests retrieved successfully",
        data={"participations": contests, "total": len(contests)}
    )
