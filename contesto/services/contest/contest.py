import re
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict
from datetime import datetime
from pymongo import ReturnDocument
from contesto.models.contest import ContestStatus, ContestLifecycle, ContestCreate, ContestUpdate
from contesto.models.submission import SubmissionStatus
from contesto.models.user import UserRole
from contesto.utils.serialize import parse_object_id, to_utc_naive, as_datetime
from contesto.utils.response import ServiceResult


class WinnerSelectionAborted(Exception):
    """Raised inside the winner-selection transaction to roll it back"""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ContestService:
    """Service for contest CRUD, moderation and lifecycle"""

    POPULAR_LIMIT = 8

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.contests = db.contests
        self.participants = db.participants
        self.submissions = db.submissions
        self.users = db.users

    def _get_participants_count_pipeline(self) -> List[Dict]:
        """
        Returns aggregation stages that add ``participantsCount`` to each contest.
        Participants reference contests by the string form of ``_id``.
        """
        return [
            {
                "$lookup": {
                    "from": "participants",
                    "let": {"contest_id": {"$toString": "$_id"}},
                    "pipeline": [
                        {"$match": {"$expr": {"$eq": ["$contestId", "$$contest_id"]}}},
                        {"$count": "count"}
                    ],
                    "as": "participant_stats"
                }
            },
            {
                "$addFields": {
                    "participantsCount": {
                        "$ifNull": [{"$arrayElemAt": ["$participant_stats.count", 0]}, 0]
                    }
                }
            },
            {"$project": {"participant_stats": 0}}
        ]

    async def _aggregate(self, pipeline: List[Dict], limit: int) -> List[Dict]:
        cursor = self.contests.aggregate(pipeline)
        return await cursor.to_list(length=limit)

    async def create_contest(self, contest_data: ContestCreate, creator: Dict) -> ServiceResult:
        """Create a contest awaiting admin approval"""
        try:
            end_at = to_utc_naive(contest_data.participation_end_at)
            now = datetime.utcnow()

            if end_at <= now:
                return False, "Participation end time must be in the future", None, 400

            contest = {
                "name": contest_data.name,
                "image": contest_data.image,
                "description": contest_data.description,
                "category": contest_data.category.strip().lower(),
                "prizeMoney": contest_data.prize_money,
                "entryFee": contest_data.entry_fee,
                "taskInstruction": contest_data.task_instruction,
                "participationEndAt": end_at,
                "creatorEmail": creator["email"],
                "creatorName": creator.get("name"),
                "creatorPhotoURL": creator.get("photoURL"),
                "status": ContestStatus.PENDING.value,
                "createdAt": now,
                "updatedAt": now
            }

            result = await self.contests.insert_one(contest)
            contest["_id"] = result.inserted_id

            return True, "Contest submitted for approval", contest, 201

        except Exception as e:
            print(f"[ERROR] Failed to create contest: {str(e)}")
            return False, "Internal server error", None, 500

    async def get_contest_by_id(self, contest_id: str) -> Optional[Dict]:
        """Get a contest with its participant count"""
        oid = parse_object_id(contest_id)
        if oid is None:
            return None

        contests = await self._aggregate(
            [{"$match": {"_id": oid}}, *self._get_participants_count_pipeline()],
            limit=1
        )
        return contests[0] if contests else None

    async def get_public_contests(
        self,
        category: Optional[str] = None,
        search_text: Optional[str] = None,
        lifecycle: Optional[ContestLifecycle] = None,
        limit: int = 100
    ) -> List[Dict]:
        """Approved contests, newest first, filtered by category / name / lifecycle"""
        query: Dict = {"status": ContestStatus.APPROVED.value}

        if category:
            query["category"] = category.strip().lower()

        if search_text:
            query["name"] = {"$regex": re.escape(search_text.strip()), "$options": "i"}

        if lifecycle:
            query["contestStatus"] = lifecycle.value

        pipeline = [
            {"$match": query},
            {"$sort": {"createdAt": -1}},
            {"$limit": limit},
            *self._get_participants_count_pipeline()
        ]
        return await self._aggregate(pipeline, limit)

    async def get_popular_contests(self) -> List[Dict]:
        """Top approved contests by participant count"""
        pipeline = [
            {"$match": {"status": ContestStatus.APPROVED.value}},
            *self._get_participants_count_pipeline(),
            {"$sort": {"participantsCount": -1, "createdAt": -1}},
            {"$limit": self.POPULAR_LIMIT}
        ]
        return await self._aggregate(pipeline, self.POPULAR_LIMIT)

    async def get_creator_contests(self, creator_email: str, limit: int = 200) -> List[Dict]:
        """All contests created by a creator, any status"""
        pipeline = [
            {"$match": {"creatorEmail": creator_email}},
            {"$sort": {"createdAt": -1}},
            *self._get_participants_count_pipeline()
        ]
        return await self._aggregate(pipeline, limit)

    async def get_all_contests(self, status: Optional[ContestStatus] = None, limit: int = 500) -> List[Dict]:
        """All contests for moderation"""
        query = {"status": status.value} if status else {}
        pipeline = [
            {"$match": query},
            {"$sort": {"createdAt": -1}},
            *self._get_participants_count_pipeline()
        ]
        return await self._aggregate(pipeline, limit)

    async def update_contest(self, contest_id: str, creator_email: str, update: ContestUpdate) -> ServiceResult:
        """Creator edits their own contest while it is still pending"""
        try:
            oid = parse_object_id(contest_id)
            if oid is None:
                return False, "Invalid contest ID", None, 400

            contest = await self.contests.find_one({"_id": oid})
            if not contest:
                return False, "Contest not found", None, 404

            if contest["creatorEmail"] != creator_email:
                return False, "Only the contest creator can edit this contest", None, 403

            if contest["status"] != ContestStatus.PENDING.value:
                return False, "Only pending contests can be edited", None, 400

            update_fields = update.model_dump(exclude_none=True, by_alias=True)
            if not update_fields:
                return False, "No fields to update", None, 400

            if "participationEndAt" in update_fields:
                end_at = to_utc_naive(update_fields["participationEndAt"])
                if end_at <= datetime.utcnow():
                    return False, "Participation end time must be in the future", None, 400
                update_fields["participationEndAt"] = end_at

            if "category" in update_fields:
                update_fields["category"] = update_fields["category"].strip().lower()

            update_fields["updatedAt"] = datetime.utcnow()

            # Status is re-checked in the filter so an approval can't be overwritten
            updated = await self.contests.find_one_and_update(
                {"_id": oid, "status": ContestStatus.PENDING.value},
                {"$set": update_fields},
                return_document=ReturnDocument.AFTER
            )

            if not updated:
                return False, "Only pending contests can be edited", None, 400

            return True, "Contest updated successfully", updated, 200

        except Exception as e:
            print(f"[ERROR] Failed to update contest: {str(e)}")
            return False, "Internal server error", None, 500

    async def moderate_contest(self, contest_id: str, status: ContestStatus) -> ServiceResult:
        """
        Admin sets the moderation status.

        Approval opens the contest. Rejecting or returning it to pending closes it
        again. Completed contests are final.
        """
        try:
            oid = parse_object_id(contest_id)
            if oid is None:
                return False, "Invalid contest ID", None, 400

            contest = await self.contests.find_one({"_id": oid})
            if not contest:
                return False, "Contest not found", None, 404

            if contest.get("contestStatus") == ContestLifecycle.COMPLETED.value:
                return False, "Contest is already completed", None, 409

            now = datetime.utcnow()
            if status == ContestStatus.APPROVED:
                update = {"$set": {
                    "status": status.value,
                    "contestStatus": ContestLifecycle.OPEN.value,
                    "approvedAt": now,
                    "updatedAt": now
                }}
            else:
                update = {
                    "$set": {"status": status.value, "updatedAt": now},
                    "$unset": {"contestStatus": "", "approvedAt": ""}
                }

            result = await self.contests.update_one(
                {"_id": oid, "contestStatus": {"$ne": ContestLifecycle.COMPLETED.value}},
                update
            )

            if result.matched_count == 0:
                return False, "Contest is already completed", None, 409

            print(f"[INFO] Contest {contest_id} moderated: {status.value}")

            return True, f"Contest {status.value}", {
                "matchedCount": result.matched_count,
                "modifiedCount": result.modified_count
            }, 200

        except Exception as e:
            print(f"[ERROR] Failed to moderate contest: {str(e)}")
            return False, "Internal server error", None, 500

    async def delete_contest(self, contest_id: str, email: str, role: str) -> ServiceResult:
        """
        Delete a contest.

        Creators may delete their own pending contests. Admins may delete any
        contest that has not been completed.
        """
        try:
            oid = parse_object_id(contest_id)
            if oid is None:
                return False, "Invalid contest ID", None, 400

            contest = await self.contests.find_one({"_id": oid})
            if not contest:
                return False, "Contest not found", None, 404

            if role == UserRole.ADMIN.value:
                if contest.get("contestStatus") == ContestLifecycle.COMPLETED.value:
                    return False, "Completed contests cannot be deleted", None, 409
            elif role == UserRole.CREATOR.value and contest["creatorEmail"] == email:
                if contest["status"] != ContestStatus.PENDING.value:
                    return False, "Only pending contests can be deleted", None, 400
            else:
                return False, "forbidden access", None, 403

            result = await self.contests.delete_one({"_id": oid})

            return True, "Contest deleted", {"deletedCount": result.deleted_count}, 200

        except Exception as e:
            print(f"[ERROR] Failed to delete contest: {str(e)}")
            return False, "Internal server error", None, 500

    async def select_winner(self, contest_id: str, submission_id: str, creator_email: str) -> ServiceResult:
        """
        Declare the winning submission and complete the contest.

        Preconditions: the caller created the contest, the participation window
        has closed, the contest is open, and the submission is pending under it.

        The contest flip (guarded on ``contestStatus: open``), the winner update
        and the bulk "lost" update run in one transaction, so a contest is
        completed exactly once and never ends up with a winner but still open.
        """
        contest_oid = parse_object_id(contest_id)
        submission_oid = parse_object_id(submission_id)
        if contest_oid is None or submission_oid is None:
            return False, "Invalid contest or submission ID", None, 400

        try:
            contest = await self.contests.find_one({"_id": contest_oid})
            if not contest:
                return False, "Contest not found", None, 404

            if contest["creatorEmail"] != creator_email:
                return False, "Only the contest creator can select a winner", None, 403

            end_at = as_datetime(contest.get("participationEndAt"))
            now = datetime.utcnow()
            if end_at is None or now < end_at:
                return False, "Contest has not ended yet", None, 400

            if contest.get("contestStatus") == ContestLifecycle.COMPLETED.value:
                return False, "Winner already selected for this contest", None, 409

            if contest.get("contestStatus") != ContestLifecycle.OPEN.value:
                return False, "Contest is not open", None, 400

            submission = await self.submissions.find_one({
                "_id": submission_oid,
                "contestId": contest_id,
                "status": SubmissionStatus.PENDING.value
            })
            if not submission:
                return False, "Submission not found or not pending", None, 400

            async with await self.db.client.start_session() as session:
                async with session.start_transaction():
                    claimed = await self.contests.update_one(
                        {"_id": contest_oid, "contestStatus": ContestLifecycle.OPEN.value},
                        {"$set": {
                            "contestStatus": ContestLifecycle.COMPLETED.value,
                            "winnerEmail": submission["userEmail"],
                            "winnerSubmissionId": submission_id,
                            "completedAt": now,
                            "updatedAt": now
                        }},
                        session=session
                    )
                    if claimed.modified_count == 0:
                        raise WinnerSelectionAborted("Winner already selected for this contest", 409)

                    won = await self.submissions.update_one(
                        {"_id": submission_oid, "status": SubmissionStatus.PENDING.value},
                        {"$set": {"status": SubmissionStatus.WINNER.value, "updatedAt": now}},
                        session=session
                    )
                    if won.modified_count == 0:
                        raise WinnerSelectionAborted("Submission not found or not pending", 400)

                    lost = await self.submissions.update_many(
                        {
                            "contestId": contest_id,
                            "_id": {"$ne": submission_oid},
                            "status": SubmissionStatus.PENDING.value
                        },
                        {"$set": {"status": SubmissionStatus.LOST.value, "updatedAt": now}},
                        session=session
                    )

            print(f"[INFO] Contest {contest_id} completed, winner {submission['userEmail']}")

            return True, "Winner selected successfully", {
                "contestId": contest_id,
                "winnerSubmissionId": submission_id,
                "winnerEmail": submission["userEmail"],
                "lostCount": lost.modified_count
            }, 200

        except WinnerSelectionAborted as e:
            return False, e.message, None, e.status_code
        except Exception as e:
            print(f"[ERROR] Failed to select winner: {str(e)}")
            return False, "Internal server error", None, 500
