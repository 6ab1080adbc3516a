from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict
from datetime import datetime
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from contesto.models.submission import SubmissionCreate, SubmissionUpdate, SubmissionStatus
from contesto.models.contest import ContestLifecycle
from contesto.services.contest.participant import ParticipantService
from contesto.utils.serialize import parse_object_id, as_datetime
from contesto.utils.response import ServiceResult


class SubmissionService:
    """Service for contest submission operations"""

    LEADERBOARD_LIMIT = 10

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.submissions = db.submissions
        self.contests = db.contests
        self.participant_service = ParticipantService(db)

    def _get_user_lookup_pipeline(self) -> List[Dict]:
        """
        Returns aggregation stages that attach the submitter's profile.
        Adds 'userName' and 'userPhotoURL' to each document.
        """
        return [
            {
                "$lookup": {
                    "from": "users",
                    "localField": "userEmail",
                    "foreignField": "email",
                    "as": "user_info"
                }
            },
            {
                "$addFields": {
                    "userName": {"$arrayElemAt": ["$user_info.name", 0]},
                    "userPhotoURL": {"$arrayElemAt": ["$user_info.photoURL", 0]}
                }
            },
            {"$project": {"user_info": 0}}
        ]

    def _submission_window_error(self, contest: Dict) -> Optional[str]:
        """Reason the contest does not accept entries, None if it does"""
        if contest.get("contestStatus") != ContestLifecycle.OPEN.value:
            return "Contest is not open for submissions"

        end_at = as_datetime(contest.get("participationEndAt"))
        if end_at is not None and datetime.utcnow() >= end_at:
            return "Participation period has ended"

        return None

    async def create_submission(self, submission_data: SubmissionCreate, user_email: str) -> ServiceResult:
        """Submit an entry to an open contest the caller has joined"""
        try:
            contest_id = submission_data.contest_id
            oid = parse_object_id(contest_id)
            if oid is None:
                return False, "Invalid contest ID", None, 400

            contest = await self.contests.find_one({"_id": oid})
            if not contest:
                return False, "Contest not found", None, 404

            window_error = self._submission_window_error(contest)
            if window_error:
                return False, window_error, None, 403

            if not await self.participant_service.is_participant(contest_id, user_email):
                return False, "Only participants can submit", None, 403

            now = datetime.utcnow()
            submission = {
                "contestId": contest_id,
                "contestName": contest.get("name"),
                "userEmail": user_email,
                "submissionValue": submission_data.submission_value,
                "status": SubmissionStatus.PENDING.value,
                "submittedAt": now,
                "updatedAt": now
            }

            try:
                result = await self.submissions.insert_one(submission)
            except DuplicateKeyError:
                return False, "You have already submitted to this contest", None, 409

            submission["_id"] = result.inserted_id

            return True, "Submission created successfully", submission, 201

        except Exception as e:
            print(f"[ERROR] Failed to create submission: {str(e)}")
            return False, "Internal server error", None, 500

    async def get_own_submission(self, contest_id: str, user_email: str) -> Optional[Dict]:
        """The caller's submission for a contest"""
        return await self.submissions.find_one({"contestId": contest_id, "userEmail": user_email})

    async def update_submission(self, submission_id: str, user_email: str, update: SubmissionUpdate) -> ServiceResult:
        """Edit a pending entry while the contest still accepts submissions"""
        try:
            oid = parse_object_id(submission_id)
            if oid is None:
                return False, "Invalid submission ID", None, 400

            submission = await self.submissions.find_one({"_id": oid})
            if not submission:
                return False, "Submission not found", None, 404

            if submission["userEmail"] != user_email:
                return False, "forbidden access", None, 403

            if submission["status"] != SubmissionStatus.PENDING.value:
                return False, "Submission is locked", None, 409

            contest = await self.contests.find_one({"_id": parse_object_id(submission["contestId"])})
            window_error = self._submission_window_error(contest) if contest else "Contest not found"
            if window_error:
                return False, window_error, None, 403

            updated = await self.submissions.find_one_and_update(
                {"_id": oid, "status": SubmissionStatus.PENDING.value},
                {"$set": {
                    "submissionValue": update.submission_value,
                    "updatedAt": datetime.utcnow()
                }},
                return_document=ReturnDocument.AFTER
            )

            if not updated:
                return False, "Submission is locked", None, 409

            return True, "Submission updated successfully", updated, 200

        except Exception as e:
            print(f"[ERROR] Failed to update submission: {str(e)}")
            return False, "Internal server error", None, 500

    async def get_contest_submissions(self, contest_id: str, limit: int = 1000) -> List[Dict]:
        """All submissions of a contest with submitter profiles, oldest first"""
        pipeline = [
            {"$match": {"contestId": contest_id}},
            {"$sort": {"submittedAt": 1}},
            *self._get_user_lookup_pipeline()
        ]
        cursor = self.submissions.aggregate(pipeline)
        return await cursor.to_list(length=limit)

    async def get_winner(self, contest_id: str) -> Optional[Dict]:
        """Winning submission of a contest with the winner's profile"""
        pipeline = [
            {"$match": {"contestId": contest_id, "status": SubmissionStatus.WINNER.value}},
            *self._get_user_lookup_pipeline(),
            {"$limit": 1}
        ]
        cursor = self.submissions.aggregate(pipeline)
        winners = await cursor.to_list(length=1)
        return winners[0] if winners else None

    async def get_user_wins(self, user_email: str, limit: int = 200) -> List[Dict]:
        """Contests the user has won, most recent first"""
        pipeline = [
            {"$match": {"userEmail": user_email, "status": SubmissionStatus.WINNER.value}},
            {"$sort": {"updatedAt": -1}},
            {"$addFields": {"contest_oid": {"$toObjectId": "$contestId"}}},
            {
                "$lookup": {
                    "from": "contests",
                    "localField": "contest_oid",
                    "foreignField": "_id",
                    "as": "contest"
                }
            },
            {"$unwind": "$contest"},
            {"$project": {"contest_oid": 0}}
        ]
        cursor = self.submissions.aggregate(pipeline)
        return await cursor.to_list(length=limit)

    async def get_leaderboard(self) -> List[Dict]:
        """Users ranked by number of contests won"""
        pipeline = [
            {"$match": {"status": SubmissionStatus.WINNER.value}},
            {
                "$group": {
                    "_id": "$userEmail",
                    "wins": {"$sum": 1},
                    "lastWinAt": {"$max": "$updatedAt"}
                }
            },
            {"$sort": {"wins": -1, "lastWinAt": 1}},
            {"$limit": self.LEADERBOARD_LIMIT},
            {
                "$lookup": {
                    "from": "users",
                    "localField": "_id",
                    "foreignField": "email",
                    "as": "user_info"
                }
            },
            {
                "$project": {
                    "_id": 0,
                    "userEmail": "$_id",
                    "wins": 1,
                    "lastWinAt": 1,
                    "userName": {"$arrayElemAt": ["$user_info.name", 0]},
                    "userPhotoURL": {"$arrayElemAt": ["$user_info.photoURL", 0]}
                }
            }
        ]
        cursor = self.submissions.aggregate(pipeline)
        return await cursor.to_list(length=self.LEADERBOARD_LIMIT)
