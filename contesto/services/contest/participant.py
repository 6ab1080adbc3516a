from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional, List, Dict, Tuple
from datetime import datetime


class ParticipantService:
    """Service for contest participation records"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.participants = db.participants

    async def get_participant(self, contest_id: str, user_email: str) -> Optional[Dict]:
        return await self.participants.find_one({"contestId": contest_id, "userEmail": user_email})

    async def is_participant(self, contest_id: str, user_email: str) -> bool:
        return await self.get_participant(contest_id, user_email) is not None

    async def add_participant(
        self,
        contest_id: str,
        user_email: str,
        payment_id: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> Tuple[bool, Optional[Dict]]:
        """
        Insert a participant if (contestId, userEmail) is not registered yet.

        Single upsert, so replays and concurrent verifications create one row.
        Returns (created, participant).
        """
        now = datetime.utcnow()
        result = await self.participants.update_one(
            {"contestId": contest_id, "userEmail": user_email},
            {"$setOnInsert": {
                "contestId": contest_id,
                "userEmail": user_email,
                "paymentId": payment_id,
                "transactionId": transaction_id,
                "joinedAt": now
            }},
            upsert=True
        )

        created = result.upserted_id is not None
        if created:
            print(f"[INFO] Participant added: contest={contest_id} user={user_email}")
        return created, await self.get_participant(contest_id, user_email)

    async def get_joined_contests(self, user_email: str, limit: int = 200) -> List[Dict]:
        """
        Contests the user has joined, newest first, with the contest details
        and the user's submission status (if any) attached.
        """
        pipeline = [
            {"$match": {"userEmail": user_email}},
            {"$sort": {"joinedAt": -1}},
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
            {
                "$lookup": {
                    "from": "submissions",
                    "let": {"contest_id": "$contestId", "email": "$userEmail"},
                    "pipeline": [
                        {"$match": {"$expr": {"$and": [
                            {"$eq": ["$contestId", "$$contest_id"]},
                            {"$eq": ["$userEmail", "$$email"]}
                        ]}}},
                        {"$project": {"status": 1, "submittedAt": 1}}
                    ],
                    "as": "submission"
                }
            },
            {
                "$addFields": {
                    "submissionStatus": {"$arrayElemAt": ["$submission.status", 0]}
                }
            },
            {"$project": {"contest_oid": 0, "submission": 0}}
        ]
        cursor = self.participants.aggregate(pipeline)
        return await cursor.to_list(length=limit)
