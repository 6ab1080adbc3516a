"""
Payment Service
Turns hosted checkout sessions into local payment and participant records
"""
import os
from datetime import datetime
from typing import Optional, Dict, List
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from dotenv import load_dotenv

from contesto.services.payment.gateways.base import BasePaymentGateway
from contesto.services.payment.gateways.factory import get_payment_gateway
from contesto.services.contest.participant import ParticipantService
from contesto.models.contest import ContestStatus, ContestLifecycle
from contesto.models.payment import PaymentStatus
from contesto.utils.serialize import parse_object_id, as_datetime
from contesto.utils.response import ServiceResult

load_dotenv()


class PaymentService:
    """
    Service for paid contest participation.
    Handles checkout creation, verification and payment lookups.
    """

    def __init__(self, db: AsyncIOMotorDatabase, gateway: Optional[BasePaymentGateway] = None):
        self.db = db
        self.payments = db.payments
        self.contests = db.contests
        self.participant_service = ParticipantService(db)
        self._gateway = gateway
        self.site_domain = os.getenv("SITE_DOMAIN", "http://localhost:5173").rstrip("/")

    @property
    def gateway(self) -> BasePaymentGateway:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    async def create_checkout_session(self, contest_id: str, user: Dict) -> ServiceResult:
        """
        Start a hosted checkout for a contest's entry fee.

        The contest must be approved, open and still within its participation
        window, and the user must not have joined already.
        """
        try:
            oid = parse_object_id(contest_id)
            if oid is None:
                return False, "Invalid contest ID", None, 400

            contest = await self.contests.find_one({"_id": oid})
            if not contest:
                return False, "Contest not found", None, 404

            if (contest.get("status") != ContestStatus.APPROVED.value
                    or contest.get("contestStatus") != ContestLifecycle.OPEN.value):
                return False, "Contest is not open for registration", None, 400

            end_at = as_datetime(contest.get("participationEndAt"))
            if end_at is not None and datetime.utcnow() >= end_at:
                return False, "Participation period has ended", None, 400

            email = user["email"]
            if await self.participant_service.is_participant(contest_id, email):
                return False, "Already joined this contest", None, 409

            result = await self.gateway.create_checkout_session(
                amount=contest["entryFee"],
                product_name=contest.get("name", "Contest entry"),
                description=contest.get("description"),
                image_url=contest.get("image"),
                customer_email=email,
                success_url=f"{self.site_domain}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.site_domain}/contests/{contest_id}",
                metadata={"contestId": contest_id, "email": email}
            )

            if not result.success:
                return False, result.error_message or "Failed to create checkout session", None, 502

            return True, "Checkout session created", {
                "url": result.checkout_url,
                "sessionId": result.session_id
            }, 200

        except Exception as e:
            print(f"[ERROR] Failed to create checkout session: {str(e)}")
            return False, "Internal server error", None, 500

    async def verify_payment(self, session_id: str, caller_email: str) -> ServiceResult:
        """
        Reconcile a checkout session into a payment and a participant.

        Idempotent on the provider transaction id: the unique index on
        ``payments.transactionId`` decides which verification records the
        payment; every replay reports ``alreadyVerified``. The participant is
        upserted on (contestId, userEmail) on every path, so a participant that
        already exists is kept and one lost after the payment insert is restored
        by the next replay.
        """
        try:
            if not session_id:
                return False, "session_id is required", None, 400

            session = await self.gateway.retrieve_checkout_session(session_id)

            if not session.success:
                if session.http_status and 400 <= session.http_status < 500:
                    return False, "Checkout session not found", None, 404
                return False, session.error_message or "Failed to retrieve checkout session", None, 502

            contest_id = session.metadata.get("contestId")
            email = (session.metadata.get("email") or session.customer_email or "").lower()
            if not contest_id or not email:
                return False, "Checkout session is missing contest metadata", None, 400

            if email != caller_email:
                return False, "forbidden access", None, 403

            transaction_id = session.transaction_id

            existing = await self.payments.find_one({"transactionId": transaction_id})
            if existing:
                return await self._already_verified(existing, contest_id, email, transaction_id)

            if not session.is_paid:
                print(f"[INFO] Checkout session {session_id} not paid: {session.payment_status}")
                return False, "Payment not completed", None, 402

            payment = {
                "transactionId": transaction_id,
                "sessionId": session.session_id,
                "contestId": contest_id,
                "userEmail": email,
                "amount": session.amount,
                "currency": session.currency,
                "paymentStatus": PaymentStatus.PAID.value,
                "paidAt": datetime.utcnow()
            }

            try:
                result = await self.payments.insert_one(payment)
            except DuplicateKeyError:
                # A concurrent verification recorded it first
                existing = await self.payments.find_one({"transactionId": transaction_id})
                return await self._already_verified(existing, contest_id, email, transaction_id)

            payment_id = str(result.inserted_id)
            participant_created, _ = await self.participant_service.add_participant(
                contest_id=contest_id,
                user_email=email,
                payment_id=payment_id,
                transaction_id=transaction_id
            )

            print(f"[OK] Payment {transaction_id} verified for contest {contest_id}")

            return True, "Payment verified", {
                "alreadyVerified": False,
                "transactionId": transaction_id,
                "paymentId": payment_id,
                "participantCreated": participant_created
            }, 200

        except Exception as e:
            print(f"[ERROR] Failed to verify payment: {str(e)}")
            return False, "Internal server error", None, 500

    async def _already_verified(
        self,
        payment: Optional[Dict],
        contest_id: str,
        email: str,
        transaction_id: str
    ) -> ServiceResult:
        """
        Report a recorded payment and make sure its participant exists.

        The upsert is a no-op when the participant is already there and fills
        the gap when an earlier verification stopped after the payment insert.
        """
        payment_id = str(payment["_id"]) if payment else None
        participant_created, _ = await self.participant_service.add_participant(
            contest_id=contest_id,
            user_email=email,
            payment_id=payment_id,
            transaction_id=transaction_id
        )
        if participant_created:
            print(f"[WARN] Restored missing participant for payment {transaction_id}")

        return True, "Payment already verified", {
            "alreadyVerified": True,
            "transactionId": transaction_id,
            "paymentId": payment_id,
            "participantCreated": participant_created
        }, 200

    async def has_paid(self, contest_id: str, user_email: str) -> bool:
        """Whether the user holds a paid entry for the contest"""
        payment = await self.payments.find_one({
            "contestId": contest_id,
            "userEmail": user_email,
            "paymentStatus": PaymentStatus.PAID.value
        })
        if payment:
            return True
        return await self.participant_service.is_participant(contest_id, user_email)

    def _get_contest_lookup_pipeline(self) -> List[Dict]:
        """Attach the contest name and image to each payment"""
        return [
            {"$addFields": {"contest_oid": {"$toObjectId": "$contestId"}}},
            {
                "$lookup": {
                    "from": "contests",
                    "localField": "contest_oid",
                    "foreignField": "_id",
                    "as": "contest_info"
                }
            },
            {
                "$addFields": {
                    "contestName": {"$arrayElemAt": ["$contest_info.name", 0]},
                    "contestImage": {"$arrayElemAt": ["$contest_info.image", 0]}
                }
            },
            {"$project": {"contest_oid": 0, "contest_info": 0}}
        ]

    async def get_user_payments(self, user_email: str, limit: int = 200) -> List[Dict]:
        """The user's payment history, newest first"""
        pipeline = [
            {"$match": {"userEmail": user_email}},
            {"$sort": {"paidAt": -1}},
            *self._get_contest_lookup_pipeline()
        ]
        cursor = self.payments.aggregate(pipeline)
        return await cursor.to_list(length=limit)

    async def get_all_payments(self, limit: int = 500) -> List[Dict]:
        """All payments, newest first"""
        pipeline = [
            {"$sort": {"paidAt": -1}},
            {"$limit": limit},
            *self._get_contest_lookup_pipeline()
        ]
        cursor = self.payments.aggregate(pipeline)
        return await cursor.to_list(length=limit)
