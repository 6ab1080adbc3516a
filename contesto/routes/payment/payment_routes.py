"""
Payment Routes
Checkout and verification endpoints for paid contest entry
"""
from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from contesto.database import get_database
from contesto.models.participant import CheckoutRequest
from contesto.services.payment.payment_service import PaymentService
from contesto.routes.auth.dependencies import (
    get_current_email,
    require_admin,
    require_participant_role
)
from contesto.utils.response import success_response, service_response

router = APIRouter(tags=["Payments"])


def get_payment_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> PaymentService:
    """Payment service dependency"""
    return PaymentService(db)


@router.post("/payment-checkout-session")
async def create_checkout_session(
    checkout: CheckoutRequest,
    user: dict = Depends(require_participant_role),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """
    Start a hosted checkout to join a contest.

    - Only regular users can join (admins and creators get 403)
    - Contest must be approved, open and before its deadline
    - Returns the provider's checkout URL
    """
    return service_response(await payment_service.create_checkout_session(checkout.contest_id, user))


@router.post("/verify-payment")
async def verify_payment(
    session_id: str = Query(..., min_length=1),
    email: str = Depends(get_current_email),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """
    Record a completed checkout as a payment and a participant.

    Safe to call repeatedly: later calls return ``alreadyVerified: true``.
    Unpaid sessions are rejected with 402.
    """
    return service_response(await payment_service.verify_payment(session_id, email))


@router.get("/payments/check/{contest_id}")
async def check_payment(
    contest_id: str,
    email: str = Depends(get_current_email),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """Whether the caller has paid for a contest"""
    paid = await payment_service.has_paid(contest_id, email)
    return success_response(message="Payment status retrieved", data={"paid": paid})


@router.get("/payments/my")
async def get_my_payments(
    email: str = Depends(get_current_email),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """The caller's payment history"""
    payments = await payment_service.get_user_payments(email)
    return success_response(
        message="Payments retrieved successfully",
        data={"payments": payments, "total": len(payments)}
    )


@router.get("/payments")
async def get_all_payments(
    admin: dict = Depends(require_admin),
    payment_service: PaymentService = Depends(get_payment_service)
):
    """All payments (admin only)"""
    payments = await payment_service.get_all_payments()
    return success_response(
        message="Payments retrieved successfully",
        data={"payments": payments, "total": len(payments)}
    )
