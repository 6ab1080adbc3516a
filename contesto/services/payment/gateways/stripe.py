"""
Stripe Payment Gateway Implementation
Hosted Checkout Sessions over the Stripe REST API
"""
import os
import httpx
from typing import Dict, Any, Optional
from dotenv import load_dotenv

from contesto.services.payment.gateways.base import (
    BasePaymentGateway,
    CheckoutSessionResult,
    CheckoutSession
)

load_dotenv()


class StripeGateway(BasePaymentGateway):
    """
    Stripe Checkout gateway.

    Holds one ``httpx.AsyncClient`` for its lifetime; call ``close()`` on shutdown.
    """

    gateway_id = "stripe"
    gateway_name = "Stripe"

    API_URL = "https://api.stripe.com/v1"

    def __init__(self, config: Optional[Dict[str, Any]] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize Stripe gateway"""
        env_config = self._load_config_from_env()

        if config is not None:
            env_config.update({k: v for k, v in config.items() if v is not None})

        super().__init__(env_config)

        self.secret_key = self.config["secret_key"]
        self.currency = self.config.get("currency", "usd")
        self._client = httpx.AsyncClient(
            base_url=self.config.get("api_url", self.API_URL),
            auth=(self.secret_key, ""),
            timeout=30.0,
            transport=transport
        )

    def _load_config_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        secret_key = os.getenv("STRIPE_SECRET_KEY")

        if not secret_key:
            print("[WARN] STRIPE_SECRET_KEY not found in environment")

        return {
            "secret_key": secret_key,
            "currency": os.getenv("STRIPE_CURRENCY", "usd").lower(),
            "api_url": self.API_URL,
        }

    def _validate_config(self):
        """Validate required Stripe configuration"""
        if not self.config.get("secret_key"):
            raise ValueError("STRIPE_SECRET_KEY is required")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            return response.json().get("error", {}).get("message") or f"Stripe error {response.status_code}"
        except ValueError:
            return f"Stripe error {response.status_code}"

    async def create_checkout_session(
        self,
        amount: float,
        product_name: str,
        customer_email: str,
        success_url: str,
        cancel_url: str,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> CheckoutSessionResult:
        """Create a Stripe Checkout Session in payment mode with a single line item"""
        try:
            # Stripe takes form-encoded bodies with bracketed keys for nested objects
            payload = {
                "mode": "payment",
                "customer_email": customer_email,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "line_items[0][quantity]": "1",
                "line_items[0][price_data][currency]": (currency or self.currency).lower(),
                "line_items[0][price_data][unit_amount]": str(self.to_minor_units(amount)),
                "line_items[0][price_data][product_data][name]": product_name,
            }

            if description:
                payload["line_items[0][price_data][product_data][description]"] = description[:500]
            if image_url:
                payload["line_items[0][price_data][product_data][images][0]"] = image_url

            for key, value in (metadata or {}).items():
                payload[f"metadata[{key}]"] = str(value)

            response = await self._client.post("/checkout/sessions", data=payload)

            if response.status_code != 200:
                error_msg = self._error_message(response)
                print(f"[ERROR] Stripe create_checkout_session failed: {error_msg}")
                return CheckoutSessionResult(success=False, error_message=error_msg)

            response_data = response.json()
            return CheckoutSessionResult(
                success=True,
                session_id=response_data.get("id"),
                checkout_url=response_data.get("url"),
                raw_response=response_data
            )

        except httpx.HTTPError as e:
            print(f"[ERROR] Stripe request failed: {str(e)}")
            return CheckoutSessionResult(success=False, error_message=str(e))

    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """Retrieve a Checkout Session with its payment status and metadata"""
        try:
            response = await self._client.get(f"/checkout/sessions/{session_id}")

            if response.status_code != 200:
                error_msg = self._error_message(response)
                return CheckoutSession(
                    success=False,
                    session_id=session_id,
                    error_message=error_msg,
                    http_status=response.status_code
                )

            data = response.json()

            # payment_intent is an id string unless the caller expanded it
            payment_intent = data.get("payment_intent")
            if isinstance(payment_intent, dict):
                payment_intent = payment_intent.get("id")

            customer_email = data.get("customer_email") or (data.get("customer_details") or {}).get("email")
            amount_total = data.get("amount_total")

            return CheckoutSession(
                success=True,
                session_id=data.get("id", session_id),
                payment_status=data.get("payment_status"),
                transaction_id=payment_intent or data.get("id", session_id),
                amount=amount_total / 100 if amount_total is not None else None,
                currency=data.get("currency"),
                customer_email=customer_email.lower() if customer_email else None,
                metadata=data.get("metadata") or {},
                raw_response=data
            )

        except httpx.HTTPError as e:
            print(f"[ERROR] Stripe request failed: {str(e)}")
            return CheckoutSession(success=False, session_id=session_id, error_message=str(e))

    async def close(self):
        await self._client.aclose()
