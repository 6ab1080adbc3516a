"""
Base Payment Gateway
Abstract class defining the interface for hosted-checkout payment providers
"""
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class CheckoutSessionResult:
    """Result of creating a hosted checkout session"""
    success: bool
    session_id: Optional[str] = None
    checkout_url: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None


@dataclass
class CheckoutSession:
    """A checkout session as reported by the provider"""
    success: bool
    session_id: Optional[str] = None
    payment_status: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    error_message: Optional[str] = None
    http_status: Optional[int] = None
    raw_response: Optional[Dict[str, Any]] = None

    @property
    def is_paid(self) -> bool:
        return self.success and self.payment_status == "paid"


class BasePaymentGateway(ABC):
    """
    Abstract base class for payment gateways.
    All payment gateways must implement these methods.
    """

    gateway_id: str = "base"
    gateway_name: str = "Base Gateway"

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize gateway with configuration.

        Args:
            config: Gateway configuration including API keys, endpoints, etc.
        """
        self.config = config
        self._validate_config()

    @abstractmethod
    def _validate_config(self):
        """Validate required configuration parameters"""
        pass

    @abstractmethod
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
        """
        Create a hosted checkout session for a one-off payment.

        Args:
            amount: Amount to charge in major units (e.g. dollars)
            product_name: Line item name shown on the checkout page
            customer_email: Prefilled payer email
            success_url: Redirect after payment; may contain the provider's session placeholder
            cancel_url: Redirect when the payer abandons checkout
            currency: Currency code, defaults to the gateway's configured currency
            description: Line item description
            image_url: Line item image
            metadata: Key/value pairs echoed back on retrieval

        Returns:
            CheckoutSessionResult with the session id and redirect URL
        """
        pass

    @abstractmethod
    async def retrieve_checkout_session(self, session_id: str) -> CheckoutSession:
        """
        Fetch a checkout session and its payment state.

        Args:
            session_id: Provider's session identifier

        Returns:
            CheckoutSession with payment status and metadata
        """
        pass

    async def close(self):
        """Release network resources held by the gateway"""
        pass

    @staticmethod
    def to_minor_units(amount: float) -> int:
        """Convert a major-unit amount to integer minor units (cents)"""
        return int(round(float(amount) * 100))
