"""
Payment Gateway Factory
Creates, caches and closes payment gateway instances
"""
from typing import Dict, Any, Optional, Type

from contesto.services.payment.gateways.base import BasePaymentGateway
from contesto.services.payment.gateways.stripe import StripeGateway


class PaymentGatewayFactory:
    """
    Factory for creating payment gateway instances.
    Instances are cached process-wide and closed on application shutdown.
    """

    DEFAULT_GATEWAY = "stripe"

    # Registry of available gateways
    _gateways: Dict[str, Type[BasePaymentGateway]] = {
        "stripe": StripeGateway,
    }

    # Cached gateway instances
    _instances: Dict[str, BasePaymentGateway] = {}

    @classmethod
    def get_gateway(
        cls,
        gateway_id: str = DEFAULT_GATEWAY,
        config: Optional[Dict[str, Any]] = None
    ) -> BasePaymentGateway:
        """
        Get a payment gateway instance, creating it on first use.

        Raises:
            ValueError: If gateway is not registered or is misconfigured
        """
        if gateway_id not in cls._gateways:
            raise ValueError(f"Unknown payment gateway: {gateway_id}. Available: {list(cls._gateways.keys())}")

        if gateway_id not in cls._instances:
            cls._instances[gateway_id] = cls._gateways[gateway_id](config)

        return cls._instances[gateway_id]

    @classmethod
    def set_gateway(cls, gateway_id: str, instance: BasePaymentGateway):
        """Install a ready-made instance (used at startup and in tests)"""
        cls._instances[gateway_id] = instance

    @classmethod
    async def close_all(cls):
        """Close every cached gateway"""
        for gateway_id, instance in list(cls._instances.items()):
            try:
                await instance.close()
            except Exception as e:
                print(f"[WARN] Failed to close gateway {gateway_id}: {e}")
        cls._instances.clear()


def get_payment_gateway(gateway_id: str = PaymentGatewayFactory.DEFAULT_GATEWAY) -> BasePaymentGateway:
    """Get a payment gateway instance"""
    return PaymentGatewayFactory.get_gateway(gateway_id)
