"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- PaystackGateway for production (when PAYSTACK_SECRET_KEY is set)
"""

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.paystack_adapter import PaystackGateway
from payments.gateway.port import PaymentGateway
from shared.config import Settings

_current_gateway: PaymentGateway | None = None


def build_gateway(settings: Settings) -> PaymentGateway:
    """Return the gateway ``settings`` call for."""
    if settings.paystack_secret_key:
        return PaystackGateway(
            secret_key=settings.paystack_secret_key,
            base_url=settings.paystack_base_url,
            timeout=settings.request_timeout,
            currency=settings.currency,
        )
    return FakeGateway()


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
