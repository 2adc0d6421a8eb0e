"""Payment functions factory.

Builds the client used by the checkout orchestrator:
- FakePaymentFunctions when no backend URL is configured (development, tests)
- HttpPaymentFunctions against the hosted backend otherwise
"""

from ordering.checkout.gateway.fake_adapter import FakePaymentFunctions
from ordering.checkout.gateway.http_adapter import HttpPaymentFunctions
from ordering.checkout.gateway.port import PaymentFunctions
from shared.config import Settings


def build_payment_functions(settings: Settings, access_token=None) -> PaymentFunctions:
    """Return the payment functions client for ``settings``."""
    if not settings.backend_url:
        return FakePaymentFunctions()
    return HttpPaymentFunctions(
        base_url=settings.backend_url,
        api_key=settings.api_key,
        timeout=settings.request_timeout,
        access_token=access_token,
    )
