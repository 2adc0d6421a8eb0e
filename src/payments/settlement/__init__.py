"""Settlement service registry.

Provides get_settlement() / set_settlement() so the API routes resolve the
active gateway and cart storage in one place, and build_settlement() to wire
one from Settings.
"""

from payments.api.schemas import InitializePaymentRequest
from payments.gateway import build_gateway, get_gateway
from payments.gateway.port import PaymentGateway, TransactionInit
from payments.orders.order import Order
from payments.settlement.initialization import initialize_payment
from payments.settlement.verification import PaymentVerifier
from shared.config import DEFAULT_REDIRECT_URL, Settings
from shared.persistence import CartStorage, InMemoryCartStorage
from shared.rest import RestCartStorage, RestClient


class PaymentSettlement:
    """Backend side of checkout: initialize and verify/settle payments."""

    def __init__(
        self,
        gateway: PaymentGateway,
        carts: CartStorage,
        callback_url: str = DEFAULT_REDIRECT_URL,
    ) -> None:
        self.gateway = gateway
        self.carts = carts
        self.callback_url = callback_url
        self._verifier = PaymentVerifier(gateway, carts)

    async def initialize(self, request: InitializePaymentRequest) -> TransactionInit:
        return await initialize_payment(self.gateway, request, self.callback_url)

    async def verify(self, reference: str) -> Order:
        return await self._verifier.verify(reference)


def build_settlement(settings: Settings) -> PaymentSettlement:
    """Wire a settlement service from ``settings``.

    With a service key the settled user's cart is cleared in the hosted
    ``user_carts`` table, the same rows the storefront reads; without one
    carts live in memory.
    """
    if settings.service_key:
        carts = RestCartStorage(
            RestClient(settings.backend_url, api_key=settings.service_key, timeout=settings.request_timeout)
        )
    else:
        carts = InMemoryCartStorage()
    return PaymentSettlement(
        gateway=build_gateway(settings),
        carts=carts,
        callback_url=settings.payment_redirect_url,
    )


_current_settlement: PaymentSettlement | None = None


def get_settlement() -> PaymentSettlement:
    """Return the current settlement service, building an in-memory one by default."""
    global _current_settlement
    if _current_settlement is None:
        _current_settlement = PaymentSettlement(gateway=get_gateway(), carts=InMemoryCartStorage())
    return _current_settlement


def set_settlement(settlement: PaymentSettlement) -> None:
    """Override the active settlement service (useful for tests)."""
    global _current_settlement
    _current_settlement = settlement


def reset_settlement() -> None:
    """Reset to the default settlement service."""
    global _current_settlement
    _current_settlement = None
