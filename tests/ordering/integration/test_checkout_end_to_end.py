"""End-to-end checkout: client orchestrator against the backend app over ASGI."""

from decimal import Decimal

import httpx
import pytest
from app import create_app
from ordering.cart.store import CartStore
from ordering.checkout.gateway.http_adapter import HttpPaymentFunctions
from ordering.checkout.orchestrator import CheckoutOrchestrator
from ordering.checkout.ports import ExternalBrowser
from ordering.checkout.session import CheckoutStatus
from payments.gateway.fake_adapter import FakeGateway
from payments.orders.order import Order
from payments.settlement import PaymentSettlement
from protean.utils.globals import current_domain

CALLBACK = "betza://payment-callback"


class _PayingBrowser(ExternalBrowser):
    """Completes the hosted page and returns through the callback URL."""

    def __init__(self):
        self.opened = []

    async def open(self, url, return_url):
        self.opened.append(url)
        reference = url.rsplit("/", 1)[-1]
        return f"{return_url}?reference={reference}"


@pytest.fixture()
def gateway():
    return FakeGateway()


@pytest.fixture()
def orders():
    return current_domain.repository_for(Order)


@pytest.fixture()
def backend(gateway, storage):
    return create_app(PaymentSettlement(gateway=gateway, carts=storage, callback_url=CALLBACK))


@pytest.fixture()
def checkout(backend, storage, catalog, notifier, signal, navigator, user):
    functions = HttpPaymentFunctions(
        "http://backend.test",
        api_key="anon-key",
        transport=httpx.ASGITransport(app=backend),
    )
    store = CartStore(storage, catalog, notifier, identity=user)
    return CheckoutOrchestrator(
        cart=store,
        identity=signal,
        payments=functions,
        browser=_PayingBrowser(),
        navigator=navigator,
        notifier=notifier,
        redirect_url=CALLBACK,
    )


class TestCheckoutEndToEnd:
    async def test_successful_payment_creates_order(self, checkout, gateway, orders, storage, navigator, products):
        await checkout.cart.add_or_increment(products["P1"], 2)

        session = await checkout.start()

        assert session.status == CheckoutStatus.SETTLED
        init = gateway.calls_to("initialize_transaction")[0]
        assert init["amount"] == 200000
        assert init["callback_url"] == CALLBACK
        assert init["metadata"]["user_id"] == "user_42"

        order = orders.get(session.order_id)
        assert order.payment_reference == session.external_reference
        assert order.total_amount == Decimal("2000.00")
        assert [(i.product_id, i.quantity, i.price) for i in order.items] == [("P1", 2, 1000.0)]
        assert storage.quantities("user_42") == {}
        assert checkout.cart.is_empty
        assert navigator.current == f"/order/{order.id}"

    async def test_declined_payment_keeps_cart(self, checkout, gateway, orders, storage, notifier, products):
        await checkout.cart.add_or_increment(products["P1"], 2)
        gateway.configure(should_succeed=False, failure_reason="Insufficient funds")

        session = await checkout.start()

        assert session.status == CheckoutStatus.FAILED
        assert session.failure_reason == "Insufficient funds"
        assert orders.settled_count() == 0
        assert storage.quantities("user_42") == {"P1": 2}
        assert checkout.cart.quantity_of("P1") == 2

    async def test_unreachable_provider_fails_initialization(self, checkout, gateway, products):
        await checkout.cart.add_or_increment(products["P1"], 1)
        gateway.configure(should_succeed=True, reachable=False)

        session = await checkout.start()

        assert session.status == CheckoutStatus.FAILED
        assert session.failed_during == CheckoutStatus.PENDING
        assert checkout.browser.opened == []
