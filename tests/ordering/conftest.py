from decimal import Decimal

import pytest
from ordering.cart.store import CartStore
from ordering.checkout.gateway.fake_adapter import FakePaymentFunctions
from ordering.checkout.orchestrator import CheckoutOrchestrator
from ordering.checkout.ports import FakeBrowser, FakeNavigator
from shared.catalogue import InMemoryProductCatalog, ProductSnapshot
from shared.identity import Identity, IdentitySignal
from shared.notifications import FakeNotificationSink
from shared.persistence import InMemoryCartStorage

REDIRECT_URL = "betza://payment-callback"


def _product(product_id="P1", name=None, price="1000", image_ref=None):
    return ProductSnapshot(
        product_id=product_id,
        name=name or f"Product {product_id}",
        price=Decimal(price),
        image_ref=image_ref,
    )


@pytest.fixture()
def products():
    return {
        "A": _product("A", price="250"),
        "B": _product("B", price="100"),
        "C": _product("C", price="40.50"),
        "P1": _product("P1", price="1000"),
    }


@pytest.fixture()
def catalog(products):
    return InMemoryProductCatalog(products.values())


@pytest.fixture()
def storage():
    return InMemoryCartStorage()


@pytest.fixture()
def notifier():
    return FakeNotificationSink()


@pytest.fixture()
def user():
    return Identity.authenticated("user_42", "ada@example.com")


@pytest.fixture()
def store(storage, catalog, notifier):
    """Anonymous cart store."""
    return CartStore(storage, catalog, notifier)


@pytest.fixture()
def user_store(storage, catalog, notifier, user):
    """Cart store of the signed-in ``user``."""
    return CartStore(storage, catalog, notifier, identity=user)


@pytest.fixture()
def payments():
    return FakePaymentFunctions()


@pytest.fixture()
def browser():
    return FakeBrowser()


@pytest.fixture()
def navigator():
    return FakeNavigator()


@pytest.fixture()
def signal(user):
    return IdentitySignal(user)


@pytest.fixture()
def orchestrator(user_store, signal, payments, browser, navigator, notifier):
    return CheckoutOrchestrator(
        cart=user_store,
        identity=signal,
        payments=payments,
        browser=browser,
        navigator=navigator,
        notifier=notifier,
        redirect_url=REDIRECT_URL,
    )
