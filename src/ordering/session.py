"""Storefront session — one application session's cart and checkout wiring.

Owns the identity signal and connects it to the cart store (through the
merge reconciler) and to the checkout orchestrator. ``close()`` drops the
identity subscription so a discarded session stops reacting to sign-ins.
"""

from collections.abc import Callable

from ordering.cart.merge import CartMergeReconciler
from ordering.cart.store import CartStore
from ordering.checkout.gateway import build_payment_functions
from ordering.checkout.gateway.port import PaymentFunctions
from ordering.checkout.orchestrator import CheckoutOrchestrator
from ordering.checkout.ports import ExternalBrowser, Navigator
from ordering.orders.history import OrderHistory, OrderReader, RestOrderReader
from ordering.utils.logging import logger
from shared.catalogue import ProductCatalog
from shared.config import DEFAULT_REDIRECT_URL, Settings
from shared.identity import ANONYMOUS, Identity, IdentitySignal
from shared.notifications import LoggingNotificationSink, NotificationSink
from shared.persistence import CartStorage
from shared.rest import RestCartStorage, RestClient, RestProductCatalog


class StorefrontSession:
    def __init__(
        self,
        storage: CartStorage,
        catalog: ProductCatalog,
        payments: PaymentFunctions,
        browser: ExternalBrowser,
        navigator: Navigator,
        notifier: NotificationSink | None = None,
        order_reader: OrderReader | None = None,
        identity: Identity = ANONYMOUS,
        redirect_url: str = DEFAULT_REDIRECT_URL,
        verify_attempts: int = 2,
    ) -> None:
        self.notifier = notifier or LoggingNotificationSink()
        self.identity = IdentitySignal(identity)
        self.cart = CartStore(storage, catalog, self.notifier, identity=identity)
        self.reconciler = CartMergeReconciler(self.cart, self.notifier)
        self.checkout = CheckoutOrchestrator(
            cart=self.cart,
            identity=self.identity,
            payments=payments,
            browser=browser,
            navigator=navigator,
            notifier=self.notifier,
            redirect_url=redirect_url,
            verify_attempts=verify_attempts,
        )
        self.orders = OrderHistory(order_reader, self.identity) if order_reader is not None else None
        self._unsubscribe: Callable[[], None] | None = self.reconciler.attach(self.identity)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        browser: ExternalBrowser,
        navigator: Navigator,
        notifier: NotificationSink | None = None,
        access_token: Callable[[], str | None] | None = None,
    ) -> "StorefrontSession":
        """Wire a session against the hosted backend ``settings`` point at."""
        client = RestClient(
            base_url=settings.backend_url,
            api_key=settings.api_key,
            timeout=settings.request_timeout,
            access_token=access_token,
        )
        return cls(
            storage=RestCartStorage(client),
            catalog=RestProductCatalog(client),
            payments=build_payment_functions(settings, access_token=access_token),
            browser=browser,
            navigator=navigator,
            notifier=notifier,
            order_reader=RestOrderReader(client),
            redirect_url=settings.payment_redirect_url,
            verify_attempts=settings.verify_attempts,
        )

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    async def start(self) -> None:
        """Load the cart of the identity the session was opened with."""
        await self.cart.refresh(silent=True)

    async def sign_in(self, user_id: str, email: str | None = None) -> None:
        await self.identity.sign_in(user_id, email)

    async def sign_out(self) -> None:
        await self.identity.sign_out()

    async def handle_deep_link(self, url: str):
        """Route an incoming deep link; payment callbacks resume the checkout."""
        return await self.checkout.resume(url)

    def close(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        logger.info("Storefront session closed", user_id=self.identity.current.user_id)
