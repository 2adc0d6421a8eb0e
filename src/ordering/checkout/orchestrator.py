"""Checkout orchestrator — drives one payment from cart snapshot to order.

Flow:
    1. start()  → snapshot the cart, initialize the payment, open the
                  provider's page                  (Initiating → AwaitingExternalRedirect)
    2. resume() → the page returned through the redirect URL with a
                  reference; verify it            (→ Verifying)
    3a. verified   → clear the cart, show the order (→ Settled)
    3b. any error  → keep the cart, tell the user   (→ Failed)

``resume`` is the only way back in, so a deep link handler, a push
notification or a polling loop can all deliver the callback.
"""

from enum import Enum

from ordering.cart.store import CartStore
from ordering.checkout.callback import matches_redirect, parse_callback_reference
from ordering.checkout.gateway.port import PaymentFunctions, PaymentInitialization, VerificationResult
from ordering.checkout.ports import BrowserUnavailable, ExternalBrowser, Navigator
from ordering.checkout.session import CheckoutSession, CheckoutStatus
from ordering.utils.logging import logger
from shared.errors import (
    CartPersistenceError,
    PaymentCancelledOrMissingReference,
    PaymentInitializationError,
    PaymentVerificationError,
    StorefrontError,
)
from shared.identity import IdentitySignal
from shared.notifications import NoticeKind, NotificationSink


class CheckoutState(Enum):
    IDLE = "Idle"
    INITIATING = "Initiating"
    AWAITING_EXTERNAL_REDIRECT = "AwaitingExternalRedirect"
    VERIFYING = "Verifying"
    SETTLED = "Settled"
    FAILED = "Failed"


_STATE_FOR_STATUS = {
    CheckoutStatus.PENDING: CheckoutState.INITIATING,
    CheckoutStatus.AWAITING_CALLBACK: CheckoutState.AWAITING_EXTERNAL_REDIRECT,
    CheckoutStatus.VERIFYING: CheckoutState.VERIFYING,
    CheckoutStatus.SETTLED: CheckoutState.SETTLED,
    CheckoutStatus.FAILED: CheckoutState.FAILED,
}


class CheckoutOrchestrator:
    def __init__(
        self,
        cart: CartStore,
        identity: IdentitySignal,
        payments: PaymentFunctions,
        browser: ExternalBrowser,
        navigator: Navigator,
        notifier: NotificationSink,
        redirect_url: str,
        verify_attempts: int = 2,
    ) -> None:
        self.cart = cart
        self.identity = identity
        self.payments = payments
        self.browser = browser
        self.navigator = navigator
        self.notifier = notifier
        self.redirect_url = redirect_url
        self.verify_attempts = max(1, verify_attempts)
        self._active: CheckoutSession | None = None
        self._last: CheckoutSession | None = None

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def active_session(self) -> CheckoutSession | None:
        return self._active

    @property
    def last_session(self) -> CheckoutSession | None:
        """The most recent session, including a finished one."""
        return self._active or self._last

    @property
    def state(self) -> CheckoutState:
        session = self.last_session
        return CheckoutState.IDLE if session is None else _STATE_FOR_STATUS[session.status]

    # -------------------------------------------------------------------
    # Step 1: initiate
    # -------------------------------------------------------------------
    async def start(self) -> CheckoutSession | None:
        """Begin checkout for the current cart.

        Waits for a sign-in merge in flight so the snapshot holds the merged
        lines. Returns None without creating a session when the user must
        sign in first or the cart is empty.
        """
        await self.cart.wait_for_merge()
        identity = self.identity.current
        if not identity.is_authenticated:
            logger.info("Checkout requires sign-in")
            self.navigator.to_sign_in()
            return None

        if self._active is not None:
            self.notifier.info("A checkout is already in progress.")
            return self._active

        lines = self.cart.get_lines()
        if not lines:
            self.notifier.info("Your cart is empty.")
            return None

        session = CheckoutSession.begin(identity.user_id, identity.email, lines)
        self._active = session
        logger.info(
            "Checkout started",
            session_id=session.session_id,
            user_id=session.user_id,
            amount=str(session.amount),
            line_count=len(session.cart_snapshot),
        )

        try:
            if not session.payer_email:
                raise PaymentInitializationError("An email address is required to pay")
            result = await self.payments.initialize(PaymentInitialization.for_session(session, self.redirect_url))
            session.await_callback(result.reference)
            returned_url = await self.browser.open(result.authorization_url, self.redirect_url)
        except BrowserUnavailable as exc:
            self._fail(session, PaymentInitializationError(str(exc)), NoticeKind.ERROR)
            return session
        except PaymentInitializationError as exc:
            self._fail(session, exc, NoticeKind.ERROR)
            return session
        except Exception as exc:
            logger.exception("Unexpected error while initializing payment", session_id=session.session_id)
            self._fail(session, PaymentInitializationError(str(exc)), NoticeKind.ERROR)
            return session

        logger.info("Awaiting payment callback", session_id=session.session_id, reference=session.external_reference)
        if returned_url is not None:
            await self.resume(returned_url)
        return session

    # -------------------------------------------------------------------
    # Step 2: resume from the external page
    # -------------------------------------------------------------------
    async def resume(self, callback_url: str) -> CheckoutSession | None:
        """Continue the checkout awaiting ``callback_url``.

        Returns None when the URL is not a payment callback or no checkout
        is waiting for one.
        """
        session = self._active
        if session is None or session.status != CheckoutStatus.AWAITING_CALLBACK:
            logger.warning("Ignoring payment callback with no checkout awaiting it", url=callback_url)
            return None
        if not matches_redirect(callback_url, self.redirect_url):
            logger.warning("Ignoring URL that is not the payment callback", url=callback_url)
            return None

        reference = parse_callback_reference(callback_url)
        if reference is None:
            self._fail(session, PaymentCancelledOrMissingReference(), NoticeKind.INFO)
            return session

        if session.external_reference and reference != session.external_reference:
            logger.warning(
                "Callback reference differs from the initialized one",
                session_id=session.session_id,
                expected=session.external_reference,
                received=reference,
            )

        session.begin_verification(reference)
        try:
            result = await self._verify(reference)
        except PaymentVerificationError as exc:
            self._fail(session, exc, NoticeKind.ERROR)
            return session
        except Exception as exc:
            logger.exception("Unexpected error while verifying payment", session_id=session.session_id)
            self._fail(session, PaymentVerificationError(str(exc)), NoticeKind.ERROR)
            return session

        await self._settle(session, result)
        return session

    async def cancel(self) -> CheckoutSession | None:
        """Abandon a checkout whose payment page was closed without paying."""
        session = self._active
        if session is None or session.status != CheckoutStatus.AWAITING_CALLBACK:
            return None
        self._fail(session, PaymentCancelledOrMissingReference("Payment cancelled"), NoticeKind.INFO)
        return session

    # -------------------------------------------------------------------
    # Step 3: verify and settle
    # -------------------------------------------------------------------
    async def _verify(self, reference: str) -> VerificationResult:
        for attempt in range(1, self.verify_attempts + 1):
            try:
                return await self.payments.verify(reference)
            except PaymentVerificationError as exc:
                if not exc.retryable or attempt == self.verify_attempts:
                    raise
                logger.warning(
                    "Payment verification attempt failed; retrying",
                    reference=reference,
                    attempt=attempt,
                    error=str(exc),
                )
        raise PaymentVerificationError("Payment verification was not attempted")

    async def _settle(self, session: CheckoutSession, result: VerificationResult) -> None:
        session.settle(result.order_id)
        self._finish(session)
        logger.info(
            "Checkout settled",
            session_id=session.session_id,
            reference=session.external_reference,
            order_id=result.order_id,
        )

        # The backend already emptied the persisted cart; this brings the
        # local snapshot in line with it.
        try:
            await self.cart.clear(user_initiated=False)
        except CartPersistenceError as exc:
            logger.warning("Failed to clear cart after settlement", order_id=result.order_id, error=str(exc))
            await self.cart.refresh(silent=True)

        self.navigator.to_order(result.order_id)
        self.notifier.success("Payment successful! Your order has been placed.", order_id=result.order_id)

    # -------------------------------------------------------------------
    # Failure
    # -------------------------------------------------------------------
    def _fail(self, session: CheckoutSession, exc: StorefrontError, kind: NoticeKind) -> None:
        stage = session.status
        session.fail(str(exc))
        self._finish(session)
        logger.warning(
            "Checkout failed",
            session_id=session.session_id,
            stage=stage.value,
            reference=session.external_reference,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        if kind == NoticeKind.ERROR:
            self.notifier.error(exc.user_message, reason=str(exc))
        else:
            self.notifier.info(exc.user_message, reason=str(exc))

    def _finish(self, session: CheckoutSession) -> None:
        self._last = session
        if self._active is session:
            self._active = None
