"""Error taxonomy shared by the cart, checkout and settlement contexts.

Adapters convert raw transport and storage failures into these types at
their boundary, so display code only ever sees a ``StorefrontError`` and its
``user_message``.
"""


class StorefrontError(Exception):
    """Base class for every error the engine surfaces to its callers."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class CartPersistenceError(StorefrontError):
    """A read or write against persisted cart storage failed."""

    user_message = "We couldn't update your cart. Please try again."


class CartRefreshError(CartPersistenceError):
    """A cart write went through but reloading the cart afterwards failed."""

    user_message = "Your cart was updated but couldn't be reloaded. Pull to refresh."


class MergeError(StorefrontError):
    """One or more lines failed to merge into the signed-in cart."""

    user_message = "Some items from your cart couldn't be saved to your account."

    def __init__(self, failed_product_ids: list[str]) -> None:
        self.failed_product_ids = list(failed_product_ids)
        super().__init__(f"Failed to merge products: {', '.join(self.failed_product_ids)}")


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class PaymentInitializationError(StorefrontError):
    """The payment could not be started (no authorization URL)."""

    user_message = "We couldn't start your payment. Please try again."


class PaymentCancelledOrMissingReference(StorefrontError):
    """The payment session returned without a usable reference."""

    user_message = "Payment reference missing. Your payment was not completed."


class PaymentVerificationError(StorefrontError):
    """Verification of a returned payment failed or was declined."""

    user_message = "We couldn't confirm your payment. Your cart has been kept."

    def __init__(self, message: str | None = None, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message)


class InvalidTransitionError(StorefrontError):
    """A checkout session was asked to move to a state it cannot reach."""


# ---------------------------------------------------------------------------
# Settlement (backend functions)
# ---------------------------------------------------------------------------
class GatewayError(StorefrontError):
    """The payment provider rejected a call or could not be reached."""


class SettlementError(StorefrontError):
    """A payment could not be settled into an order."""
