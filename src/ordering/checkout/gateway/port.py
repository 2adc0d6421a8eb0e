"""Payment functions port (abstract interface).

The client never talks to the payment provider directly. It calls two
backend functions: one to initialize a transaction and get the provider's
hosted authorization URL, one to verify a returned reference and settle it
into an order. Amounts travel in decimal major units; the backend converts
to minor units before calling the provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class PaymentInitialization:
    """Request body of the initialize-payment function."""

    amount: Decimal
    email: str
    user_id: str
    redirect_url: str
    cart_items: list[dict] = field(default_factory=list)

    @classmethod
    def for_session(cls, session, redirect_url: str) -> "PaymentInitialization":
        return cls(
            amount=session.amount,
            email=session.payer_email,
            user_id=session.user_id,
            redirect_url=redirect_url,
            cart_items=session.cart_items(),
        )

    def to_payload(self) -> dict:
        return {
            "amount": str(self.amount),
            "email": self.email,
            "metadata": {"user_id": self.user_id, "cart_items": self.cart_items},
            "redirect_url": self.redirect_url,
        }


@dataclass(frozen=True)
class InitializationResult:
    authorization_url: str
    reference: str | None = None
    access_code: str | None = None


@dataclass(frozen=True)
class VerificationResult:
    order_id: str


class PaymentFunctions(ABC):
    """Abstract client of the payment backend functions."""

    @abstractmethod
    async def initialize(self, request: PaymentInitialization) -> InitializationResult:
        """Start a transaction.

        Raises PaymentInitializationError on any failure, including a
        response without an authorization URL.
        """
        ...

    @abstractmethod
    async def verify(self, reference: str) -> VerificationResult:
        """Verify and settle a transaction. Safe to repeat for one reference.

        Raises PaymentVerificationError; ``retryable`` is set when the
        outcome is unknown (timeout, connection failure).
        """
        ...
