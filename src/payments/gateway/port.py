"""Payment gateway port (abstract interface).

Defines the contract that payment provider adapters must implement. This
enables swapping between FakeGateway (dev/test) and PaystackGateway
(production) without changing the settlement code. Amounts are integer
minor units on this side of the boundary.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TransactionInit:
    """Result of initializing a hosted-checkout transaction."""

    authorization_url: str
    reference: str
    access_code: str | None = None


@dataclass(frozen=True)
class TransactionVerification:
    """What the provider reports about a transaction reference."""

    reference: str
    status: str  # success, failed, abandoned, ...
    amount: int = 0
    metadata: dict = field(default_factory=dict)
    gateway_response: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def initialize_transaction(
        self,
        amount: int,
        email: str,
        callback_url: str,
        metadata: dict,
    ) -> TransactionInit:
        """Create a transaction and return the hosted authorization URL."""
        ...

    @abstractmethod
    async def verify_transaction(self, reference: str) -> TransactionVerification:
        """Look up the outcome of a transaction."""
        ...
