"""Checkout session — one attempt to pay for a snapshot of the cart.

State Machine:
    PENDING → AWAITING_CALLBACK → VERIFYING → SETTLED
    PENDING / AWAITING_CALLBACK / VERIFYING → FAILED

SETTLED and FAILED are terminal; a new attempt starts a new session.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from ordering.cart.lines import CartLine
from shared.errors import InvalidTransitionError


class CheckoutStatus(Enum):
    PENDING = "Pending"
    AWAITING_CALLBACK = "AwaitingCallback"
    VERIFYING = "Verifying"
    SETTLED = "Settled"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    CheckoutStatus.PENDING: {CheckoutStatus.AWAITING_CALLBACK, CheckoutStatus.FAILED},
    CheckoutStatus.AWAITING_CALLBACK: {CheckoutStatus.VERIFYING, CheckoutStatus.FAILED},
    CheckoutStatus.VERIFYING: {CheckoutStatus.SETTLED, CheckoutStatus.FAILED},
    CheckoutStatus.SETTLED: set(),  # Terminal
    CheckoutStatus.FAILED: set(),  # Terminal
}

TERMINAL_STATUSES = frozenset({CheckoutStatus.SETTLED, CheckoutStatus.FAILED})


@dataclass
class CheckoutSession:
    user_id: str
    payer_email: str | None
    cart_snapshot: tuple[CartLine, ...]
    amount: Decimal
    session_id: str = field(default_factory=lambda: f"chk_{uuid4().hex[:12]}")
    external_reference: str | None = None
    status: CheckoutStatus = CheckoutStatus.PENDING
    order_id: str | None = None
    failure_reason: str | None = None
    failed_during: CheckoutStatus | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def begin(cls, user_id: str, payer_email: str | None, lines) -> "CheckoutSession":
        """Start a session over a private copy of ``lines``."""
        snapshot = tuple(line.model_copy(deep=True) for line in lines)
        amount = sum((line.line_total for line in snapshot), Decimal("0"))
        return cls(user_id=user_id, payer_email=payer_email, cart_snapshot=snapshot, amount=amount)

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _transition(self, target: CheckoutStatus) -> None:
        if target not in _VALID_TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"Cannot transition from {self.status.value} to {target.value}")
        self.status = target
        if target in TERMINAL_STATUSES:
            self.completed_at = datetime.now(UTC)

    def await_callback(self, reference: str | None) -> None:
        self._transition(CheckoutStatus.AWAITING_CALLBACK)
        self.external_reference = reference

    def begin_verification(self, reference: str) -> None:
        self._transition(CheckoutStatus.VERIFYING)
        self.external_reference = reference

    def settle(self, order_id: str) -> None:
        self._transition(CheckoutStatus.SETTLED)
        self.order_id = order_id

    def fail(self, reason: str) -> None:
        failed_during = self.status
        self._transition(CheckoutStatus.FAILED)
        self.failed_during = failed_during
        self.failure_reason = reason

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def cart_items(self) -> list[dict]:
        """Line items in the shape the payment metadata carries."""
        return [
            {"product_id": line.product_id, "quantity": line.quantity, "price": str(line.price)}
            for line in self.cart_snapshot
        ]
