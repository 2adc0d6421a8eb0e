"""Configurable fake payment functions for development and testing.

Simulates the initialize/verify backend functions without network calls.
Verification can be made to time out a number of times before answering,
which exercises the client's retry path.
"""

from uuid import uuid4

from ordering.checkout.gateway.port import (
    InitializationResult,
    PaymentFunctions,
    PaymentInitialization,
    VerificationResult,
)
from shared.errors import PaymentInitializationError, PaymentVerificationError


class FakePaymentFunctions(PaymentFunctions):
    """Configurable fake payment functions."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.configure()

    def configure(
        self,
        initialize_succeeds: bool = True,
        verify_succeeds: bool = True,
        authorization_url: str | None = "https://checkout.example/pay",
        reference: str | None = None,
        order_id: str | None = None,
        failure_reason: str = "Payment declined",
        verify_timeouts: int = 0,
    ) -> None:
        """Configure the fake's behavior at runtime."""
        self.initialize_succeeds = initialize_succeeds
        self.verify_succeeds = verify_succeeds
        self.authorization_url = authorization_url
        self.reference = reference
        self.order_id = order_id
        self.failure_reason = failure_reason
        self.verify_timeouts = verify_timeouts

    async def initialize(self, request: PaymentInitialization) -> InitializationResult:
        self.calls.append({"method": "initialize", "payload": request.to_payload()})

        if not self.initialize_succeeds:
            raise PaymentInitializationError(self.failure_reason)
        if not self.authorization_url:
            raise PaymentInitializationError("No authorization URL returned")

        return InitializationResult(
            authorization_url=self.authorization_url,
            reference=self.reference or f"ref_{uuid4().hex[:10]}",
            access_code=f"ac_{uuid4().hex[:8]}",
        )

    async def verify(self, reference: str) -> VerificationResult:
        self.calls.append({"method": "verify", "reference": reference})

        if self.verify_timeouts > 0:
            self.verify_timeouts -= 1
            raise PaymentVerificationError("Verification timed out", retryable=True)
        if not self.verify_succeeds:
            raise PaymentVerificationError(self.failure_reason)

        return VerificationResult(order_id=self.order_id or f"ord_{uuid4().hex[:10]}")

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]
