"""Configurable fake payment gateway for development and testing.

This adapter simulates a hosted-checkout provider without any external
calls. Transactions initialized through it are remembered, so verifying
their reference later returns the amount and metadata they were created
with. It can be configured at runtime to succeed or fail.
"""

from uuid import uuid4

from payments.gateway.port import PaymentGateway, TransactionInit, TransactionVerification
from shared.errors import GatewayError


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Declined"
        self.reachable: bool = True
        self.transactions: dict[str, dict] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Declined", reachable: bool = True) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.reachable = reachable

    async def initialize_transaction(
        self,
        amount: int,
        email: str,
        callback_url: str,
        metadata: dict,
    ) -> TransactionInit:
        call = {
            "method": "initialize_transaction",
            "amount": amount,
            "email": email,
            "callback_url": callback_url,
            "metadata": metadata,
        }
        self.calls.append(call)

        if not self.reachable:
            raise GatewayError("Failed to initialize payment.")

        reference = f"fake_ref_{uuid4().hex[:12]}"
        self.transactions[reference] = {"amount": amount, "email": email, "metadata": metadata}
        return TransactionInit(
            authorization_url=f"https://checkout.fake/{reference}",
            reference=reference,
            access_code=f"fake_ac_{uuid4().hex[:8]}",
        )

    async def verify_transaction(self, reference: str) -> TransactionVerification:
        self.calls.append({"method": "verify_transaction", "reference": reference})

        if not self.reachable:
            raise GatewayError("Payment provider unreachable")

        transaction = self.transactions.get(reference)
        if transaction is None:
            return TransactionVerification(reference=reference, status="failed", gateway_response="Transaction not found")
        if not self.should_succeed:
            return TransactionVerification(
                reference=reference,
                status="failed",
                amount=transaction["amount"],
                metadata=transaction["metadata"],
                gateway_response=self.failure_reason,
            )
        return TransactionVerification(
            reference=reference,
            status="success",
            amount=transaction["amount"],
            metadata=transaction["metadata"],
            gateway_response="Approved",
        )

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]
