"""Paystack payment gateway adapter.

Uses Paystack's hosted checkout:
- POST /transaction/initialize returns an authorization URL and reference
- GET /transaction/verify/{reference} reports the outcome

Both endpoints wrap their payload as ``{"status": bool, "message": str,
"data": {...}}`` and authenticate with the secret key as a bearer token.
"""

import httpx

from payments.gateway.port import PaymentGateway, TransactionInit, TransactionVerification
from payments.utils.logging import logger
from shared.errors import GatewayError


class PaystackGateway(PaymentGateway):
    """Production Paystack gateway adapter."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 10.0,
        currency: str = "NGN",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.currency = currency
        self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        """Get a configured async httpx client."""
        if not self.secret_key:
            raise GatewayError("Paystack secret key is not set.")
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.secret_key}"},
            transport=self._transport,
        )

    @staticmethod
    def _payload(response: httpx.Response) -> dict:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        return payload if isinstance(payload, dict) else {}

    async def initialize_transaction(
        self,
        amount: int,
        email: str,
        callback_url: str,
        metadata: dict,
    ) -> TransactionInit:
        try:
            async with self._get_client() as client:
                response = await client.post(
                    "/transaction/initialize",
                    json={
                        "amount": amount,
                        "currency": self.currency,
                        "email": email,
                        "callback_url": callback_url,
                        "metadata": metadata,
                    },
                )
        except httpx.HTTPError as e:
            logger.error("Paystack initialize request failed", error=str(e))
            raise GatewayError(f"Failed to initialize payment: {e}") from e

        payload = self._payload(response)
        if response.is_error or not payload.get("status"):
            logger.error("Paystack API error", status_code=response.status_code, response=payload)
            raise GatewayError(payload.get("message") or "Failed to initialize payment.")

        data = payload.get("data") or {}
        if not data.get("authorization_url") or not data.get("reference"):
            raise GatewayError("Paystack returned no authorization URL")
        return TransactionInit(
            authorization_url=data["authorization_url"],
            reference=data["reference"],
            access_code=data.get("access_code"),
        )

    async def verify_transaction(self, reference: str) -> TransactionVerification:
        try:
            async with self._get_client() as client:
                response = await client.get(f"/transaction/verify/{reference}")
        except httpx.HTTPError as e:
            logger.error("Paystack verify request failed", reference=reference, error=str(e))
            raise GatewayError(f"Payment verification request failed: {e}") from e

        payload = self._payload(response)
        data = payload.get("data") or {}
        if response.is_error and not data:
            raise GatewayError(payload.get("message") or "Payment verification failed.")

        metadata = data.get("metadata")
        return TransactionVerification(
            reference=data.get("reference") or reference,
            status=data.get("status") or "failed",
            amount=int(data.get("amount") or 0),
            metadata=metadata if isinstance(metadata, dict) else {},
            gateway_response=data.get("gateway_response") or payload.get("message"),
        )
