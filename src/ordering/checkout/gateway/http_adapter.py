"""HTTP client for the payment backend functions.

Calls ``POST /functions/v1/initialize-payment`` and
``POST /functions/v1/verify-payment`` on the hosted backend. Both answer
with a JSON body; failures carry ``{"error": message}`` and a non-2xx
status.
"""

from collections.abc import Callable

import httpx

from ordering.checkout.gateway.port import (
    InitializationResult,
    PaymentFunctions,
    PaymentInitialization,
    VerificationResult,
)
from ordering.utils.logging import logger
from shared.errors import PaymentInitializationError, PaymentVerificationError

INITIALIZE_PATH = "/functions/v1/initialize-payment"
VERIFY_PATH = "/functions/v1/verify-payment"


def _json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class HttpPaymentFunctions(PaymentFunctions):
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        access_token: Callable[[], str | None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._access_token = access_token
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        token = (self._access_token() if self._access_token else None) or self.api_key
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get a configured async httpx client."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=self._headers(),
            transport=self._transport,
        )

    async def initialize(self, request: PaymentInitialization) -> InitializationResult:
        try:
            async with self._get_client() as client:
                response = await client.post(INITIALIZE_PATH, json=request.to_payload())
        except httpx.HTTPError as e:
            logger.warning("Payment initialization request failed", user_id=request.user_id, error=str(e))
            raise PaymentInitializationError(f"Payment initialization request failed: {e}") from e

        data = _json(response)
        if response.is_error or data.get("error"):
            message = data.get("error") or f"Payment initialization failed with HTTP {response.status_code}"
            raise PaymentInitializationError(message)

        authorization_url = data.get("authorization_url")
        if not authorization_url:
            raise PaymentInitializationError("No authorization URL returned")

        return InitializationResult(
            authorization_url=authorization_url,
            reference=data.get("reference"),
            access_code=data.get("access_code"),
        )

    async def verify(self, reference: str) -> VerificationResult:
        try:
            async with self._get_client() as client:
                response = await client.post(VERIFY_PATH, json={"reference": reference})
        except httpx.HTTPError as e:
            # A transport failure leaves the outcome unknown, so only that is worth retrying
            logger.warning("Payment verification request failed", reference=reference, error=str(e))
            raise PaymentVerificationError(
                f"Payment verification request failed: {e}",
                retryable=isinstance(e, httpx.TransportError),
            ) from e

        data = _json(response)
        if response.is_error or data.get("error"):
            message = data.get("error") or f"Payment verification failed with HTTP {response.status_code}"
            raise PaymentVerificationError(message, retryable=response.status_code >= 500)

        order_id = data.get("order_id")
        if not order_id:
            raise PaymentVerificationError("Verification response carried no order id")
        return VerificationResult(order_id=str(order_id))
