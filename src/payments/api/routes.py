"""FastAPI endpoints for the payment backend functions.

Both functions answer ``{"error": "..."}`` with status 400 on any failure,
which is the shape the mobile client surfaces to the shopper.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from payments.api.schemas import (
    ErrorResponse,
    InitializePaymentRequest,
    InitializePaymentResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from payments.settlement import get_settlement
from payments.utils.logging import logger
from shared.errors import SettlementError

router = APIRouter(prefix="/functions/v1", tags=["payments"])


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump())


async def _read_json(request: Request) -> dict:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise SettlementError("Request body must be JSON") from exc
    if not isinstance(payload, dict):
        raise SettlementError("Request body must be a JSON object")
    return payload


@router.post("/initialize-payment")
async def initialize_payment(request: Request):
    try:
        body = InitializePaymentRequest.model_validate(await _read_json(request))
        transaction = await get_settlement().initialize(body)
    except ValidationError as exc:
        logger.warning("Rejected initialize-payment request", errors=exc.error_count())
        return _error(f"Invalid request: {exc.errors()[0]['msg']}")
    except SettlementError as exc:
        logger.error("Payment initialization failed", error=str(exc))
        return _error(str(exc))

    response = InitializePaymentResponse(
        authorization_url=transaction.authorization_url,
        access_code=transaction.access_code,
        reference=transaction.reference,
    )
    return JSONResponse(status_code=200, content=response.model_dump())


@router.post("/verify-payment")
async def verify_payment(request: Request):
    try:
        body = VerifyPaymentRequest.model_validate(await _read_json(request))
        order = await get_settlement().verify(body.reference)
    except ValidationError:
        return _error("Payment reference is required.")
    except SettlementError as exc:
        logger.error("Payment verification failed", error=str(exc))
        return _error(str(exc))

    return JSONResponse(status_code=200, content=VerifyPaymentResponse(order_id=str(order.id)).model_dump())
