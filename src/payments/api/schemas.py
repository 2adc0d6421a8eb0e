"""Pydantic request/response schemas for the payment backend functions.

These are the external contracts the mobile client calls; amounts are in
decimal major units.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    product_id: str
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)


class PaymentMetadataSchema(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    user_id: str
    cart_items: list[CartItemSchema] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class InitializePaymentRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    email: str = Field(min_length=3)
    metadata: PaymentMetadataSchema
    redirect_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "amount": "2000",
                    "email": "ada@example.com",
                    "metadata": {
                        "user_id": "user_42",
                        "cart_items": [{"product_id": "P1", "quantity": 2, "price": "1000"}],
                    },
                    "redirect_url": "betza://payment-callback",
                }
            ]
        }
    }


class VerifyPaymentRequest(BaseModel):
    reference: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class InitializePaymentResponse(BaseModel):
    authorization_url: str
    access_code: str | None = None
    reference: str


class VerifyPaymentResponse(BaseModel):
    order_id: str


class ErrorResponse(BaseModel):
    error: str
