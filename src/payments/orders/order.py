"""Order aggregate — the record of one settled payment.

An order is written once per verified payment reference and never changes
afterwards from this engine's point of view. It maps onto the hosted
``orders`` and ``order_items`` tables the storefront reads its order
history from.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from payments.domain import payments
from shared.money import TWO_PLACES, to_decimal


class OrderStatus(Enum):
    PAID = "paid"


def parse_cart_items(cart_items) -> list[dict]:
    """Normalize ``metadata.cart_items`` into order item fields.

    Raises KeyError, TypeError, ValueError or ArithmeticError for entries
    that are not ``{product_id, quantity, price}`` mappings.
    """
    return [
        {
            "product_id": str(item["product_id"]),
            "quantity": int(item["quantity"]),
            "price": float(to_decimal(item.get("price", 0))),
        }
        for item in cart_items
    ]


@payments.entity(part_of="Order", schema_name="order_items")
class OrderItem:
    """A product bought in the order, priced as it was at checkout."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price = Float(default=0.0, min_value=0.0)


@payments.aggregate(schema_name="orders")
class Order:
    user_id = Identifier(required=True)
    total = Float(required=True, min_value=0.0)
    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.PAID.value,
    )
    payment_reference = String(required=True, max_length=255)
    items = HasMany(OrderItem)
    created_at = DateTime()

    @classmethod
    def create(cls, user_id: str, total: Decimal, payment_reference: str, items_data: list[dict]) -> "Order":
        order = cls(
            user_id=str(user_id),
            total=float(total),
            payment_reference=payment_reference,
            created_at=datetime.now(UTC),
        )
        for data in items_data:
            order.add_items(OrderItem(**data))
        return order

    @property
    def total_amount(self) -> Decimal:
        """The total as a two-place major-unit Decimal."""
        return to_decimal(self.total).quantize(TWO_PLACES)
