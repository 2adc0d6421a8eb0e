"""Order placement — command and handler.

Places the order for a verified payment reference. Placing the same
reference again returns the order already on record.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from payments.domain import payments
from payments.orders.order import Order


@payments.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=255)
    total = Float(required=True, min_value=0.0)
    items = Text(required=True)  # JSON: list of {product_id, quantity, price}


@payments.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        repo = current_domain.repository_for(Order)
        existing = repo.find_by_reference(command.payment_reference)
        if existing is not None:
            return str(existing.id)

        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        order = Order.create(
            user_id=command.user_id,
            total=command.total,
            payment_reference=command.payment_reference,
            items_data=items_data,
        )
        repo.add(order)
        return str(order.id)
