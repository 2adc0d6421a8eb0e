"""Payment verification — settle a returned reference into an order.

Flow:
    1. Already settled? → return the existing order (retries are safe)
    2. Verify the reference with the gateway
    3a. status != success → SettlementError(gateway_response)
    3b. success → place the order and its items, clear the user's cart

Steps run under a per-reference lock, so two concurrent verifications of
the same reference create one order and verify with the gateway once.
Orders are read and written through the payments domain, which must be
the active domain context.
"""

import json

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from payments.gateway.port import PaymentGateway
from payments.orders.order import Order, parse_cart_items
from payments.orders.placement import PlaceOrder
from payments.utils.logging import logger
from shared.errors import GatewayError, SettlementError
from shared.locks import KeyedLocks
from shared.money import from_minor_units
from shared.persistence import CartStorage, StorageError


class PaymentVerifier:
    def __init__(self, gateway: PaymentGateway, carts: CartStorage) -> None:
        self.gateway = gateway
        self.carts = carts
        self._locks = KeyedLocks()

    async def verify(self, reference: str) -> Order:
        if not reference:
            raise SettlementError("Payment reference is required.")

        async with self._locks.hold(reference):
            repo = current_domain.repository_for(Order)
            existing = repo.find_by_reference(reference)
            if existing is not None:
                logger.info("Payment already settled", reference=reference, order_id=str(existing.id))
                return existing

            try:
                verification = await self.gateway.verify_transaction(reference)
            except GatewayError as exc:
                raise SettlementError(str(exc)) from exc

            if not verification.succeeded:
                logger.warning(
                    "Payment not successful",
                    reference=reference,
                    status=verification.status,
                    gateway_response=verification.gateway_response,
                )
                raise SettlementError(verification.gateway_response or "Payment verification failed.")

            user_id = verification.metadata.get("user_id")
            if not user_id:
                raise SettlementError("Transaction metadata has no user_id")

            try:
                items = parse_cart_items(verification.metadata.get("cart_items") or [])
                order_id = current_domain.process(
                    PlaceOrder(
                        user_id=str(user_id),
                        payment_reference=reference,
                        total=float(from_minor_units(verification.amount)),
                        items=json.dumps(items),
                    ),
                    asynchronous=False,
                )
            except ValidationError as exc:
                raise SettlementError(f"Transaction metadata has malformed cart items: {exc.messages}") from exc
            except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
                raise SettlementError(f"Transaction metadata has malformed cart items: {exc}") from exc

            order = repo.get(order_id)
            logger.info(
                "Order created",
                order_id=order_id,
                user_id=order.user_id,
                reference=reference,
                total=str(order.total_amount),
                item_count=len(order.items),
            )

            try:
                await self.carts.delete_all(str(user_id))
            except StorageError as exc:
                # The order stands; the client clears its cart on success as well
                logger.warning("Failed to clear cart after settlement", user_id=user_id, error=str(exc))

            return order
