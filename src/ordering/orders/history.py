"""Order history — the signed-in user's settled orders, newest first."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from ordering.utils.logging import logger
from shared.identity import IdentitySignal
from shared.rest import RestClient


class OrderItemSummary(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    product_id: str
    name: str = ""
    quantity: int
    price: Decimal


class OrderSummary(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    order_id: str
    created_at: datetime
    total: Decimal
    status: str = "paid"
    items: tuple[OrderItemSummary, ...] = ()


# ---------------------------------------------------------------------------
# Reader port and adapters
# ---------------------------------------------------------------------------
class OrderReader(ABC):
    @abstractmethod
    async def orders_for(self, user_id: str) -> list[OrderSummary]:
        """Orders of ``user_id``, newest first."""
        ...


class RestOrderReader(OrderReader):
    table = "orders"

    def __init__(self, client: RestClient) -> None:
        self.client = client

    async def orders_for(self, user_id: str) -> list[OrderSummary]:
        rows = await self.client.request(
            "GET",
            self.table,
            params={
                "select": "id,created_at,total,status,order_items(product_id,quantity,price,products(name))",
                "user_id": f"eq.{user_id}",
                "order": "created_at.desc",
            },
        )
        summaries = []
        for row in rows or []:
            items = tuple(
                OrderItemSummary(
                    product_id=item["product_id"],
                    name=(item.get("products") or {}).get("name", ""),
                    quantity=int(item["quantity"]),
                    price=str(item.get("price", 0)),
                )
                for item in row.get("order_items") or []
            )
            summaries.append(
                OrderSummary(
                    order_id=row["id"],
                    created_at=row["created_at"],
                    total=str(row.get("total", 0)),
                    status=row.get("status") or "paid",
                    items=items,
                )
            )
        return summaries


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------
class OrderHistory:
    def __init__(self, reader: OrderReader, identity: IdentitySignal) -> None:
        self.reader = reader
        self.identity = identity

    async def list_orders(self) -> list[OrderSummary]:
        current = self.identity.current
        if not current.is_authenticated:
            return []
        orders = await self.reader.orders_for(current.user_id)
        logger.debug("Loaded order history", user_id=current.user_id, count=len(orders))
        return orders
