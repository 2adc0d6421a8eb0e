"""Persisted cart storage port (the ``user_carts`` table).

Rows are keyed by ``(user_id, product_id)`` and hold only a quantity; product
details are joined from the catalogue when the cart is read. Both the
client-side cart store and the settlement step (which clears the cart after
an order is recorded) talk to storage through this port.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass


class StorageError(Exception):
    """Raised by storage adapters when the backend call fails."""


@dataclass(frozen=True)
class CartRow:
    product_id: str
    quantity: int


class CartStorage(ABC):
    """Abstract persisted cart storage."""

    @abstractmethod
    async def select_lines(self, user_id: str) -> list[CartRow]:
        """SELECT product_id, quantity WHERE user_id = ?"""
        ...

    @abstractmethod
    async def select_line(self, user_id: str, product_id: str) -> CartRow | None:
        """SELECT ... WHERE user_id = ? AND product_id = ?"""
        ...

    @abstractmethod
    async def upsert(self, user_id: str, product_id: str, quantity: int) -> None:
        """UPSERT (user_id, product_id, quantity)."""
        ...

    @abstractmethod
    async def delete(self, user_id: str, product_id: str) -> None:
        """DELETE WHERE user_id = ? AND product_id = ?"""
        ...

    @abstractmethod
    async def delete_all(self, user_id: str) -> None:
        """DELETE WHERE user_id = ?"""
        ...


class InMemoryCartStorage(CartStorage):
    """Configurable in-memory storage for development and testing.

    ``delay`` is awaited at the start of every call, so concurrent callers
    interleave the way they would against a real network backend.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.rows: dict[str, dict[str, int]] = {}
        self.delay = delay
        self.fail_reads = False
        self.fail_writes = False
        self.failing_products: set[str] = set()
        self.calls: list[tuple] = []

    def configure(
        self,
        fail_reads: bool = False,
        fail_writes: bool = False,
        failing_products: set[str] | None = None,
    ) -> None:
        """Configure which calls fail."""
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.failing_products = set(failing_products or ())

    def seed(self, user_id: str, **quantities: int) -> None:
        self.rows.setdefault(user_id, {}).update(quantities)

    def quantities(self, user_id: str) -> dict[str, int]:
        return dict(self.rows.get(user_id, {}))

    async def _enter(self, *call) -> None:
        self.calls.append(call)
        await asyncio.sleep(self.delay)

    def _check_read(self) -> None:
        if self.fail_reads:
            raise StorageError("Cart storage is unavailable")

    def _check_write(self, product_id: str | None = None) -> None:
        if self.fail_writes or (product_id is not None and product_id in self.failing_products):
            raise StorageError(f"Write rejected for product {product_id}")

    async def select_lines(self, user_id: str) -> list[CartRow]:
        await self._enter("select_lines", user_id)
        self._check_read()
        return [CartRow(pid, qty) for pid, qty in self.rows.get(user_id, {}).items()]

    async def select_line(self, user_id: str, product_id: str) -> CartRow | None:
        await self._enter("select_line", user_id, product_id)
        self._check_read()
        quantity = self.rows.get(user_id, {}).get(product_id)
        return None if quantity is None else CartRow(product_id, quantity)

    async def upsert(self, user_id: str, product_id: str, quantity: int) -> None:
        await self._enter("upsert", user_id, product_id, quantity)
        self._check_write(product_id)
        if quantity < 1:
            raise StorageError(f"Refusing to persist quantity {quantity}")
        self.rows.setdefault(user_id, {})[product_id] = quantity

    async def delete(self, user_id: str, product_id: str) -> None:
        await self._enter("delete", user_id, product_id)
        self._check_write(product_id)
        self.rows.get(user_id, {}).pop(product_id, None)

    async def delete_all(self, user_id: str) -> None:
        await self._enter("delete_all", user_id)
        self._check_write()
        self.rows.pop(user_id, None)
