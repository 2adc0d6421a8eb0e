"""Cart backings — where the active cart's lines actually live.

``LocalCartBacking`` keeps an anonymous cart in process memory.
``RemoteCartBacking`` reads and writes the signed-in user's rows in persisted
storage and joins product details from the catalogue on load. Both expose
the same small read/write surface so ``CartStore`` can run one
read-modify-write algorithm against either.
"""

from abc import ABC, abstractmethod

from ordering.cart.lines import CartLine
from ordering.utils.logging import logger
from shared.catalogue import ProductCatalog, ProductSnapshot
from shared.errors import CartPersistenceError
from shared.identity import Identity
from shared.persistence import CartStorage, StorageError


class CartBacking(ABC):
    """Abstract cart backing for one identity."""

    def __init__(self, identity: Identity) -> None:
        self.identity = identity

    @property
    def is_remote(self) -> bool:
        return False

    @abstractmethod
    async def load(self) -> list[CartLine]:
        """Return every line of the cart."""
        ...

    @abstractmethod
    async def current_quantity(self, product_id: str) -> int:
        """Quantity currently stored for a product, 0 when absent."""
        ...

    @abstractmethod
    async def put(self, product_id: str, quantity: int, product: ProductSnapshot | None = None) -> None:
        """Store ``quantity`` (>= 1) for a product.

        ``product`` is needed only when the line does not exist yet.
        """
        ...

    @abstractmethod
    async def delete(self, product_id: str) -> None: ...

    @abstractmethod
    async def delete_all(self) -> None: ...


class LocalCartBacking(CartBacking):
    """In-memory cart of an anonymous session. Lost when the process exits."""

    def __init__(self, identity: Identity) -> None:
        super().__init__(identity)
        self._lines: dict[str, CartLine] = {}

    async def load(self) -> list[CartLine]:
        return list(self._lines.values())

    async def current_quantity(self, product_id: str) -> int:
        line = self._lines.get(product_id)
        return line.quantity if line else 0

    async def put(self, product_id: str, quantity: int, product: ProductSnapshot | None = None) -> None:
        existing = self._lines.get(product_id)
        if existing is not None:
            self._lines[product_id] = existing.with_quantity(quantity)
        elif product is not None:
            self._lines[product_id] = CartLine.from_product(product, quantity)
        else:
            raise ValueError(f"Cannot create a line for {product_id} without a product snapshot")

    async def delete(self, product_id: str) -> None:
        self._lines.pop(product_id, None)

    async def delete_all(self) -> None:
        self._lines.clear()


class RemoteCartBacking(CartBacking):
    """Persisted cart of an authenticated user."""

    def __init__(self, identity: Identity, storage: CartStorage, catalog: ProductCatalog) -> None:
        if not identity.is_authenticated:
            raise ValueError("A remote cart needs an authenticated identity")
        super().__init__(identity)
        self.storage = storage
        self.catalog = catalog

    @property
    def is_remote(self) -> bool:
        return True

    @property
    def user_id(self) -> str:
        return self.identity.user_id

    async def load(self) -> list[CartLine]:
        try:
            rows = await self.storage.select_lines(self.user_id)
            if not rows:
                return []
            products = await self.catalog.get_products([row.product_id for row in rows])
        except StorageError as exc:
            raise CartPersistenceError(f"Failed to fetch cart: {exc}") from exc

        lines = []
        for row in rows:
            product = products.get(row.product_id)
            if product is None:
                logger.warning("Cart row references unknown product", user_id=self.user_id, product_id=row.product_id)
                continue
            if row.quantity < 1:
                logger.warning(
                    "Skipping cart row with non-positive quantity",
                    user_id=self.user_id,
                    product_id=row.product_id,
                    quantity=row.quantity,
                )
                continue
            lines.append(CartLine.from_product(product, row.quantity))
        return lines

    async def current_quantity(self, product_id: str) -> int:
        try:
            row = await self.storage.select_line(self.user_id, product_id)
        except StorageError as exc:
            raise CartPersistenceError(f"Failed to read cart line {product_id}: {exc}") from exc
        return row.quantity if row else 0

    async def put(self, product_id: str, quantity: int, product: ProductSnapshot | None = None) -> None:
        try:
            await self.storage.upsert(self.user_id, product_id, quantity)
        except StorageError as exc:
            raise CartPersistenceError(f"Failed to save cart line {product_id}: {exc}") from exc

    async def delete(self, product_id: str) -> None:
        try:
            await self.storage.delete(self.user_id, product_id)
        except StorageError as exc:
            raise CartPersistenceError(f"Failed to remove cart line {product_id}: {exc}") from exc

    async def delete_all(self) -> None:
        try:
            await self.storage.delete_all(self.user_id)
        except StorageError as exc:
            raise CartPersistenceError(f"Failed to clear cart: {exc}") from exc
