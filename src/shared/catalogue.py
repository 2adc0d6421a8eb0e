"""Product catalogue lookup port — read-only product snapshots by id."""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from shared.persistence import StorageError


class ProductSnapshot(BaseModel):
    """Price, name and image of a product at the time it was looked up."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    product_id: str = Field(min_length=1)
    name: str
    price: Decimal = Field(ge=0)
    image_ref: str | None = None


class ProductCatalog(ABC):
    """Abstract product lookup."""

    @abstractmethod
    async def get_products(self, product_ids: Iterable[str]) -> dict[str, ProductSnapshot]:
        """Resolve ids to snapshots. Unknown ids are absent from the result."""
        ...


class InMemoryProductCatalog(ProductCatalog):
    """Catalogue backed by a dict, for tests and offline development."""

    def __init__(self, products: Iterable[ProductSnapshot] = ()) -> None:
        self.products: dict[str, ProductSnapshot] = {p.product_id: p for p in products}
        self.lookups: list[list[str]] = []
        self.fail_lookups = False

    def add(self, product: ProductSnapshot) -> None:
        self.products[product.product_id] = product

    async def get_products(self, product_ids: Iterable[str]) -> dict[str, ProductSnapshot]:
        ids = [str(pid) for pid in product_ids]
        self.lookups.append(ids)
        if self.fail_lookups:
            raise StorageError("Product catalogue is unavailable")
        return {pid: self.products[pid] for pid in ids if pid in self.products}
