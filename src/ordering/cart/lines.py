"""Cart line value object."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from shared.catalogue import ProductSnapshot


class CartLine(BaseModel):
    """One product in the cart. A line never exists with quantity below 1."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    product_id: str = Field(min_length=1)
    name: str
    price: Decimal = Field(ge=0)
    image_ref: str | None = None
    quantity: int = Field(ge=1)

    @classmethod
    def from_product(cls, product: ProductSnapshot, quantity: int) -> "CartLine":
        return cls(
            product_id=product.product_id,
            name=product.name,
            price=product.price,
            image_ref=product.image_ref,
            quantity=quantity,
        )

    @property
    def product(self) -> ProductSnapshot:
        return ProductSnapshot(
            product_id=self.product_id,
            name=self.name,
            price=self.price,
            image_ref=self.image_ref,
        )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def with_quantity(self, quantity: int) -> "CartLine":
        # model_copy(update=...) skips validation; rebuild so quantity >= 1 holds
        return CartLine(**{**self.model_dump(), "quantity": quantity})
