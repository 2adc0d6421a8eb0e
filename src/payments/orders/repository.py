"""Repository for the Order aggregate."""

from payments.domain import payments
from payments.orders.order import Order


@payments.repository(part_of=Order)
class OrderRepository:
    """Standard CRUD plus the lookups settlement needs."""

    def find_by_reference(self, reference: str) -> Order | None:
        """The order settled for a payment reference, if any."""
        return self._dao.query.filter(payment_reference=reference).all().first

    def settled_count(self) -> int:
        return self._dao.query.all().total
