"""Tests for the initialize-payment request built from a checkout session."""

from decimal import Decimal

from ordering.cart.lines import CartLine
from ordering.checkout.gateway.port import PaymentInitialization
from ordering.checkout.session import CheckoutSession


class TestPaymentInitialization:
    def test_payload_from_session(self):
        session = CheckoutSession.begin(
            "user_42",
            "ada@example.com",
            [CartLine(product_id="P1", name="Kettle", price=Decimal("1000"), quantity=2)],
        )
        payload = PaymentInitialization.for_session(session, "betza://payment-callback").to_payload()

        assert payload == {
            "amount": "2000",
            "email": "ada@example.com",
            "metadata": {
                "user_id": "user_42",
                "cart_items": [{"product_id": "P1", "quantity": 2, "price": "1000"}],
            },
            "redirect_url": "betza://payment-callback",
        }
