"""Tests for CheckoutSession — snapshotting and state machine guards."""

from decimal import Decimal

import pytest
from ordering.cart.lines import CartLine
from ordering.checkout.session import CheckoutSession, CheckoutStatus
from shared.errors import InvalidTransitionError


def _make_lines():
    return [
        CartLine(product_id="P1", name="Kettle", price=Decimal("1000"), quantity=2),
        CartLine(product_id="P2", name="Mug", price=Decimal("3.50"), quantity=1),
    ]


def _make_session():
    return CheckoutSession.begin("user_42", "ada@example.com", _make_lines())


def _session_at(status):
    session = _make_session()
    if status == CheckoutStatus.PENDING:
        return session
    session.await_callback("ref_1")
    if status == CheckoutStatus.AWAITING_CALLBACK:
        return session
    session.begin_verification("ref_1")
    if status == CheckoutStatus.VERIFYING:
        return session
    if status == CheckoutStatus.SETTLED:
        session.settle("ord_9")
        return session
    if status == CheckoutStatus.FAILED:
        session.fail("Declined")
        return session
    raise ValueError(f"Cannot create session at {status}")


class TestBegin:
    def test_amount_is_sum_of_line_totals(self):
        assert _make_session().amount == Decimal("2003.50")

    def test_starts_pending(self):
        session = _make_session()
        assert session.status == CheckoutStatus.PENDING
        assert session.external_reference is None
        assert session.session_id.startswith("chk_")

    def test_snapshot_is_independent_of_source_list(self):
        lines = _make_lines()
        session = CheckoutSession.begin("user_42", "ada@example.com", lines)
        lines.clear()
        assert len(session.cart_snapshot) == 2
        assert isinstance(session.cart_snapshot, tuple)

    def test_cart_items_shape(self):
        assert _make_session().cart_items() == [
            {"product_id": "P1", "quantity": 2, "price": "1000"},
            {"product_id": "P2", "quantity": 1, "price": "3.50"},
        ]


class TestValidTransitions:
    def test_pending_to_awaiting_callback(self):
        session = _session_at(CheckoutStatus.PENDING)
        session.await_callback("ref_1")
        assert session.status == CheckoutStatus.AWAITING_CALLBACK
        assert session.external_reference == "ref_1"

    def test_verifying_to_settled(self):
        session = _session_at(CheckoutStatus.VERIFYING)
        session.settle("ord_9")
        assert session.status == CheckoutStatus.SETTLED
        assert session.order_id == "ord_9"
        assert session.is_terminal
        assert session.completed_at is not None

    @pytest.mark.parametrize(
        "status",
        [CheckoutStatus.PENDING, CheckoutStatus.AWAITING_CALLBACK, CheckoutStatus.VERIFYING],
    )
    def test_any_open_state_can_fail(self, status):
        session = _session_at(status)
        session.fail("Something broke")
        assert session.status == CheckoutStatus.FAILED
        assert session.failed_during == status
        assert session.failure_reason == "Something broke"


class TestInvalidTransitions:
    def test_cannot_settle_before_verification(self):
        session = _session_at(CheckoutStatus.AWAITING_CALLBACK)
        with pytest.raises(InvalidTransitionError):
            session.settle("ord_9")

    def test_cannot_verify_from_pending(self):
        session = _session_at(CheckoutStatus.PENDING)
        with pytest.raises(InvalidTransitionError):
            session.begin_verification("ref_1")

    @pytest.mark.parametrize("status", [CheckoutStatus.SETTLED, CheckoutStatus.FAILED])
    def test_terminal_states_are_final(self, status):
        session = _session_at(status)
        with pytest.raises(InvalidTransitionError):
            session.fail("again")
