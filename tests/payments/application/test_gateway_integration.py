"""Tests for gateway port/adapter integration."""

import pytest
from payments.gateway import build_gateway, get_gateway, reset_gateway, set_gateway
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.paystack_adapter import PaystackGateway
from payments.gateway.port import TransactionInit, TransactionVerification
from shared.config import Settings
from shared.errors import GatewayError


async def _initialize(gateway, amount=200000):
    return await gateway.initialize_transaction(
        amount=amount,
        email="ada@example.com",
        callback_url="betza://payment-callback",
        metadata={"user_id": "user_42", "cart_items": []},
    )


class TestFakeGateway:
    async def test_initialize_returns_authorization_url(self):
        gateway = FakeGateway()
        result = await _initialize(gateway)
        assert isinstance(result, TransactionInit)
        assert result.reference.startswith("fake_ref_")
        assert result.authorization_url == f"https://checkout.fake/{result.reference}"

    async def test_verify_known_transaction_succeeds(self):
        gateway = FakeGateway()
        init = await _initialize(gateway)

        result = await gateway.verify_transaction(init.reference)

        assert isinstance(result, TransactionVerification)
        assert result.succeeded
        assert result.amount == 200000
        assert result.metadata["user_id"] == "user_42"

    async def test_configured_verification_fails(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Insufficient funds")
        init = await _initialize(gateway)

        result = await gateway.verify_transaction(init.reference)

        assert not result.succeeded
        assert result.gateway_response == "Insufficient funds"

    async def test_unknown_reference_fails(self):
        result = await FakeGateway().verify_transaction("nope")
        assert result.status == "failed"
        assert result.gateway_response == "Transaction not found"

    async def test_unreachable_gateway_raises(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=True, reachable=False)
        with pytest.raises(GatewayError):
            await _initialize(gateway)

    async def test_call_logging(self):
        gateway = FakeGateway()
        init = await _initialize(gateway, amount=1050)
        await gateway.verify_transaction(init.reference)
        assert [c["method"] for c in gateway.calls] == ["initialize_transaction", "verify_transaction"]
        assert gateway.calls[0]["amount"] == 1050


class TestGatewayFactory:
    def test_get_gateway_returns_fake_by_default(self):
        reset_gateway()
        gateway = get_gateway()
        assert isinstance(gateway, FakeGateway)

    def test_set_gateway_overrides(self):
        custom = FakeGateway()
        custom.configure(should_succeed=False)
        set_gateway(custom)
        gateway = get_gateway()
        assert gateway.should_succeed is False
        reset_gateway()

    def test_reset_gateway(self):
        custom = FakeGateway()
        custom.configure(should_succeed=False)
        set_gateway(custom)
        reset_gateway()
        gateway = get_gateway()
        assert gateway.should_succeed is True

    def test_build_gateway_with_secret_key(self):
        gateway = build_gateway(Settings(paystack_secret_key="sk_test_123", currency="GHS"))
        assert isinstance(gateway, PaystackGateway)
        assert gateway.secret_key == "sk_test_123"
        assert gateway.currency == "GHS"

    def test_build_gateway_without_secret_key(self):
        assert isinstance(build_gateway(Settings()), FakeGateway)
