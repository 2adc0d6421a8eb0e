"""Payment initialization — start a hosted-checkout transaction.

Converts the client's major-unit amount to minor units and asks the gateway
for an authorization URL. The callback URL is sent both as the provider's
``callback_url`` and, as a fallback, inside the metadata.
"""

from payments.api.schemas import InitializePaymentRequest
from payments.gateway.port import PaymentGateway, TransactionInit
from payments.utils.logging import logger
from shared.errors import GatewayError, SettlementError
from shared.money import to_minor_units


async def initialize_payment(
    gateway: PaymentGateway,
    request: InitializePaymentRequest,
    default_callback_url: str,
) -> TransactionInit:
    callback_url = request.redirect_url or default_callback_url
    metadata = {
        **request.metadata.model_dump(mode="json"),
        "custom_redirect_url": callback_url,
    }
    amount = to_minor_units(request.amount)

    try:
        transaction = await gateway.initialize_transaction(
            amount=amount,
            email=request.email,
            callback_url=callback_url,
            metadata=metadata,
        )
    except GatewayError as exc:
        raise SettlementError(str(exc)) from exc

    logger.info(
        "Payment initialized",
        user_id=request.metadata.user_id,
        reference=transaction.reference,
        amount_minor=amount,
    )
    return transaction
