from urllib.parse import urlencode

from membership_gateway.config import GatewaySettings, WEBHOOK_ACTION
from membership_gateway.models import Order
from membership_gateway.schemas import IntentMetadata, PaymentIntent


def callback_url(settings: GatewaySettings, channel: str, order_id: int | None = None) -> str:
    params = {"action": WEBHOOK_ACTION, "type": channel}
    if order_id is not None:
        params["order_id"] = order_id
    return f"{settings.webhook_url}?{urlencode(params)}"


def prepare_payment(order: Order, settings: GatewaySettings) -> PaymentIntent:
    # ipn resolves its order from the payload, never from the URL
    success_url = callback_url(settings, "success", order.id)

    return PaymentIntent(
        full_name=order.payer_name or "",
        email=order.payer_email or "",
        amount=order.amount,
        metadata=IntentMetadata(
            order_id=order.id,
            user_id=order.user_id,
            membership_id=order.membership_id,
            order_code=order.code,
        ),
        return_type="GET",
        redirect_url=success_url,
        cancel_url=callback_url(settings, "cancel", order.id),
        webhook_url=callback_url(settings, "ipn"),
        success_url=success_url,
    )
