from decimal import Decimal

import structlog

from membership_gateway.models import Order
from membership_gateway.schemas import VerificationResponse

logger = structlog.get_logger(__name__)

COMPLETED = "COMPLETED"
AMOUNT_TOLERANCE = Decimal("0.01")


def rejection_reason(order: Order, response: VerificationResponse) -> str | None:
    """Return why the provider's record does not match the order, or None if it does.

    Checks run in a fixed order and the first failure wins.
    """
    if response.status != COMPLETED:
        return f"Invalid payment status: {response.status or 'none'}."

    if abs(order.amount - response.amount) > AMOUNT_TOLERANCE:
        return f"Amount mismatch - Order: {order.amount}, Paid: {response.amount}."

    if response.metadata.order_code is None or response.metadata.order_code != order.code:
        return (
            f"Invoice mismatch - Order: {order.code}, "
            f"Verification: {response.metadata.order_code or 'none'}."
        )

    return None


def validate_payment(order: Order, response: VerificationResponse) -> bool:
    reason = rejection_reason(order, response)
    if reason is not None:
        logger.error(
            "payment_validation_failed",
            order_id=order.id,
            invoice_id=response.invoice_id,
            reason=reason,
        )
        return False
    return True
