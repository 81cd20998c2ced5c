import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping

import structlog
from sqlalchemy.orm import Session

from membership_gateway.activation import MembershipActivator
from membership_gateway.client import UddoktaPayClient
from membership_gateway.config import GatewaySettings
from membership_gateway.exceptions import (
    ConfigurationError,
    GatewayError,
    OrderNotFoundError,
    RequestError,
    TransportError,
    ValidationError,
)
from membership_gateway.models import FAILED, SUCCESS, Order
from membership_gateway.repository import OrderRepository
from membership_gateway.schemas import VerificationResponse
from membership_gateway.verifier import validate_payment

logger = structlog.get_logger(__name__)

IPN = "ipn"
SUCCESS_CHANNEL = "success"
CANCEL = "cancel"
CHANNELS = (IPN, SUCCESS_CHANNEL, CANCEL)


@dataclass(frozen=True)
class WebhookResult:
    """What the web layer should send back: a redirect, a JSON ack or a plain-text error."""

    kind: str
    status_code: int
    message: str = ""
    location: str | None = None
    success: bool = False

    @classmethod
    def redirect(cls, location: str) -> "WebhookResult":
        return cls(kind="redirect", status_code=303, location=location, success=True)

    @classmethod
    def ack(cls, success: bool, message: str) -> "WebhookResult":
        return cls(kind="ack", status_code=200 if success else 400, message=message, success=success)

    @classmethod
    def error(cls, message: str, status_code: int = 400) -> "WebhookResult":
        return cls(kind="error", status_code=status_code, message=message)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebhookHandler:
    """Reconciles provider callbacks with local orders.

    Every channel re-verifies the payment with the provider before touching
    the order, and terminal transitions go through a compare-and-set so the
    membership is activated at most once per order.
    """

    def __init__(
        self,
        *,
        client: UddoktaPayClient,
        settings: GatewaySettings,
        activator: MembershipActivator,
        clock: Callable[[], datetime] = _utcnow,
        completed_hooks: list[Callable[[Order, VerificationResponse], None]] | None = None,
        failed_hooks: list[Callable[[Order, str], None]] | None = None,
    ):
        self.client = client
        self.settings = settings
        self.activator = activator
        self.clock = clock
        self.completed_hooks = list(completed_hooks or [])
        self.failed_hooks = list(failed_hooks or [])
        self._routes = {
            IPN: self.handle_ipn,
            SUCCESS_CHANNEL: self.handle_success,
            CANCEL: self.handle_cancel,
        }

    def handle(self, db: Session, channel: str | None, params: Mapping[str, str], body: bytes = b"") -> WebhookResult:
        repo = OrderRepository(db)
        try:
            if not channel:
                raise RequestError("Invalid webhook type")
            if channel not in self._routes:
                raise RequestError("Unauthorized access")
            return self._routes[channel](repo, params, body)
        except ValidationError as exc:
            logger.error("webhook_validation_error", channel=channel, error=str(exc))
            return WebhookResult.ack(False, str(exc))
        except ConfigurationError as exc:
            logger.error("webhook_configuration_error", channel=channel, error=str(exc))
            return WebhookResult.error(str(exc), status_code=503)
        except TransportError as exc:
            logger.error("webhook_transport_error", channel=channel, error=str(exc))
            return WebhookResult.error(str(exc), status_code=502)
        except GatewayError as exc:
            logger.error("webhook_request_error", channel=channel, error=str(exc))
            return WebhookResult.error(str(exc))

    def handle_ipn(self, repo: OrderRepository, params: Mapping[str, str], body: bytes) -> WebhookResult:
        if not body or not body.strip():
            raise RequestError("Empty payload")

        logger.debug("ipn_payload", payload=body.decode("utf-8", errors="replace"))

        try:
            data = json.loads(body)
        except ValueError as exc:
            raise RequestError("Invalid JSON payload") from exc
        if not isinstance(data, dict):
            raise RequestError("Invalid JSON payload")

        metadata = data.get("metadata")
        if not isinstance(metadata, dict) or not metadata.get("order_id"):
            raise RequestError("Order ID not found in payload")

        order_id = metadata["order_id"]
        order = repo.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")

        invoice_id = data.get("invoice_id")
        if not invoice_id:
            raise RequestError("Invoice ID not found in payload")

        response = self.client.verify_payment(str(invoice_id))

        if not validate_payment(order, response):
            self.fail_payment(repo, order, "validation_failed")
            raise ValidationError("Payment validation failed")

        if self.complete_payment(repo, order, response):
            return WebhookResult.ack(True, "Payment completed")
        return WebhookResult.ack(order.status == SUCCESS, f"Order already {order.status}")

    def handle_success(self, repo: OrderRepository, params: Mapping[str, str], body: bytes) -> WebhookResult:
        invoice_id = params.get("invoice_id")
        if not invoice_id:
            raise RequestError("Invalid Invoice ID")

        order_id = params.get("order_id")
        if not order_id:
            raise RequestError("Invalid order ID")

        order = repo.get(order_id)
        if order is None:
            raise OrderNotFoundError("Order not found")

        response = self.client.verify_payment(invoice_id)

        if not validate_payment(order, response):
            self.fail_payment(repo, order, "validation_failed")
            return WebhookResult.redirect(self.settings.page_url("account"))

        self.complete_payment(repo, order, response)
        if order.status != SUCCESS:
            return WebhookResult.redirect(self.settings.page_url("account"))
        return WebhookResult.redirect(self.settings.page_url("confirmation", level=order.membership_id))

    def handle_cancel(self, repo: OrderRepository, params: Mapping[str, str], body: bytes) -> WebhookResult:
        order_id = params.get("order_id")
        if order_id:
            order = repo.get(order_id)
            if order is not None:
                self.fail_payment(repo, order, "cancelled")
        return WebhookResult.redirect(self.settings.page_url("levels"))

    def complete_payment(self, repo: OrderRepository, order: Order, response: VerificationResponse) -> bool:
        """Mark the order paid, then activate the membership. Returns False if the order was already terminal."""
        note = "\n".join([
            f"Payment completed via UddoktaPay on {self._timestamp()}.",
            f"Transaction ID: {response.transaction_id}",
            f"Payment Method: {response.payment_method}",
            f"Sender Number: {response.sender_number}",
        ])

        if not repo.transition(order, SUCCESS, note, transaction_id=response.transaction_id or None):
            logger.warning("payment_already_finalized", order_id=order.id, status=order.status)
            return False

        logger.info(
            "payment_completed",
            order_id=order.id,
            transaction_id=response.transaction_id,
            payment_method=response.payment_method,
        )
        self.activator.activate(
            repo.db,
            user_id=order.user_id,
            membership_id=order.membership_id,
            order_id=order.id,
        )
        for hook in self.completed_hooks:
            hook(order, response)
        return True

    def fail_payment(self, repo: OrderRepository, order: Order, reason: str) -> bool:
        note = f"Payment failed via UddoktaPay on {self._timestamp()}.\nReason: {reason}"

        if not repo.transition(order, FAILED, note):
            logger.warning("payment_already_finalized", order_id=order.id, status=order.status, reason=reason)
            return False

        logger.info("payment_failed", order_id=order.id, reason=reason)
        for hook in self.failed_hooks:
            hook(order, reason)
        return True

    def _timestamp(self) -> str:
        return self.clock().strftime("%Y-%m-%d %H:%M:%S %Z").strip()
