import structlog

from membership_gateway.client import UddoktaPayClient
from membership_gateway.config import GatewaySettings
from membership_gateway.exceptions import ConfigurationError
from membership_gateway.models import Order, PENDING, generate_order_code
from membership_gateway.preparer import prepare_payment
from membership_gateway.repository import OrderRepository

logger = structlog.get_logger(__name__)

PAYMENT_TYPE = "UddoktaPay"


class CheckoutService:
    def __init__(self, *, client: UddoktaPayClient, settings: GatewaySettings):
        self.client = client
        self.settings = settings

    def start_payment(self, repo: OrderRepository, order: Order) -> str:
        """Persist the order as pending and return the provider's hosted payment page."""
        if not self.settings.is_ready():
            raise ConfigurationError("UddoktaPay gateway is not configured")

        if not order.code:
            order.code = generate_order_code()
        order.payment_type = PAYMENT_TYPE
        order.status = PENDING
        repo.save(order)

        intent = prepare_payment(order, self.settings)
        checkout = self.client.create_payment(intent)
        logger.info("payment_created", order_id=order.id, order_code=order.code)
        return checkout.payment_url
