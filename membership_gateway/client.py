from typing import Any

import httpx
import structlog
from pydantic import ValidationError as SchemaError

from membership_gateway.config import GatewaySettings
from membership_gateway.exceptions import ConfigurationError, TransportError
from membership_gateway.schemas import CheckoutResponse, PaymentIntent, VerificationResponse

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "RT-UDDOKTAPAY-API-KEY"
CHECKOUT_PATH = "checkout-v1"
VERIFY_PATH = "verify-payment"


class UddoktaPayClient:
    """Single-attempt HTTP client for the provider's checkout and verification endpoints."""

    def __init__(self, *, api_key: str, api_url: str, timeout: float = 30.0, transport: httpx.BaseTransport | None = None):
        self._api_key = api_key
        self._api_url = api_url.rstrip("/")
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: GatewaySettings, transport: httpx.BaseTransport | None = None) -> "UddoktaPayClient":
        return cls(
            api_key=settings.api_key,
            api_url=settings.api_url,
            timeout=settings.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def create_payment(self, intent: PaymentIntent) -> CheckoutResponse:
        body = self._post(CHECKOUT_PATH, intent.model_dump(mode="json"))
        payment_url = body.get("payment_url")
        if payment_url:
            return CheckoutResponse(payment_url=payment_url)
        raise TransportError(body.get("message") or "Failed to get payment URL from UddoktaPay")

    def verify_payment(self, invoice_id: str) -> VerificationResponse:
        body = self._post(VERIFY_PATH, {"invoice_id": invoice_id})
        try:
            return VerificationResponse.model_validate(body)
        except SchemaError as exc:
            raise TransportError(f"Malformed verification response: {exc.error_count()} invalid field(s)") from exc

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key or not self._api_url:
            raise ConfigurationError("UddoktaPay API credentials are not configured")

        try:
            response = self._client.post(
                f"{self._api_url}/{path}",
                json=payload,
                headers={
                    API_KEY_HEADER: self._api_key,
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("provider_request_failed", path=path, error=str(exc))
            raise TransportError(f"Request to UddoktaPay failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = body.get("message") if isinstance(body, dict) else None
            logger.error("provider_http_error", path=path, status_code=response.status_code, message=message)
            raise TransportError(message or f"UddoktaPay returned HTTP {response.status_code}", response.status_code)

        if not isinstance(body, dict):
            raise TransportError("Invalid JSON response from UddoktaPay", response.status_code)
        return body
