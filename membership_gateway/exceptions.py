class GatewayError(Exception):
    """Base error for everything raised by the payment gateway core."""


class ConfigurationError(GatewayError):
    """Gateway credentials are missing, so the gateway is not ready."""


class TransportError(GatewayError):
    """Network failure, non-2xx answer or malformed body from the provider."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(GatewayError):
    """A verification check rejected the provider's claimed outcome."""


class RequestError(GatewayError):
    """Malformed webhook request: missing parameters, bad payload, unknown channel."""


class OrderNotFoundError(RequestError):
    pass
