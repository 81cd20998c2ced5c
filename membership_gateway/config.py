import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlencode

from dotenv import load_dotenv

# Force-load .env (Windows-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

DEFAULT_DISPLAY_NAME = "Pay with Bangladeshi Methods"
WEBHOOK_ACTION = "uddoktapay-membership-webhook"


@dataclass(frozen=True)
class GatewaySettings:
    display_name: str = ""
    api_key: str = ""
    api_url: str = ""
    timeout: float = 30.0
    site_url: str = "http://localhost:8000"

    def is_ready(self) -> bool:
        """The gateway is usable only once every credential is configured."""
        return bool(self.display_name and self.api_key and self.api_url)

    @property
    def button_text(self) -> str:
        return self.display_name or DEFAULT_DISPLAY_NAME

    @property
    def webhook_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/webhook"

    def page_url(self, page: str, **params) -> str:
        url = f"{self.site_url.rstrip('/')}/{page}"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url


def load_settings() -> GatewaySettings:
    return GatewaySettings(
        display_name=os.getenv("GATEWAY_DISPLAY_NAME", "").strip(),
        api_key=os.getenv("GATEWAY_API_KEY", "").strip(),
        api_url=os.getenv("GATEWAY_API_URL", "").strip(),
        timeout=float(os.getenv("GATEWAY_TIMEOUT", "30")),
        site_url=os.getenv("SITE_URL", "http://localhost:8000").strip(),
    )
