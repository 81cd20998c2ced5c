from contextlib import asynccontextmanager

from fastapi import FastAPI

from membership_gateway.activation import DatabaseMembershipActivator
from membership_gateway.checkout import CheckoutService
from membership_gateway.client import UddoktaPayClient
from membership_gateway.config import load_settings
from membership_gateway.database import Base, engine
from membership_gateway.log import configure_logging
from membership_gateway.routes import router
from membership_gateway.webhooks import WebhookHandler


def create_app(settings=None, client=None, activator=None) -> FastAPI:
    settings = settings or load_settings()
    client = client or UddoktaPayClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.api_client.close()

    app = FastAPI(title="Membership Payment Gateway", lifespan=lifespan)
    app.state.settings = settings
    app.state.api_client = client
    app.state.checkout = CheckoutService(client=client, settings=settings)
    app.state.webhook_handler = WebhookHandler(
        client=client,
        settings=settings,
        activator=activator or DatabaseMembershipActivator(),
    )
    app.include_router(router)
    return app


configure_logging()

Base.metadata.create_all(bind=engine)

app = create_app()
