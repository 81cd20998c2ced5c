import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from membership_gateway.auth import verify_token
from membership_gateway.database import SessionLocal
from membership_gateway.exceptions import ConfigurationError, TransportError
from membership_gateway.models import Order, PENDING
from membership_gateway.repository import OrderRepository
from membership_gateway.schemas import OrderRequest, PaymentRequest
from membership_gateway.webhooks import WebhookResult

router = APIRouter()

logger = structlog.get_logger(__name__)


@router.get("/gateway")
def gateway_status(request: Request):
    settings = request.app.state.settings
    return {"ready": settings.is_ready(), "display_name": settings.button_text}


@router.post("/orders", status_code=201)
def create_order(body: OrderRequest, auth=Depends(verify_token)):
    db = SessionLocal()
    try:
        order = OrderRepository(db).add(Order(
            user_id=body.user_id,
            membership_id=body.membership_id,
            subtotal=body.subtotal,
            tax=body.tax,
            payer_name=body.payer_name,
            payer_email=body.payer_email,
            status=PENDING,
        ))
        return {"order_id": order.id, "amount": str(order.amount), "status": order.status}
    finally:
        db.close()


@router.post("/payments")
def create_payment_api(body: PaymentRequest, request: Request, auth=Depends(verify_token)):
    db = SessionLocal()
    try:
        repo = OrderRepository(db)
        order = repo.get(body.order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        if order.is_terminal:
            return {"order_id": order.id, "status": order.status}

        try:
            payment_url = request.app.state.checkout.start_payment(repo, order)
        except ConfigurationError as exc:
            logger.error("checkout_configuration_error", order_id=order.id, error=str(exc))
            raise HTTPException(status_code=503, detail="Gateway Error: payment gateway is not available")
        except TransportError as exc:
            logger.error("checkout_gateway_error", order_id=order.id, error=str(exc))
            raise HTTPException(status_code=502, detail=f"Gateway Error: {exc}")

        return {"order_id": order.id, "code": order.code, "payment_url": payment_url}
    finally:
        db.close()


@router.api_route("/webhook", methods=["GET", "POST"])
async def webhook(request: Request):
    body = await request.body()
    params = dict(request.query_params)

    # verification blocks on the provider, keep it off the event loop
    result = await run_in_threadpool(handle_webhook, request.app.state.webhook_handler, params, body)
    return render_result(result)


def handle_webhook(handler, params, body: bytes) -> WebhookResult:
    db = SessionLocal()
    try:
        return handler.handle(db, params.get("type"), params, body)
    finally:
        db.close()


def render_result(result: WebhookResult):
    if result.kind == "redirect":
        return RedirectResponse(result.location, status_code=result.status_code)
    if result.kind == "ack":
        return JSONResponse(
            {"success": result.success, "data": {"message": result.message}},
            status_code=result.status_code,
        )
    return PlainTextResponse(result.message, status_code=result.status_code)
