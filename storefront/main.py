import os
import stripe
import structlog
from fastapi import FastAPI, Request, Header, HTTPException
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront.routes import router
from storefront.database import Base, engine
from storefront.documents import get_document, set_document
from storefront.handlers import customer_path
from storefront.reporting import report_error, setup_logging, user_facing_message
from storefront.stripe_service import to_dict
import storefront.models  # noqa: F401  registers the documents table

setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(title="Storefront Payment Functions")

app.include_router(router)

Base.metadata.create_all(bind=engine)

SYNCED_EVENTS = ("payment_intent.succeeded", "payment_intent.payment_failed")


@app.exception_handler(stripe.StripeError)
async def stripe_error_handler(request: Request, exc: stripe.StripeError):
    endpoint = request.scope.get("endpoint")
    report_error(exc, {"path": request.url.path}, function_name=getattr(endpoint, "__name__", None))
    return JSONResponse(status_code=502, content={"detail": user_facing_message(exc)})


@app.post("/webhook")
async def stripe_webhook(request: Request, stripe_signature: str = Header(None)):
    payload = await request.body()

    try:
        event = stripe.Webhook.construct_event(
            payload,
            stripe_signature,
            os.getenv("STRIPE_WEBHOOK_SECRET")
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        raise HTTPException(status_code=400, detail="Invalid signature")

    if event["type"] in SYNCED_EVENTS:
        # Document writes run triggers that call Stripe; keep them off the event loop
        await run_in_threadpool(sync_payment, event)

    return {"ok": True}


def sync_payment(event):
    """Overwrite the payment document named in the intent's metadata."""
    intent = to_dict(event["data"]["object"])
    metadata = intent.get("metadata") or {}
    user_id, push_id = metadata.get("user_id"), metadata.get("push_id")
    path = f"{customer_path(user_id)}/payments/{push_id}"
    if user_id and push_id and get_document(path) is not None:
        set_document(path, intent)
        logger.info("payment_synced", path=path, event_type=event["type"], status=intent.get("status"))
    else:
        logger.info("webhook_payment_unknown", intent_id=intent.get("id"), event_type=event["type"])
