"""
Payment event handlers.

Account lifecycle handlers are called by the account endpoints. Document
handlers run when the client writes under ``stripe_customers/{userId}``.
"""
import structlog

from storefront.documents import (
    delete_documents,
    get_document,
    list_documents,
    parent_document,
    set_document,
)
from storefront.reporting import report_error, user_facing_message
from storefront.stripe_service import (
    confirm_payment_intent,
    create_customer,
    create_payment_intent,
    create_setup_intent,
    delete_customer,
    retrieve_payment_method,
)
from storefront.triggers import on_create, on_update

logger = structlog.get_logger(__name__)

CUSTOMERS = "stripe_customers"


def customer_path(user_id: str) -> str:
    return f"{CUSTOMERS}/{user_id}"


def _fail(path: str, error: Exception, user_id: str, function_name: str):
    """Leave the sanitized message on the document and report the raw error."""
    logger.warning("handler_failed", path=path, function_name=function_name, error=str(error))
    set_document(path, {"error": user_facing_message(error)}, merge=True)
    report_error(error, {"user": user_id}, function_name=function_name)


def create_stripe_customer(user: dict) -> dict:
    """
    When a user is created, create a Stripe customer object for them.

    Returns the existing record untouched if the user already has a customer.
    """
    path = customer_path(user["uid"])
    existing = get_document(path)
    if existing and existing.get("customer_id"):
        return existing

    try:
        customer = create_customer(user.get("email"))
        intent = create_setup_intent(customer["id"])
    except Exception as e:
        _fail(path, e, user["uid"], "create_stripe_customer")
        return get_document(path)

    logger.info("customer_created", user=user["uid"], customer_id=customer["id"])
    return set_document(path, {
        "customer_id": customer["id"],
        "setup_secret": intent["client_secret"],
    })


@on_create(CUSTOMERS + "/{userId}/payment_methods/{pushId}")
def add_payment_method_details(snap, context):
    """Replace the client-supplied payment method id with the full object."""
    try:
        payment_method = retrieve_payment_method(snap.data["id"])
        set_document(snap.path, payment_method)
        # Create a new SetupIntent so the customer can add a new method next time.
        intent = create_setup_intent(f"{payment_method['customer']}")
        set_document(
            parent_document(snap.path),
            {"setup_secret": intent["client_secret"]},
            merge=True,
        )
    except Exception as e:
        _fail(snap.path, e, context.params["userId"], context.function_name)


@on_create(CUSTOMERS + "/{userId}/payments/{pushId}")
def create_stripe_payment(snap, context):
    """Charge the customer, keyed by the push id so a retry cannot double charge."""
    user_id = context.params["userId"]
    push_id = context.params["pushId"]
    try:
        customer = (get_document(parent_document(snap.path)) or {}).get("customer_id")
        if not customer:
            raise LookupError(f"no Stripe customer for user {user_id}")

        payment = create_payment_intent(
            amount=snap.data.get("amount"),
            currency=snap.data.get("currency"),
            customer=customer,
            payment_method=snap.data.get("payment_method"),
            idempotency_key=push_id,
            metadata={"user_id": user_id, "push_id": push_id},
        )
        logger.info("payment_created", user=user_id, push_id=push_id, status=payment.get("status"))
        set_document(snap.path, payment)
    except Exception as e:
        _fail(snap.path, e, user_id, context.function_name)


@on_update(CUSTOMERS + "/{userId}/payments/{pushId}")
def confirm_stripe_payment(change, context):
    """Reconfirm a payment once 3D Secure authentication has been performed.

    Only a transition into requires_confirmation confirms; an error written
    back onto the document is terminal.
    """
    after = change.after.data
    if after.get("status") != "requires_confirmation" or after.get("error"):
        return
    if (change.before.data or {}).get("status") == "requires_confirmation":
        return

    try:
        payment = confirm_payment_intent(change.after.data["id"])
        logger.info("payment_confirmed", user=context.params["userId"], status=payment.get("status"))
        set_document(change.after.path, payment)
    except Exception as e:
        _fail(change.after.path, e, context.params["userId"], context.function_name)


def cleanup_user(user: dict):
    """When a user deletes their account, clean up after them."""
    path = customer_path(user["uid"])
    customer = get_document(path)
    if customer and customer.get("customer_id"):
        delete_customer(customer["customer_id"])

    paths = [p for p, _ in list_documents(f"{path}/payment_methods")]
    paths += [p for p, _ in list_documents(f"{path}/payments")]
    paths.append(path)
    delete_documents(paths)
    logger.info("customer_cleaned_up", user=user["uid"], documents=len(paths))
