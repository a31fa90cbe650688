import stripe

from storefront.config import (
    CHECKOUT_CANCEL_URL,
    CHECKOUT_SUCCESS_URL,
    STRIPE_SECRET_KEY,
)

stripe.api_key = STRIPE_SECRET_KEY


def to_dict(obj):
    # StripeObject is not a dict subclass on newer library releases
    return obj.to_dict() if hasattr(obj, "to_dict") else dict(obj)


def create_customer(email: str):
    return to_dict(stripe.Customer.create(email=email))

def create_setup_intent(customer_id: str):
    return to_dict(stripe.SetupIntent.create(customer=customer_id))

def retrieve_payment_method(payment_method_id: str):
    return to_dict(stripe.PaymentMethod.retrieve(payment_method_id))

def create_payment_intent(amount: int, currency: str, customer: str, payment_method: str,
                          idempotency_key: str, metadata: dict = None):
    return to_dict(stripe.PaymentIntent.create(
        amount=amount,
        currency=currency,
        customer=customer,
        payment_method=payment_method,
        off_session=False,
        confirm=True,
        confirmation_method="manual",
        metadata=metadata or {},
        idempotency_key=idempotency_key
    ))

def confirm_payment_intent(payment_intent_id: str):
    return to_dict(stripe.PaymentIntent.confirm(payment_intent_id))

def delete_customer(customer_id: str):
    return to_dict(stripe.Customer.delete(customer_id))

def refund_payment(payment_intent_id: str):
    return to_dict(stripe.Refund.create(payment_intent=payment_intent_id))

def create_checkout_session(line_items: list, customer: str = None):
    params = dict(
        payment_method_types=["card"],
        mode="payment",
        success_url=CHECKOUT_SUCCESS_URL,
        cancel_url=CHECKOUT_CANCEL_URL,
        line_items=line_items,
    )
    if customer:
        params["customer"] = customer
    return to_dict(stripe.checkout.Session.create(**params))
