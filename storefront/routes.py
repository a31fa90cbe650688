from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from storefront.auth import get_optional_user, require_admin, verify_token
from storefront.config import CHECKOUT_CURRENCY
from storefront.documents import add_document, get_document, list_documents, set_document
from storefront.handlers import cleanup_user, create_stripe_customer, customer_path
from storefront.stripe_service import create_checkout_session, refund_payment
from storefront.views import resolve_view

router = APIRouter()


class CartItem(BaseModel):
    name: str
    price: float = Field(gt=0)
    quantity: int = Field(default=1, ge=1)


class Cart(BaseModel):
    items: List[CartItem] = []


class PaymentMethodRequest(BaseModel):
    id: str


class PaymentRequest(BaseModel):
    amount: int = Field(gt=0)
    currency: str = CHECKOUT_CURRENCY
    payment_method: str


def _line_items(cart: Cart):
    if not cart.items:
        raise HTTPException(status_code=400, detail="Cart is empty")
    return [
        {
            "quantity": item.quantity,
            "price_data": {
                "currency": CHECKOUT_CURRENCY,
                "unit_amount": int(round(item.price * 100)),  # 100.00 USD -> 10000
                "product_data": {"name": item.name},
            },
        }
        for item in cart.items
    ]


def _push_id(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _require_customer(user_id: str) -> dict:
    customer = get_document(customer_path(user_id))
    if not customer:
        raise HTTPException(status_code=404, detail="No customer record for this account")
    return customer


@router.post("/checkout/user")
def create_stripe_checkout_for_user(cart: Cart, user=Depends(verify_token)):
    line_items = _line_items(cart)
    customer = get_document(customer_path(user["uid"])) or {}
    session = create_checkout_session(line_items, customer=customer.get("customer_id"))
    return {"id": session["id"]}


@router.post("/checkout/anonymous")
def create_anonymous_stripe_checkout(cart: Cart):
    session = create_checkout_session(_line_items(cart))
    return {"id": session["id"]}


@router.post("/account")
def create_account(user=Depends(verify_token)):
    customer = create_stripe_customer(user) or {}
    if customer.get("error"):
        raise HTTPException(status_code=502, detail=customer["error"])
    return {"customer_id": customer["customer_id"], "setup_secret": customer["setup_secret"]}


@router.get("/account")
def get_account(user=Depends(verify_token)):
    path = customer_path(user["uid"])
    customer = _require_customer(user["uid"])
    return {
        **customer,
        "payment_methods": [
            {"push_id": _push_id(p), **data} for p, data in list_documents(f"{path}/payment_methods")
        ],
        "payments": [
            {"push_id": _push_id(p), **data} for p, data in list_documents(f"{path}/payments")
        ],
    }


@router.delete("/account")
def delete_account(user=Depends(verify_token)):
    cleanup_user(user)
    return {"status": "deleted"}


@router.post("/account/payment_methods")
def add_payment_method(request: PaymentMethodRequest, user=Depends(verify_token)):
    _require_customer(user["uid"])
    path = add_document(f"{customer_path(user['uid'])}/payment_methods", {"id": request.id})
    return {"push_id": _push_id(path), **get_document(path)}


@router.post("/account/payments")
def create_payment(request: PaymentRequest, user=Depends(verify_token)):
    _require_customer(user["uid"])
    path = add_document(f"{customer_path(user['uid'])}/payments", {
        "amount": request.amount,
        "currency": request.currency,
        "payment_method": request.payment_method,
    })
    return {"push_id": _push_id(path), **get_document(path)}


@router.put("/account/payments/{push_id}")
def update_payment(push_id: str, payment: dict = Body(...), user=Depends(verify_token)):
    path = f"{customer_path(user['uid'])}/payments/{push_id}"
    if get_document(path) is None:
        raise HTTPException(status_code=404, detail="Payment not found")
    set_document(path, payment)
    return {"push_id": push_id, **get_document(path)}


@router.post("/admin/payments/{user_id}/{push_id}/refund")
def refund(user_id: str, push_id: str, admin=Depends(require_admin)):
    path = f"{customer_path(user_id)}/payments/{push_id}"
    payment = get_document(path)
    if not payment or payment.get("status") != "succeeded" or payment.get("refund"):
        return {"message": "Nothing to refund"}

    refund = refund_payment(payment["id"])
    set_document(path, {"refund": refund}, merge=True)
    return {"status": "refunded"}


@router.get("/views/resolve")
def resolve(path: str, user: Optional[dict] = Depends(get_optional_user)):
    resolution = resolve_view(path, user)
    return {"view": resolution.view, "params": resolution.params, "redirect": resolution.redirect}
