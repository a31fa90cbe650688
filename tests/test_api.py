import stripe

from storefront.documents import get_document
from storefront.handlers import create_stripe_customer
from tests.conftest import make_token, store_raw

CART = {"items": [{"name": "New camera", "price": 100, "quantity": 1},
                  {"name": "Lens cap", "price": 4.99, "quantity": 2}]}


def seed_account(mocker, uid="user_1"):
    mocker.patch("storefront.handlers.create_customer", return_value={"id": "cus_1"})
    mocker.patch("storefront.handlers.create_setup_intent", return_value={"client_secret": "seti_secret_1"})
    create_stripe_customer({"uid": uid, "email": "shopper@example.com"})


def test_anonymous_checkout(client, mocker):
    create = mocker.patch("storefront.routes.create_checkout_session", return_value={"id": "cs_test_1"})

    response = client.post("/checkout/anonymous", json=CART)

    assert response.status_code == 200
    assert response.json() == {"id": "cs_test_1"}
    line_items = create.call_args.args[0]
    assert line_items[0]["price_data"]["unit_amount"] == 10000
    assert line_items[1]["price_data"]["unit_amount"] == 499
    assert line_items[1]["quantity"] == 2
    assert "customer" not in create.call_args.kwargs


def test_checkout_rejects_empty_cart(client, mocker):
    create = mocker.patch("storefront.routes.create_checkout_session")

    response = client.post("/checkout/anonymous", json={"items": []})

    assert response.status_code == 400
    create.assert_not_called()


def test_user_checkout_attaches_customer(client, mocker, user_headers):
    seed_account(mocker)
    create = mocker.patch("storefront.routes.create_checkout_session", return_value={"id": "cs_test_2"})

    response = client.post("/checkout/user", json=CART, headers=user_headers)

    assert response.status_code == 200
    assert create.call_args.kwargs["customer"] == "cus_1"


def test_user_checkout_requires_token(client):
    response = client.post("/checkout/user", json=CART, headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_create_account(client, mocker, user_headers):
    mocker.patch("storefront.handlers.create_customer", return_value={"id": "cus_1"})
    mocker.patch("storefront.handlers.create_setup_intent", return_value={"client_secret": "seti_secret_1"})

    response = client.post("/account", headers=user_headers)

    assert response.status_code == 200
    assert response.json() == {"customer_id": "cus_1", "setup_secret": "seti_secret_1"}
    assert get_document("stripe_customers/user_1")["customer_id"] == "cus_1"


def test_create_account_processor_failure(client, mocker, user_headers):
    mocker.patch("storefront.handlers.create_customer", side_effect=RuntimeError("down"))
    mocker.patch("storefront.handlers.report_error")

    response = client.post("/account", headers=user_headers)

    assert response.status_code == 502
    assert response.json()["detail"] == "An error occurred, developers have been alerted"


def test_get_account(client, mocker, user_headers):
    seed_account(mocker)
    mocker.patch("storefront.handlers.retrieve_payment_method",
                 return_value={"id": "pm_1", "customer": "cus_1", "card": {"last4": "4242"}})

    client.post("/account/payment_methods", json={"id": "pm_1"}, headers=user_headers)
    response = client.get("/account", headers=user_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["customer_id"] == "cus_1"
    assert body["payments"] == []
    assert body["payment_methods"][0]["card"] == {"last4": "4242"}
    assert body["payment_methods"][0]["push_id"]


def test_get_account_without_customer(client, user_headers):
    assert client.get("/account", headers=user_headers).status_code == 404


def test_create_payment(client, mocker, user_headers):
    seed_account(mocker)
    mocker.patch("storefront.handlers.create_payment_intent",
                 return_value={"id": "pi_1", "status": "succeeded", "amount": 2500})

    response = client.post(
        "/account/payments",
        json={"amount": 2500, "currency": "usd", "payment_method": "pm_1"},
        headers=user_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "pi_1"
    assert body["status"] == "succeeded"
    assert body["push_id"]


def test_create_payment_rejects_bad_amount(client, mocker, user_headers):
    seed_account(mocker)

    response = client.post(
        "/account/payments",
        json={"amount": 0, "payment_method": "pm_1"},
        headers=user_headers,
    )

    assert response.status_code == 422


def test_update_unknown_payment(client, user_headers):
    response = client.put("/account/payments/nope", json={"status": "requires_confirmation"},
                          headers=user_headers)
    assert response.status_code == 404


def test_delete_account(client, mocker, user_headers):
    seed_account(mocker)
    delete = mocker.patch("storefront.handlers.delete_customer")

    response = client.delete("/account", headers=user_headers)

    assert response.status_code == 200
    delete.assert_called_once_with("cus_1")
    assert get_document("stripe_customers/user_1") is None


def test_delete_account_processor_failure(client, mocker, user_headers):
    seed_account(mocker)
    mocker.patch("storefront.handlers.delete_customer",
                 side_effect=stripe.InvalidRequestError(
                     "No such customer: 'cus_1'", "id",
                     json_body={"error": {"type": "invalid_request_error",
                                          "message": "No such customer: 'cus_1'"}}))
    report = mocker.patch("storefront.main.report_error")

    response = client.delete("/account", headers=user_headers)

    assert response.status_code == 502
    assert response.json()["detail"] == "No such customer: 'cus_1'"
    report.assert_called_once()
    # Nothing was deleted, so the cleanup can be retried
    assert get_document("stripe_customers/user_1")["customer_id"] == "cus_1"


def test_refund_requires_admin(client, user_headers):
    response = client.post("/admin/payments/user_1/p1/refund", headers=user_headers)
    assert response.status_code == 403


def test_refund_payment(client, mocker, admin_headers):
    store_raw("stripe_customers/user_1/payments/p1", {"id": "pi_1", "status": "succeeded"})
    refund = mocker.patch("storefront.routes.refund_payment", return_value={"id": "re_1"})

    response = client.post("/admin/payments/user_1/p1/refund", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"status": "refunded"}
    refund.assert_called_once_with("pi_1")
    assert get_document("stripe_customers/user_1/payments/p1")["refund"] == {"id": "re_1"}

    again = client.post("/admin/payments/user_1/p1/refund", headers=admin_headers)
    assert again.json() == {"message": "Nothing to refund"}


def test_resolve_view(client):
    assert client.get("/views/resolve", params={"path": "/product/p1"}).json() == {
        "view": "ViewProduct", "params": {"id": "p1"}, "redirect": None,
    }

    admin = {"Authorization": f"Bearer {make_token(uid='admin_1', role='ADMIN')}"}
    response = client.get("/views/resolve", params={"path": "/account"}, headers=admin)
    assert response.json()["redirect"] == "/admin/dashboard"


def test_untyped_stripe_error_is_not_shown(client, mocker, user_headers):
    seed_account(mocker)
    mocker.patch("storefront.handlers.delete_customer",
                 side_effect=stripe.APIConnectionError("Network error: connection refused"))
    mocker.patch("storefront.main.report_error")

    response = client.delete("/account", headers=user_headers)

    assert response.status_code == 502
    assert response.json()["detail"] == "An error occurred, developers have been alerted"


def test_failed_confirmation_is_recorded_once(client, mocker, user_headers):
    seed_account(mocker)
    store_raw("stripe_customers/user_1/payments/p1", {"id": "pi_1", "status": "requires_action"})
    confirm = mocker.patch("storefront.handlers.confirm_payment_intent",
                           side_effect=stripe.CardError(
                               "Your card was declined.", None, "card_declined",
                               json_body={"error": {"type": "card_error",
                                                    "message": "Your card was declined."}}))
    mocker.patch("storefront.handlers.report_error")

    response = client.put("/account/payments/p1", json={"id": "pi_1", "status": "requires_confirmation"},
                          headers=user_headers)

    assert response.status_code == 200
    assert response.json()["error"] == "Your card was declined."
    assert confirm.call_count == 1
