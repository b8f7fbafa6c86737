from datetime import datetime, timezone

import pytest


@pytest.fixture
def admin(user):
    user["is_admin"] = True
    return user


def test_root(client):
    assert client.get("/").json() == {"message": "Storefront API running"}


def test_cart_flow(client, products):
    shirt = products.add(name="Shirt", price=20.0, category="shirts")

    assert client.post("/api/cart", json={"product_id": shirt["id"]}).json() == [
        {"product_id": shirt["id"], "quantity": 1}
    ]
    client.post("/api/cart", json={"product_id": shirt["id"]})

    cart = client.get("/api/cart").json()
    assert len(cart) == 1
    assert cart[0]["name"] == "Shirt"
    assert cart[0]["quantity"] == 2

    response = client.patch(f"/api/cart/{shirt['id']}", json={"quantity": 7})
    assert response.json() == [{"product_id": shirt["id"], "quantity": 7}]

    response = client.request("DELETE", "/api/cart", json={"product_id": shirt["id"]})
    assert response.json() == []


def test_clear_cart_without_body(client):
    client.post("/api/cart", json={"product_id": "a"})
    client.post("/api/cart", json={"product_id": "b"})

    assert client.delete("/api/cart").json() == []


def test_update_quantity_of_missing_item_is_404(client):
    response = client.patch("/api/cart/nothing", json={"quantity": 2})

    assert response.status_code == 404
    assert response.json() == {"message": "Product not found in cart", "error": "nothing"}


def test_negative_quantity_is_400(client):
    client.post("/api/cart", json={"product_id": "a"})

    response = client.patch("/api/cart/a", json={"quantity": -1})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request body"


def test_checkout_rejects_empty_products(client):
    response = client.post("/api/payments/create-checkout-session", json={"products": []})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or empty products array"


def test_checkout_rejects_non_list_products(client):
    response = client.post("/api/payments/create-checkout-session", json={"products": "shirt"})

    assert response.status_code == 400


def test_checkout_round_trip(client, gateway, orders, user):
    response = client.post("/api/payments/create-checkout-session", json={
        "products": [{"_id": "p1", "name": "Shirt", "price": 20, "quantity": 3}],
    })
    assert response.status_code == 200
    session = response.json()
    assert session == {"id": "cs_test_1", "total_amount": 60.0}

    pending = client.post("/api/payments/checkout-success", json={"session_id": session["id"]})
    assert pending.json() == {"success": False, "message": "Payment not completed", "order_id": None}
    assert orders.docs == []

    gateway.mark_paid(session["id"], 6000)
    done = client.post("/api/payments/checkout-success", json={"session_id": session["id"]})

    assert done.json()["success"] is True
    assert done.json()["order_id"] == "order1"
    assert orders.docs[0]["products"] == [{"product": "p1", "quantity": 3, "price": 20.0}]
    assert orders.docs[0]["user"] == user["id"]


def test_coupon_endpoints(client, coupons, user):
    assert client.get("/api/coupons").json() is None

    client.post("/api/payments/create-checkout-session", json={
        "products": [{"id": "p1", "name": "TV", "price": 250, "quantity": 1}],
    })
    coupon = client.get("/api/coupons").json()
    assert coupon["code"].startswith("GIFT")

    valid = client.post("/api/coupons/validate", json={"code": coupon["code"]})
    assert valid.json() == {"message": "Coupon is valid", "code": coupon["code"], "discount_percentage": 10}

    missing = client.post("/api/coupons/validate", json={"code": "NOPE"})
    assert missing.status_code == 404


def test_admin_routes_require_admin(client):
    assert client.get("/api/products").status_code == 403
    assert client.get("/api/analytics").status_code == 403


def test_product_admin(client, admin, products):
    created = client.post("/api/products", json={"name": "Jeans", "price": 49.5, "category": "jeans"})
    assert created.status_code == 201
    product_id = created.json()["id"]

    assert client.patch(f"/api/products/{product_id}").json()["is_featured"] is True
    assert [p["name"] for p in client.get("/api/products/featured").json()] == ["Jeans"]
    assert client.get("/api/products/category/jeans").json()["products"][0]["id"] == product_id
    assert len(client.get("/api/products").json()["products"]) == 1

    assert client.delete(f"/api/products/{product_id}").status_code == 200
    assert client.delete(f"/api/products/{product_id}").status_code == 404


def test_no_featured_products_is_404(client):
    assert client.get("/api/products/featured").status_code == 404


def test_recommendations_are_capped(client, products):
    for i in range(6):
        products.add(name=f"P{i}", price=1.0, category="misc")

    assert len(client.get("/api/products/recommendations").json()) == 4


def test_analytics_endpoint(client, admin, orders):
    orders.add(datetime(2021, 9, 1, 8, tzinfo=timezone.utc), 100)

    response = client.get("/api/analytics", params={"start_date": "2021-09-01", "end_date": "2021-09-02"})

    body = response.json()
    assert body["analytics_data"]["total_sales"] == 1
    assert body["analytics_data"]["total_revenue"] == 100
    assert body["daily_sales_data"] == [
        {"date": "2021-09-01", "sales": 1, "revenue": 100},
        {"date": "2021-09-02", "sales": 0, "revenue": 0},
    ]


def test_analytics_defaults_to_last_week(client, admin):
    body = client.get("/api/analytics").json()

    assert len(body["daily_sales_data"]) == 8
