from fastapi.testclient import TestClient

import database
from main import app
from seed import DEMO_PRODUCTS
from tests.conftest import ADDRESS, login, signup


def _order_payload(**overrides):
    payload = {
        "items": [{"productId": "sample-1", "name": "Naruto Sage Mode", "price": 799, "quantity": 1}],
        "total": 799,
        "address": ADDRESS,
        "paymentMethod": "COD",
    }
    payload.update(overrides)
    return payload


# --------------------- Products ---------------------

def test_products_are_seeded(client):
    resp = client.get("/api/products")
    assert resp.status_code == 200
    names = {p["name"] for p in resp.json()}
    assert names == {p["name"] for p in DEMO_PRODUCTS}


def test_products_without_database(monkeypatch):
    monkeypatch.setattr(database, "db", None)
    resp = TestClient(app).get("/api/products")
    assert resp.status_code == 200
    assert resp.json() == []


def test_single_product(client):
    product = client.get("/api/products").json()[0]
    assert client.get(f"/api/products/{product['id']}").json()["name"] == product["name"]
    missing = client.get("/api/products/not-an-id")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Product not found"}


# --------------------- Auth ---------------------

def test_signup_redirects_to_dashboard(client):
    resp = signup(client)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/dashboard?user=alice"

    session = client.get("/api/check-session").json()
    assert session == {"loggedIn": True, "username": "alice", "isAdmin": False}


def test_duplicate_signup_is_plain_text(client):
    signup(client)
    resp = signup(client, username="other")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert resp.text == "Email already exists"


def test_login_errors_are_plain_text(client):
    signup(TestClient(app))
    resp = login(client, "alice@mail.com", "wrong")
    assert resp.text == "Invalid email or password"
    assert client.get("/api/check-session").json()["loggedIn"] is False


def test_login_and_logout(client):
    signup(TestClient(app))
    resp = login(client, "alice@mail.com", "secret123")
    assert resp.status_code == 302
    assert resp.headers["location"] == "/dashboard?user=alice"
    assert client.get("/api/check-session").json()["loggedIn"] is True

    resp = client.get("/logout", follow_redirects=False)
    assert resp.status_code == 302
    assert client.get("/api/check-session").json() == {"loggedIn": False, "username": None, "isAdmin": False}


def test_dashboard_requires_session(client):
    resp = client.get("/dashboard", follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "/login"


# --------------------- Cart ---------------------

def test_anonymous_cart(client):
    assert client.get("/api/cart").json() == {"items": [], "total": 0}


def test_anonymous_cart_mutations_need_login(client):
    resp = client.post("/api/cart/add", json={"productId": "p1", "name": "Naruto", "price": 799})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Login required"}
    assert client.post("/api/cart/remove", json={"productId": "p1"}).status_code == 401


def test_cart_add_and_remove(user_client):
    item = {"productId": "p1", "name": "Naruto Sage Mode", "price": 799, "image": "naruto.jpg"}
    user_client.post("/api/cart/add", json=item)
    body = user_client.post("/api/cart/add", json=item).json()
    assert body["total"] == 1598
    assert body["items"] == [{
        "productId": "p1",
        "name": "Naruto Sage Mode",
        "price": 799,
        "quantity": 2,
        "image": "naruto.jpg",
        "size": "M",
    }]

    body = user_client.post("/api/cart/remove", json={"productId": "p1"}).json()
    assert body["items"] == [] and body["total"] == 0
    assert user_client.get("/api/cart").json()["total"] == 0


def test_cart_add_without_product_id(user_client):
    resp = user_client.post("/api/cart/add", json={"name": "Naruto", "price": 799})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Product ID required"}


def test_malformed_body_is_bad_request(user_client):
    resp = user_client.post("/api/cart/add", content="not json", headers={"content-type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid request"}


# --------------------- Orders ---------------------

def test_checkout_flow(user_client):
    user_client.post("/api/cart/add", json={"productId": "p1", "name": "Naruto", "price": 799})
    resp = user_client.post("/api/orders", json=_order_payload(total=1000))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True

    assert user_client.get("/api/cart").json()["items"] == []
    mine = user_client.get("/api/my-orders").json()
    assert [o["id"] for o in mine] == [body["orderId"]]
    assert mine[0]["total"] == 1000
    assert mine[0]["status"] == "Pending"
    assert mine[0]["items"][0]["productId"] is None
    assert mine[0]["shippingAddress"]["fullName"] == "Asha Rao"


def test_order_validation(user_client):
    resp = user_client.post("/api/orders", json=_order_payload(items=[]))
    assert resp.status_code == 400
    assert resp.json() == {"error": "No items in order"}

    address = {k: v for k, v in ADDRESS.items() if k != "city"}
    resp = user_client.post("/api/orders", json=_order_payload(address=address))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Incomplete address"}
    assert user_client.get("/api/my-orders").json() == []


def test_anonymous_orders(client):
    resp = client.post("/api/orders", json=_order_payload())
    assert resp.status_code == 401
    assert client.get("/api/my-orders").json() == []


# --------------------- Admin ---------------------

def test_admin_routes_need_login(client):
    assert client.get("/api/admin/orders").status_code == 401
    assert client.get("/api/admin/stats").status_code == 401


def test_admin_routes_reject_shoppers(user_client):
    user_client.post("/api/orders", json=_order_payload())
    resp = user_client.get("/api/admin/orders")
    assert resp.status_code == 403
    assert resp.json() == {"error": "Admin only"}
    assert user_client.put("/api/admin/orders/64b7f0c2a1b2c3d4e5f60718", json={"status": "Shipped"}).status_code == 403


def test_admin_manages_orders(user_client, admin_client):
    order_id = user_client.post("/api/orders", json=_order_payload(total=1200)).json()["orderId"]

    assert admin_client.get("/api/check-session").json()["isAdmin"] is True
    listed = admin_client.get("/api/admin/orders").json()
    assert [o["id"] for o in listed] == [order_id]
    assert listed[0]["user"] == {"username": "alice", "email": "alice@mail.com"}

    resp = admin_client.put(f"/api/admin/orders/{order_id}", json={"status": "Delivered"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "Delivered"
    assert user_client.get("/api/my-orders").json()[0]["status"] == "Delivered"

    missing = admin_client.put("/api/admin/orders/64b7f0c2a1b2c3d4e5f60718", json={"status": "Delivered"})
    assert missing.status_code == 404
    assert missing.json() == {"error": "Order not found"}

    stats = admin_client.get("/api/admin/stats").json()
    assert stats == {
        "total_orders": 1,
        "total_products": len(DEMO_PRODUCTS),
        "total_users": 2,
        "total_revenue": 1200,
    }


def test_mixed_case_email_login(client):
    assert signup(client, username="bob", email="bob@Example.COM").status_code == 302
    other = TestClient(app)
    resp = login(other, "bob@Example.COM", "secret123")
    assert resp.status_code == 302
    assert resp.headers["location"] == "/dashboard?user=bob"


def test_malformed_order_item_is_bad_request(user_client):
    items = [{"productId": "sample-1", "name": "Naruto", "price": 799, "quantity": 1, "image": 5}]
    resp = user_client.post("/api/orders", json=_order_payload(items=items))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid item"}


def test_session_reads_without_database(monkeypatch):
    monkeypatch.setattr(database, "db", None)
    anon = TestClient(app)
    assert anon.get("/api/my-orders").json() == []
    assert anon.get("/api/check-session").json() == {"loggedIn": False, "username": None, "isAdmin": False}
    assert anon.get("/api/cart").json() == {"items": [], "total": 0}


def test_no_database_health_route(client):
    assert client.get("/test").status_code == 404
