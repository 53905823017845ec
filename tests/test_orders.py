import pytest

ADDRESS = {"address": "1 Main St", "city": "Springfield", "postalCode": "12345", "country": "US"}


@pytest.fixture
def scarf(client, admin_headers):
    response = client.post("/api/products", json={"name": "Scarf", "price": 5.5}, headers=admin_headers)
    return response.json()


@pytest.fixture
def order(client, product, scarf, customer_headers):
    body = {
        "orderItems": [{"product": product["id"], "qty": 2}, {"product": scarf["id"], "qty": 1}],
        "shippingAddress": ADDRESS,
    }
    response = client.post("/api/orders", json=body, headers=customer_headers)
    assert response.status_code == 201
    return response.json()


def test_create_order_snapshots_prices(client, order, customer, product):
    assert order["user"] == customer["id"]
    assert order["totalPrice"] == 184.5
    assert order["isPaid"] is False
    assert order["paymentMethod"] == "PayPal"
    assert order["orderItems"][0] == {
        "product": product["id"],
        "name": "Linen Blazer",
        "image": "/images/blazer.jpg",
        "qty": 2,
        "price": 89.5,
    }


def test_order_total_ignores_later_price_change(client, order, product, admin_headers, customer_headers):
    body = {**{k: product[k] for k in ("name", "description", "image", "brand", "category", "countInStock")}, "price": 1}
    assert client.put(f"/api/products/{product['id']}", json=body, headers=admin_headers).status_code == 200

    response = client.get(f"/api/orders/{order['id']}", headers=customer_headers)
    assert response.json()["totalPrice"] == 184.5
    assert response.json()["orderItems"][0]["price"] == 89.5


def test_create_order_without_items(client, customer_headers):
    response = client.post("/api/orders", json={"orderItems": [], "shippingAddress": ADDRESS}, headers=customer_headers)
    assert response.status_code == 400
    assert response.json() == {"message": "No order items"}


def test_create_order_unknown_product(client, customer_headers, db):
    body = {"orderItems": [{"product": "64b7f0c2a1b2c3d4e5f60718", "qty": 1}], "shippingAddress": ADDRESS}
    response = client.post("/api/orders", json=body, headers=customer_headers)
    assert response.status_code == 404
    assert db["order"].count_documents({}) == 0


def test_create_order_requires_token(client, product):
    body = {"orderItems": [{"product": product["id"], "qty": 1}], "shippingAddress": ADDRESS}
    assert client.post("/api/orders", json=body).status_code == 401


def test_my_orders_only_lists_own(client, order, product, admin_headers, customer_headers):
    body = {"orderItems": [{"product": product["id"], "qty": 1}], "shippingAddress": ADDRESS}
    client.post("/api/orders", json=body, headers=admin_headers)

    response = client.get("/api/orders/myorders", headers=customer_headers)
    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [order["id"]]


def test_get_order_forbidden_for_other_user(client, order):
    other = client.post("/api/users", json={"name": "Sam", "email": "sam@closetcater.com", "password": "sam12345"})
    headers = {"Authorization": f"Bearer {other.json()['token']}"}
    response = client.get(f"/api/orders/{order['id']}", headers=headers)
    assert response.status_code == 403
    assert response.json() == {"message": "Not authorized to view this order"}


def test_admin_can_read_any_order(client, order, admin_headers):
    response = client.get(f"/api/orders/{order['id']}", headers=admin_headers)
    assert response.status_code == 200


def test_get_missing_order(client, customer_headers):
    response = client.get("/api/orders/64b7f0c2a1b2c3d4e5f60718", headers=customer_headers)
    assert response.status_code == 404
    assert response.json() == {"message": "Order not found"}


def test_pay_order(client, order, customer_headers):
    payment = {"id": "PAY-1", "status": "COMPLETED", "update_time": "2024-01-01T00:00:00Z", "email_address": "jane@closetcater.com"}
    response = client.put(f"/api/orders/{order['id']}/pay", json=payment, headers=customer_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["isPaid"] is True
    assert data["paidAt"]
    assert data["paymentResult"] == payment


def test_pay_order_twice_overwrites_payment(client, order, customer_headers):
    client.put(f"/api/orders/{order['id']}/pay", json={"id": "PAY-1"}, headers=customer_headers)
    response = client.put(f"/api/orders/{order['id']}/pay", json={"id": "PAY-2"}, headers=customer_headers)
    assert response.status_code == 200
    assert response.json()["paymentResult"]["id"] == "PAY-2"
    assert response.json()["isPaid"] is True


def test_list_all_orders_admin_only(client, order, admin_headers, customer_headers):
    assert client.get("/api/orders", headers=customer_headers).status_code == 403
    response = client.get("/api/orders", headers=admin_headers)
    assert [o["id"] for o in response.json()] == [order["id"]]
