# =============================================================================
# tests/test_commerce.py - Catalog, Cart, Checkout, Refund and Review Tests
# =============================================================================
# Run with: pytest tests/test_commerce.py -v
# =============================================================================

import pytest

from tests.conftest import API

ADDRESS = {
    "recipient_name": "Ada Lovelace",
    "phone": "+44 20 7946 0000",
    "line1": "12 St James's Square",
    "city": "London",
    "postal_code": "SW1Y 4JH",
    "country": "GB",
}


@pytest.fixture
def category(client, admin):
    response = client.post(f"{API}/categories", headers=admin.headers, json={
        "name": "Keyboards",
        "slug": "keyboards",
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def make_product(client, category):
    def _make(seller, **data):
        payload = {"name": "Mechanical Keyboard", "price": 20.00, "stock": 5, "category_id": category["id"], **data}
        response = client.post(f"{API}/products", headers=seller.headers, json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def product(make_product, seller):
    return make_product(seller)


def add_to_cart(client, user, product_id, quantity=1):
    return client.post(f"{API}/cart/items", headers=user.headers, json={
        "product_id": product_id,
        "quantity": quantity,
    })


def checkout(client, user, method="standard"):
    return client.post(f"{API}/orders/checkout", headers=user.headers, json={
        "shipping_method": method,
        "shipping_address": ADDRESS,
    })


def set_status(client, user, order_id, new_status, **extra):
    return client.patch(f"{API}/orders/{order_id}/status", headers=user.headers, json={"status": new_status, **extra})


@pytest.fixture
def delivered_order(client, seller, member, product):
    add_to_cart(client, member, product["id"], 2)
    order = checkout(client, member).json()["orders"][0]
    for step in ("processing", "shipped", "delivered"):
        assert set_status(client, seller, order["id"], step).status_code == 200
    return order


class TestCatalog:
    """Categories and products."""

    def test_members_cannot_create_categories(self, client, member):
        response = client.post(f"{API}/categories", headers=member.headers, json={"name": "X", "slug": "x"})

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN_ROLE"

    def test_slug_is_unique(self, client, admin, category):
        response = client.post(f"{API}/categories", headers=admin.headers, json={"name": "Other", "slug": "keyboards"})

        assert response.json()["code"] == "SLUG_TAKEN"

    def test_category_cannot_nest_in_its_descendant(self, client, admin, category):
        child = client.post(f"{API}/categories", headers=admin.headers, json={
            "name": "Switches",
            "slug": "switches",
            "parent_id": category["id"],
        }).json()

        response = client.patch(
            f"{API}/categories/{category['id']}",
            headers=admin.headers,
            json={"parent_id": child["id"]},
        )

        assert response.json()["code"] == "INVALID_PARENT"

    def test_category_in_use_cannot_be_deleted(self, client, admin, category, product):
        response = client.delete(f"{API}/categories/{category['id']}", headers=admin.headers)

        assert response.status_code == 409
        assert response.json()["code"] == "CATEGORY_IN_USE"

    def test_only_sellers_list_products(self, client, member, category):
        response = client.post(f"{API}/products", headers=member.headers, json={
            "name": "Contraband",
            "price": 1,
            "category_id": category["id"],
        })

        assert response.status_code == 403

    def test_price_rounded_to_cents(self, make_product, seller):
        assert make_product(seller, price=19.999)["price"] == 20.0

    def test_inactive_product_visible_only_to_seller(self, client, make_product, seller, member):
        hidden = make_product(seller, is_active=False)

        assert client.get(f"{API}/products/{hidden['id']}", headers=member.headers).status_code == 404
        assert client.get(f"{API}/products/{hidden['id']}", headers=seller.headers).status_code == 200
        assert client.get(f"{API}/products").json()["data"] == []
        assert client.get(f"{API}/products/mine", headers=seller.headers).json()["pagination"]["records"] == 1

    def test_price_filter_and_sort(self, client, make_product, seller):
        make_product(seller, name="Cheap", price=5)
        make_product(seller, name="Mid", price=50)
        make_product(seller, name="Pricey", price=500)

        body = client.get(f"{API}/products", params={
            "min_price": 10,
            "sort": "price",
            "order": "asc",
        }).json()

        assert [p["name"] for p in body["data"]] == ["Mid", "Pricey"]

    def test_other_sellers_cannot_edit(self, client, make_user, product):
        rival = make_user(role="seller")

        response = client.patch(f"{API}/products/{product['id']}", headers=rival.headers, json={"price": 1})

        assert response.json()["code"] == "NOT_PRODUCT_OWNER"

    def test_stock_cannot_go_negative(self, client, seller, product):
        url = f"{API}/products/{product['id']}/stock"

        ok = client.post(url, headers=seller.headers, json={"delta": -2, "reason": "damaged"})
        too_far = client.post(url, headers=seller.headers, json={"delta": -10})

        assert ok.json()["stock"] == 3
        assert too_far.json()["code"] == "INSUFFICIENT_STOCK"


class TestCart:
    """Cart lines and totals."""

    def test_adding_twice_merges_lines(self, client, member, product):
        add_to_cart(client, member, product["id"], 1)
        cart = add_to_cart(client, member, product["id"], 2).json()

        assert len(cart["items"]) == 1
        assert cart["items"][0]["quantity"] == 3
        assert cart["subtotal"] == 60.0

    def test_cannot_exceed_stock(self, client, member, product):
        response = add_to_cart(client, member, product["id"], 6)

        assert response.json()["code"] == "INSUFFICIENT_STOCK"
        assert response.json()["details"]["available"] == 5

    def test_cannot_buy_own_product(self, client, seller, product):
        assert add_to_cart(client, seller, product["id"]).json()["code"] == "OWN_PRODUCT"

    def test_unavailable_line_excluded_from_subtotal(self, client, fake_db, member, product):
        add_to_cart(client, member, product["id"], 2)
        fake_db.set("products", product["id"], is_active=False)

        cart = client.get(f"{API}/cart", headers=member.headers).json()

        assert cart["items"][0]["is_available"] is False
        assert cart["subtotal"] == 0.0

    def test_update_and_remove_line(self, client, member, product):
        line = add_to_cart(client, member, product["id"]).json()["items"][0]

        updated = client.patch(f"{API}/cart/items/{line['id']}", headers=member.headers, json={"quantity": 4}).json()
        removed = client.delete(f"{API}/cart/items/{line['id']}", headers=member.headers).json()

        assert updated["items"][0]["quantity"] == 4
        assert removed["items"] == []


class TestCheckout:
    """Turning the cart into orders."""

    def test_checkout_computes_totals_and_takes_stock(self, client, fake_db, seller, member, product):
        add_to_cart(client, member, product["id"], 2)

        response = checkout(client, member)

        assert response.status_code == 201
        order = response.json()["orders"][0]
        assert order["subtotal"] == 40.0
        assert order["tax_amount"] == 4.0
        assert order["shipping_cost"] == 5.99
        assert order["total_amount"] == 49.99
        assert order["status"] == "payment_confirmed"
        assert order["order_number"].startswith("ORD-")
        assert order["order_number"].endswith("-000001")
        assert fake_db.row("products", id=product["id"])["stock"] == 3
        assert client.get(f"{API}/cart", headers=member.headers).json()["items"] == []
        assert fake_db.row("notifications", user_id=seller.id)["type"] == "order_status"

    def test_one_order_per_seller(self, client, make_user, make_product, seller, member, product):
        other_seller = make_user(role="seller")
        other = make_product(other_seller, name="Keycaps")
        add_to_cart(client, member, product["id"])
        add_to_cart(client, member, other["id"])

        body = checkout(client, member).json()

        assert len(body["orders"]) == 2
        assert len({o["checkout_id"] for o in body["orders"]}) == 1
        assert {o["seller_id"] for o in body["orders"]} == {seller.id, other_seller.id}

    def test_empty_cart(self, client, member):
        assert checkout(client, member).json()["code"] == "EMPTY_CART"

    def test_minimum_total(self, client, make_product, seller, member):
        tiny = make_product(seller, name="Sticker", price=1)
        add_to_cart(client, member, tiny["id"])

        response = checkout(client, member, method="free_shipping")

        assert response.json()["code"] == "ORDER_BELOW_MINIMUM"

    def test_order_snapshot_survives_catalog_edits(self, client, seller, member, product):
        add_to_cart(client, member, product["id"])
        order = checkout(client, member).json()["orders"][0]
        client.patch(f"{API}/products/{product['id']}", headers=seller.headers, json={"name": "Renamed", "price": 99})

        detail = client.get(f"{API}/orders/{order['id']}", headers=member.headers).json()

        assert detail["items"][0]["product_name"] == "Mechanical Keyboard"
        assert detail["items"][0]["unit_price"] == 20.0
        assert [h["new_status"] for h in detail["history"]] == ["payment_confirmed"]


class TestOrderStatus:
    """Status transitions and who may make them."""

    def test_seller_advances_one_step(self, client, seller, member, product):
        add_to_cart(client, member, product["id"])
        order = checkout(client, member).json()["orders"][0]

        skip = set_status(client, seller, order["id"], "shipped")
        cancel = set_status(client, seller, order["id"], "cancelled")
        step = set_status(client, seller, order["id"], "processing")

        assert skip.json()["code"] == "INVALID_TRANSITION"
        assert cancel.json()["code"] == "FORBIDDEN_TRANSITION"
        assert step.json()["status"] == "processing"

    def test_customer_cancel_restores_stock(self, client, fake_db, member, product):
        add_to_cart(client, member, product["id"], 2)
        order = checkout(client, member).json()["orders"][0]

        response = set_status(client, member, order["id"], "cancelled", reason="Changed my mind")

        assert response.json()["cancelled_at"] is not None
        assert fake_db.row("products", id=product["id"])["stock"] == 5

    def test_cannot_cancel_after_shipping(self, client, seller, member, delivered_order):
        response = set_status(client, member, delivered_order["id"], "cancelled")

        assert response.json()["code"] == "INVALID_TRANSITION"

    def test_strangers_cannot_see_orders(self, client, make_user, delivered_order):
        response = client.get(f"{API}/orders/{delivered_order['id']}", headers=make_user().headers)

        assert response.status_code == 404

    def test_seller_order_listing(self, client, seller, member, delivered_order):
        mine = client.get(f"{API}/orders", params={"as_seller": "true"}, headers=seller.headers).json()
        placed = client.get(f"{API}/orders", headers=seller.headers).json()

        assert [o["id"] for o in mine["data"]] == [delivered_order["id"]]
        assert placed["data"] == []


class TestRefunds:
    """Refund requests and decisions."""

    def request(self, client, user, order_id, amount):
        return client.post(f"{API}/orders/{order_id}/refunds", headers=user.headers, json={
            "amount": amount,
            "reason": "Arrived broken",
        })

    def test_partial_then_full_refund(self, client, fake_db, seller, member, delivered_order):
        order_id = delivered_order["id"]

        first = self.request(client, member, order_id, 20).json()
        client.post(f"{API}/refunds/{first['id']}/decision", headers=seller.headers, json={"status": "approved"})
        assert fake_db.row("orders", id=order_id)["refunded_amount"] == 20.0
        assert fake_db.row("orders", id=order_id)["status"] == "delivered"

        rest = self.request(client, member, order_id, 29.99).json()
        client.post(f"{API}/refunds/{rest['id']}/decision", headers=seller.headers, json={"status": "approved"})

        assert fake_db.row("orders", id=order_id)["status"] == "refunded"

    def test_cannot_exceed_balance(self, client, member, delivered_order):
        response = self.request(client, member, delivered_order["id"], 50)

        assert response.json()["code"] == "REFUND_EXCEEDS_BALANCE"

    def test_one_pending_refund_at_a_time(self, client, member, delivered_order):
        self.request(client, member, delivered_order["id"], 5)

        response = self.request(client, member, delivered_order["id"], 5)

        assert response.json()["code"] == "REFUND_PENDING"

    def test_not_refundable_before_shipping(self, client, member, product):
        add_to_cart(client, member, product["id"])
        order = checkout(client, member).json()["orders"][0]

        assert self.request(client, member, order["id"], 5).json()["code"] == "NOT_REFUNDABLE"

    def test_window_closes_after_delivery(self, client, fake_db, member, delivered_order):
        fake_db.set("orders", delivered_order["id"], delivered_at="2020-01-01T00:00:00+00:00")

        response = self.request(client, member, delivered_order["id"], 5)

        assert response.json()["code"] == "REFUND_WINDOW_CLOSED"

    def test_customer_cannot_decide(self, client, member, delivered_order):
        refund = self.request(client, member, delivered_order["id"], 5).json()

        response = client.post(f"{API}/refunds/{refund['id']}/decision", headers=member.headers, json={
            "status": "approved",
        })

        assert response.json()["code"] == "NOT_ORDER_SELLER"

    def test_cancel_then_decide(self, client, seller, member, delivered_order):
        refund = self.request(client, member, delivered_order["id"], 5).json()

        cancelled = client.post(f"{API}/refunds/{refund['id']}/cancel", headers=member.headers).json()
        decided = client.post(f"{API}/refunds/{refund['id']}/decision", headers=seller.headers, json={
            "status": "rejected",
        })

        assert cancelled["status"] == "cancelled"
        assert decided.json()["code"] == "REFUND_NOT_PENDING"

    def test_seller_refund_queue(self, client, make_user, seller, member, delivered_order):
        refund = self.request(client, member, delivered_order["id"], 5).json()

        queue = client.get(f"{API}/refunds", params={"as_seller": "true"}, headers=seller.headers).json()
        own = client.get(f"{API}/refunds", headers=seller.headers).json()
        stranger = client.get(f"{API}/refunds", params={"as_seller": "true"}, headers=make_user().headers).json()

        assert [r["id"] for r in queue["data"]] == [refund["id"]]
        assert own["data"] == []
        assert stranger["data"] == []


class TestReviews:
    """Verified-purchase reviews, helpfulness votes and seller responses."""

    def review(self, client, user, product_id, rating=4, **extra):
        return client.post(f"{API}/products/{product_id}/reviews", headers=user.headers, json={
            "rating": rating,
            "title": "Solid switches",
            **extra,
        })

    def test_buyer_reviews_and_rating_updates(self, client, member, product, delivered_order):
        response = self.review(client, member, product["id"], rating=4)

        assert response.status_code == 201
        assert response.json()["order_id"] == delivered_order["id"]
        listed = client.get(f"{API}/products/{product['id']}").json()
        assert listed["review_count"] == 1
        assert listed["rating_average"] == 4.0

    def test_undelivered_order_is_not_a_verified_purchase(self, client, member, product):
        add_to_cart(client, member, product["id"])
        checkout(client, member)

        response = self.review(client, member, product["id"])

        assert response.status_code == 403
        assert response.json()["code"] == "NOT_VERIFIED_PURCHASE"

    def test_one_review_per_product(self, client, member, product, delivered_order):
        self.review(client, member, product["id"])

        response = self.review(client, member, product["id"], rating=1)

        assert response.status_code == 409
        assert response.json()["code"] == "REVIEW_EXISTS"

    def test_rating_out_of_range(self, client, member, product, delivered_order):
        response = self.review(client, member, product["id"], rating=6)

        assert response.status_code == 422

    def test_edit_window(self, client, fake_db, member, product, delivered_order):
        review = self.review(client, member, product["id"], rating=2).json()
        url = f"{API}/reviews/{review['id']}"

        edited = client.patch(url, headers=member.headers, json={"rating": 5})
        fake_db.set("product_reviews", review["id"], created_at="2020-01-01T00:00:00+00:00")
        late = client.patch(url, headers=member.headers, json={"rating": 1})

        assert edited.json()["rating"] == 5
        assert fake_db.row("products", id=product["id"])["rating_average"] == 5.0
        assert late.json()["code"] == "REVIEW_EDIT_WINDOW_CLOSED"

    def test_delete_allows_a_new_review(self, client, fake_db, member, product, delivered_order):
        review = self.review(client, member, product["id"]).json()

        deleted = client.delete(f"{API}/reviews/{review['id']}", headers=member.headers)
        again = self.review(client, member, product["id"], rating=3)

        assert deleted.status_code == 204
        assert again.status_code == 201
        assert fake_db.row("products", id=product["id"])["review_count"] == 1

    def test_helpfulness_votes(self, client, make_user, member, product, delivered_order):
        review = self.review(client, member, product["id"]).json()
        url = f"{API}/reviews/{review['id']}/votes"
        reader = make_user()

        client.post(url, headers=reader.headers, json={"helpful": True})
        changed = client.post(url, headers=reader.headers, json={"helpful": False}).json()
        own = client.post(url, headers=member.headers, json={"helpful": True})

        assert (changed["helpful_count"], changed["unhelpful_count"]) == (0, 1)
        assert own.json()["code"] == "SELF_VOTE"

    def test_seller_response(self, client, fake_db, make_user, seller, member, product, delivered_order):
        review = self.review(client, member, product["id"]).json()
        url = f"{API}/reviews/{review['id']}/response"

        answered = client.put(url, headers=seller.headers, json={"body": "Thanks for the kind words!"})
        other_seller = client.put(url, headers=make_user(role="seller").headers, json={"body": "Buy mine"})
        with_response = client.get(
            f"{API}/products/{product['id']}/reviews", params={"has_response": "true"},
        ).json()

        assert answered.json()["seller_response"] == "Thanks for the kind words!"
        assert other_seller.json()["code"] == "NOT_PRODUCT_SELLER"
        assert [r["id"] for r in with_response["data"]] == [review["id"]]
        assert fake_db.row("notifications", user_id=member.id, type="review_response") is not None
