from conftest import auth_headers


# ---------- Reviews ----------

def test_review_flow(client, customer, other_customer, make_product):
    product = make_product()
    url = f"/products/{product.product_id}/reviews"

    empty = client.get(url).json()
    assert empty == {"reviews": [], "average_rating": "0.0", "total_reviews": 0}

    first = client.post(url, json={"rating": 5, "comment": "Great grip"}, headers=auth_headers(customer))
    assert first.status_code == 201
    assert first.json()["user_name"] == "customer"
    assert first.json()["is_approved"] is True

    client.post(url, json={"rating": 4, "user_name": "Dara"}, headers=auth_headers(other_customer))

    body = client.get(url).json()
    assert body["total_reviews"] == 2
    assert body["average_rating"] == "4.5"
    assert {r["user_name"] for r in body["reviews"]} == {"customer", "Dara"}


def test_review_rules(client, customer_headers, make_product):
    product = make_product()
    url = f"/products/{product.product_id}/reviews"

    assert client.post(url, json={"rating": 3}).status_code == 401
    assert client.post(url, json={"rating": 0}, headers=customer_headers).status_code == 400
    assert client.post(url, json={"rating": 6}, headers=customer_headers).status_code == 400
    assert client.post("/products/9999/reviews", json={"rating": 3}, headers=customer_headers).status_code == 404

    assert client.post(url, json={"rating": 3}, headers=customer_headers).status_code == 201
    duplicate = client.post(url, json={"rating": 4}, headers=customer_headers)
    assert duplicate.status_code == 400
    assert "already reviewed" in duplicate.json()["detail"]


def test_admin_review_moderation(client, customer_headers, admin_headers, make_product):
    product = make_product()
    url = f"/products/{product.product_id}/reviews"
    review = client.post(url, json={"rating": 2, "comment": "Too small"}, headers=customer_headers).json()

    listing = client.get("/admin/reviews", headers=admin_headers).json()
    assert listing["pagination"]["total"] == 1
    assert listing["data"][0]["product_name"] == "Striker Boot"
    assert listing["data"][0]["user_email"] == "customer@example.com"

    hidden = client.patch(f"/admin/reviews/{review['review_id']}/approve", json={"is_approved": False},
                          headers=admin_headers)
    assert hidden.json()["is_approved"] is False
    assert client.get(url).json()["total_reviews"] == 0
    assert client.get("/admin/reviews", params={"is_approved": False}, headers=admin_headers).json()[
        "pagination"]["total"] == 1

    assert client.patch(f"/admin/reviews/{review['review_id']}/approve", json={"is_approved": "yes"},
                        headers=admin_headers).status_code == 400

    assert client.delete(f"/admin/reviews/{review['review_id']}", headers=admin_headers).status_code == 200
    assert client.delete(f"/admin/reviews/{review['review_id']}", headers=admin_headers).status_code == 404
    assert client.get("/admin/reviews", headers=customer_headers).status_code == 403


# ---------- Wishlist ----------

def test_wishlist_flow(client, customer_headers, make_product):
    product = make_product()

    added = client.post("/wishlist", json={"product_id": product.product_id}, headers=customer_headers)
    assert added.status_code == 201
    assert added.json()["product"]["name"] == "Striker Boot"
    assert added.json()["product"]["category_name"] == "Boots"

    duplicate = client.post("/wishlist", json={"product_id": product.product_id}, headers=customer_headers)
    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Product already in wishlist"

    check = client.get(f"/wishlist/check/{product.product_id}", headers=customer_headers).json()
    assert check == {"product_id": product.product_id, "in_wishlist": True}

    items = client.get("/wishlist", headers=customer_headers).json()
    assert [i["product_id"] for i in items] == [product.product_id]

    assert client.delete(f"/wishlist/{product.product_id}", headers=customer_headers).status_code == 200
    missing = client.delete(f"/wishlist/{product.product_id}", headers=customer_headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Product not in wishlist"
    assert client.get(f"/wishlist/check/{product.product_id}", headers=customer_headers).json()["in_wishlist"] is False


def test_wishlist_hides_archived_products(client, customer_headers, make_product):
    active = make_product(name="Active Boot")
    archived = make_product(name="Old Boot", status="ARCHIVED")
    for product in (active, archived):
        client.post("/wishlist", json={"product_id": product.product_id}, headers=customer_headers)

    items = client.get("/wishlist", headers=customer_headers).json()
    assert [i["product"]["name"] for i in items] == ["Active Boot"]


def test_wishlist_is_per_user(client, customer, other_customer, make_product):
    product = make_product()
    client.post("/wishlist", json={"product_id": product.product_id}, headers=auth_headers(customer))
    assert client.get("/wishlist", headers=auth_headers(other_customer)).json() == []
    assert client.post("/wishlist", json={"product_id": 9999}, headers=auth_headers(customer)).status_code == 404
    assert client.get("/wishlist").status_code == 401
