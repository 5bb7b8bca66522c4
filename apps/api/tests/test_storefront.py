import json

import pytest

from conftest import admin_headers, fetch, seed_admin, seed_user, user_headers
from models.category import Category
from models.order import Order
from models.product import Product
from services.products import coerce_specifications


async def _seed_category(session_maker, name="Gadgets"):
    async with session_maker() as session:
        category = Category(name=name, slug=name.lower(), creator_kind="Admin")
        session.add(category)
        await session.commit()
        return category


async def _create_product(client, headers, category_id, name, price, **fields):
    body = {"name": name, "description": f"{name} description", "price": price, "category": category_id}
    body.update(fields)
    response = await client.post("/api/v1/products", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_coerce_specifications_accepts_strings_and_objects():
    assert coerce_specifications('[{"name": "Weight", "value": 2}]') == [{"name": "Weight", "value": "2"}]
    assert coerce_specifications({"Color": "black", "Ports": 4}) == [
        {"name": "Color", "value": "black"},
        {"name": "Ports", "value": "4"},
    ]
    assert coerce_specifications({"name": "Size", "value": None}) == [{"name": "Size", "value": ""}]
    assert coerce_specifications("  ") == []
    assert coerce_specifications(None) == []

    with pytest.raises(ValueError):
        coerce_specifications("{not json")
    with pytest.raises(ValueError):
        coerce_specifications([{"value": "orphan"}])
    with pytest.raises(ValueError):
        coerce_specifications(42)


@pytest.mark.asyncio
async def test_create_product_normalizes_nested_fields(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    category = await _seed_category(session_maker)

    from_string = await _create_product(
        integration_client,
        admin_headers(admin.id),
        category.id,
        "USB Hub Pro",
        49.5,
        specifications=json.dumps([{"name": "Ports", "value": "7"}]),
        variants=json.dumps([{"name": "Color", "options": ["black", "white"]}]),
        tags="usb, hub",
        sku="HUB-1",
    )
    assert from_string["slug"] == "usb-hub-pro"
    assert from_string["specifications"] == [{"name": "Ports", "value": "7"}]
    assert from_string["variants"] == [{"name": "Color", "options": ["black", "white"]}]
    assert from_string["tags"] == ["usb", "hub"]
    assert from_string["category"]["name"] == "Gadgets"

    from_object = await _create_product(
        integration_client,
        admin_headers(admin.id),
        category.id,
        "Desk Lamp",
        20,
        specifications={"Wattage": 9},
    )
    assert from_object["specifications"] == [{"name": "Wattage", "value": "9"}]

    stored = await fetch(session_maker, Product, from_string["_id"])
    assert stored.specifications == [{"name": "Ports", "value": "7"}]


@pytest.mark.asyncio
async def test_create_product_rejects_invalid_input(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    creator = await seed_user(session_maker, "shopper")
    category = await _seed_category(session_maker)
    headers = admin_headers(admin.id)
    base = {"name": "Cable", "description": "A cable", "price": 5, "category": category.id}

    bad_json = await integration_client.post(
        "/api/v1/products",
        json={**base, "specifications": "{oops"},
        headers=headers,
    )
    assert bad_json.status_code == 400
    assert "specifications must be valid JSON" in bad_json.json()["error"]

    discount = await integration_client.post(
        "/api/v1/products",
        json={**base, "discountPrice": 6},
        headers=headers,
    )
    assert discount.status_code == 400
    assert discount.json()["error"] == "Discount price cannot exceed price"

    missing_category = await integration_client.post(
        "/api/v1/products",
        json={**base, "category": "missing"},
        headers=headers,
    )
    assert missing_category.status_code == 404
    assert missing_category.json()["error"] == "Category not found with id of missing"

    await _create_product(integration_client, headers, category.id, "Cable", 5, sku="CAB-1")
    duplicate_sku = await integration_client.post(
        "/api/v1/products",
        json={**base, "sku": "CAB-1"},
        headers=headers,
    )
    assert duplicate_sku.status_code == 400
    assert duplicate_sku.json()["error"] == "Product with this SKU already exists"

    by_user = await integration_client.post("/api/v1/products", json=base, headers=user_headers(creator.id))
    assert by_user.status_code == 403


@pytest.mark.asyncio
async def test_list_products_filters_sorts_and_paginates(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    gadgets = await _seed_category(session_maker, "Gadgets")
    books = await _seed_category(session_maker, "Books")
    headers = admin_headers(admin.id)

    cheap = await _create_product(integration_client, headers, gadgets.id, "Cheap Gadget", 5, stock=3)
    mid = await _create_product(integration_client, headers, gadgets.id, "Mid Gadget", 15, stock=0)
    pricey = await _create_product(integration_client, headers, gadgets.id, "Pricey Gadget", 30, stock=8)
    novel = await _create_product(integration_client, headers, books.id, "Novel", 12, isActive=False)

    ranged = await integration_client.get(
        "/api/v1/products",
        params={"price[gte]": "10", "price[lt]": "30", "sort": "price"},
    )
    assert ranged.status_code == 200
    assert [item["_id"] for item in ranged.json()["data"]] == [novel["_id"], mid["_id"]]

    by_category = await integration_client.get(
        "/api/v1/products",
        params={"category": gadgets.id, "sort": "-price", "select": "name,price"},
    )
    data = by_category.json()["data"]
    assert [item["_id"] for item in data] == [pricey["_id"], mid["_id"], cheap["_id"]]
    assert set(data[0]) == {"_id", "name", "price"}

    inactive = await integration_client.get("/api/v1/products", params={"isActive": "false"})
    assert [item["_id"] for item in inactive.json()["data"]] == [novel["_id"]]

    first_page = await integration_client.get("/api/v1/products", params={"sort": "price", "limit": "2"})
    body = first_page.json()
    assert body["count"] == 2
    assert body["total"] == 4
    assert body["pagination"] == {"next": {"page": 2, "limit": 2}}

    second_page = await integration_client.get(
        "/api/v1/products",
        params={"sort": "price", "limit": "2", "page": "2"},
    )
    assert [item["_id"] for item in second_page.json()["data"]] == [mid["_id"], pricey["_id"]]
    assert second_page.json()["pagination"] == {"prev": {"page": 1, "limit": 2}}

    unknown = await integration_client.get("/api/v1/products", params={"color": "red"})
    assert unknown.status_code == 400
    assert unknown.json()["error"] == "Unknown filter: color"

    bad_number = await integration_client.get("/api/v1/products", params={"price[gt]": "cheap"})
    assert bad_number.status_code == 400


@pytest.mark.asyncio
async def test_update_get_and_delete_product(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    category = await _seed_category(session_maker)
    headers = admin_headers(admin.id)
    product = await _create_product(integration_client, headers, category.id, "Old Name", 40)

    updated = await integration_client.put(
        f"/api/v1/products/{product['_id']}",
        json={"name": "New Name", "discountPrice": 35, "specifications": '{"Battery": "10h"}'},
        headers=headers,
    )
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["slug"] == "new-name"
    assert data["discountPrice"] == 35
    assert data["price"] == 40
    assert data["specifications"] == [{"name": "Battery", "value": "10h"}]

    too_cheap = await integration_client.put(
        f"/api/v1/products/{product['_id']}",
        json={"price": 30},
        headers=headers,
    )
    assert too_cheap.status_code == 400

    fetched = await integration_client.get(f"/api/v1/products/{product['_id']}")
    assert fetched.json()["data"]["name"] == "New Name"

    order = await integration_client.post(
        "/api/v1/orders",
        json={
            "product": product["_id"],
            "fullName": "Ada Buyer",
            "phone": "5550001111",
            "address": "1 Main St",
            "pincode": "12345",
        },
    )
    assert order.status_code == 201

    deleted = await integration_client.delete(f"/api/v1/products/{product['_id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "data": {}}
    assert (await fetch(session_maker, Order, order.json()["data"]["_id"])).product_id is None

    missing = await integration_client.get(f"/api/v1/products/{product['_id']}")
    assert missing.status_code == 404
    assert missing.json()["error"] == f"Product not found with id of {product['_id']}"


@pytest.mark.asyncio
async def test_upload_product_images(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    category = await _seed_category(session_maker)
    headers = admin_headers(admin.id)
    product = await _create_product(integration_client, headers, category.id, "Camera", 300)

    uploaded = await integration_client.post(
        f"/api/v1/products/{product['_id']}/images",
        files=[
            ("images", ("front.jpg", b"\xff\xd8\xff" + b"1" * 32, "image/jpeg")),
            ("images", ("back.png", b"\x89PNG" + b"2" * 32, "image/png")),
        ],
        headers=headers,
    )
    assert uploaded.status_code == 200
    assert len(uploaded.json()["data"]["images"]) == 2

    stored = await fetch(session_maker, Product, product["_id"])
    paths = [integration_client._blob_root / key for key in stored.image_keys]
    assert all(path.is_file() for path in paths)

    not_image = await integration_client.post(
        f"/api/v1/products/{product['_id']}/images",
        files=[("images", ("notes.txt", b"plain", "text/plain"))],
        headers=headers,
    )
    assert not_image.status_code == 400

    await integration_client.delete(f"/api/v1/products/{product['_id']}", headers=headers)
    assert not any(path.exists() for path in paths)


@pytest.mark.asyncio
async def test_orders_flow(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    customer = await seed_user(session_maker, "customer")
    category = await _seed_category(session_maker)
    headers = admin_headers(admin.id)
    discounted = await _create_product(integration_client, headers, category.id, "Speaker", 80, discountPrice=60)
    retired = await _create_product(integration_client, headers, category.id, "Old Speaker", 50, isActive=False)
    checkout = {"fullName": "Ada Buyer", "phone": "5550001111", "address": "1 Main St", "pincode": "12345"}

    created = await integration_client.post("/api/v1/orders", json={**checkout, "product": discounted["_id"]})
    assert created.status_code == 201
    order = created.json()["data"]
    assert order["amount"] == 60
    assert order["paymentStatus"] == "pending"
    assert order["product"]["name"] == "Speaker"

    unavailable = await integration_client.post("/api/v1/orders", json={**checkout, "product": retired["_id"]})
    assert unavailable.status_code == 400
    assert unavailable.json()["error"] == "Product is not available"

    missing = await integration_client.post("/api/v1/orders", json={**checkout, "product": "nope"})
    assert missing.status_code == 404

    forbidden = await integration_client.get("/api/v1/orders", headers=user_headers(customer.id))
    assert forbidden.status_code == 403

    listing = await integration_client.get("/api/v1/orders", headers=headers)
    assert listing.json()["count"] == 1

    paid = await integration_client.put(
        f"/api/v1/orders/{order['_id']}/status",
        json={"paymentStatus": "completed"},
        headers=headers,
    )
    assert paid.json()["data"]["paymentStatus"] == "completed"

    invalid = await integration_client.put(
        f"/api/v1/orders/{order['_id']}/status",
        json={"paymentStatus": "refunded"},
        headers=headers,
    )
    assert invalid.status_code == 400

    removed = await integration_client.delete(f"/api/v1/orders/{order['_id']}", headers=headers)
    assert removed.status_code == 200
    gone = await integration_client.delete(f"/api/v1/orders/{order['_id']}", headers=headers)
    assert gone.status_code == 404
    assert gone.json()["error"] == f"Order not found with id of {order['_id']}"


@pytest.mark.asyncio
async def test_contact_submissions(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    headers = admin_headers(admin.id)

    submitted = await integration_client.post(
        "/api/v1/contact",
        json={"name": "Grace", "email": "Grace@Example.com", "message": "Do you ship abroad?"},
    )
    assert submitted.status_code == 201
    contact = submitted.json()["data"]
    assert contact["subject"] == "General Inquiry"
    assert contact["email"] == "grace@example.com"

    bad_email = await integration_client.post(
        "/api/v1/contact",
        json={"name": "Grace", "email": "not-an-email", "message": "Hi"},
    )
    assert bad_email.status_code == 400

    listing = await integration_client.get("/api/v1/contact", headers=headers)
    assert [item["_id"] for item in listing.json()["data"]] == [contact["_id"]]

    anonymous = await integration_client.get("/api/v1/contact")
    assert anonymous.status_code == 401

    removed = await integration_client.delete(f"/api/v1/contact/{contact['_id']}", headers=headers)
    assert removed.status_code == 200
    gone = await integration_client.delete(f"/api/v1/contact/{contact['_id']}", headers=headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_category_with_products_cannot_be_deleted(integration_client):
    session_maker = integration_client._session_maker
    admin = await seed_admin(session_maker)
    category = await _seed_category(session_maker)
    headers = admin_headers(admin.id)
    product = await _create_product(integration_client, headers, category.id, "Anchor", 10)

    blocked = await integration_client.delete(f"/api/v1/categories/{category.id}", headers=headers)
    assert blocked.status_code == 400
    assert blocked.json()["error"] == "Cannot delete a category that still has products"

    await integration_client.delete(f"/api/v1/products/{product['_id']}", headers=headers)
    allowed = await integration_client.delete(f"/api/v1/categories/{category.id}", headers=headers)
    assert allowed.status_code == 200
