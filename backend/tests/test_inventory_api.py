from uuid import uuid4

from storefront.api.routes import inventory as inventory_routes
from storefront.core.security import create_access_token
from storefront.services.stock_adjustment_service import INVENTORY_CACHE_PREFIXES


def _auth_header(role: str) -> dict[str, str]:
    token = create_access_token(subject=f"{role}_{uuid4().hex[:8]}", role=role)
    return {"Authorization": f"Bearer {token}"}


def test_inventory_requires_auth(client):
    response = client.get("/inventory/")
    assert response.status_code == 401


def test_inventory_rejects_invalid_token(client):
    response = client.get("/inventory/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_inventory_requires_admin_role(client):
    response = client.get("/inventory/", headers=_auth_header("user"))
    assert response.status_code == 403


def test_adjust_in_and_read_back(client, admin_headers, make_product):
    product = make_product(name="Oxford Shirt", stock=10)

    response = client.post(
        "/inventory/adjust",
        json={"product_id": product.id, "quantity": 5, "type": "in", "reason": "Supplier delivery"},
        headers=admin_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["item"]["stock"] == 15
    assert body["item"]["stock_level"] == "in-stock"
    assert body["movement"]["type"] == "in"
    assert body["movement"]["quantity"] == 5
    assert body["movement"]["previous_stock"] == 10

    overview = client.get("/inventory/", params={"search": "oxford"}, headers=admin_headers)
    assert overview.status_code == 200
    assert overview.json()["items"][0]["stock"] == 15

    history = client.get("/inventory/history", params={"product_id": product.id}, headers=admin_headers)
    assert history.status_code == 200
    assert [m["reason"] for m in history.json()] == ["Supplier delivery"]
    assert history.json()[0]["product_name"] == "Oxford Shirt"


def test_adjust_applies_cache_invalidation(client, admin_headers, make_product, monkeypatch):
    product = make_product(stock=1)
    applied = []
    monkeypatch.setattr(inventory_routes, "apply_invalidations", lambda prefixes: applied.append(tuple(prefixes)))

    response = client.post(
        "/inventory/adjust",
        json={"product_id": product.id, "quantity": 1, "type": "in"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert applied == [INVENTORY_CACHE_PREFIXES]


def test_rejected_adjustment_does_not_invalidate(client, admin_headers, make_product, monkeypatch):
    product = make_product(stock=1)
    applied = []
    monkeypatch.setattr(inventory_routes, "apply_invalidations", lambda prefixes: applied.append(tuple(prefixes)))

    response = client.post(
        "/inventory/adjust",
        json={"product_id": product.id, "quantity": 2, "type": "out"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["success"] is False
    assert "below zero" in response.json()["error"]
    assert applied == []


def test_adjust_validation_error_lists_fields(client, admin_headers, make_product):
    product = make_product(stock=1)

    response = client.post(
        "/inventory/adjust",
        json={"product_id": product.id, "quantity": 0, "type": "sideways"},
        headers=admin_headers,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert {f["field"] for f in body["fields"]} == {"quantity", "type"}


def test_adjust_unknown_product_is_404(client, admin_headers):
    response = client.post(
        "/inventory/adjust",
        json={"product_id": str(uuid4()), "quantity": 1, "type": "in"},
        headers=admin_headers,
    )

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_bulk_adjust_reports_partial_success(client, admin_headers, make_product, make_variant):
    simple = make_product(name="Tote", stock=0)
    sneaker = make_product(name="Sneaker", stock=None)
    size = make_variant(sneaker, name="41", stock=3)

    response = client.post(
        "/inventory/adjust/bulk",
        json={
            "adjustments": [
                {"product_id": simple.id, "quantity": 12, "type": "in"},
                {"product_id": simple.id, "quantity": 0, "type": "in"},
                {"product_id": sneaker.id, "variant_id": size.id, "quantity": -1, "type": "adjust"},
            ]
        },
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["succeeded"] == 2
    assert body["failed"] == 1
    assert [r["success"] for r in body["results"]] == [True, False, True]
    assert body["results"][2]["item"]["stock"] == 2

    overview = client.get("/inventory/", params={"product_type": "variant"}, headers=admin_headers)
    assert overview.json()["items"][0]["stock"] == 2


def test_bulk_adjust_requires_items(client, admin_headers):
    response = client.post("/inventory/adjust/bulk", json={"adjustments": []}, headers=admin_headers)
    assert response.status_code == 422


def test_overview_pagination_metadata(client, admin_headers, make_product):
    for i in range(25):
        make_product(name=f"Sample {i:02d}", stock=0)

    response = client.get(
        "/inventory/",
        params={"stock_level": "out-of-stock", "page": 2, "limit": 20},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert len(body["items"]) == 5
    assert body["pagination"] == {"page": 2, "limit": 20, "total": 25, "total_pages": 2}


def test_overview_rejects_bad_query(client, admin_headers):
    response = client.get("/inventory/", params={"stock_level": "plenty"}, headers=admin_headers)
    assert response.status_code == 422


def test_low_stock_endpoint(client, admin_headers, make_product):
    make_product(name="Laces", stock=2)
    make_product(name="Insoles", stock=50)

    response = client.get("/inventory/low-stock", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["count"] == 1
    assert response.json()["items"][0]["product_name"] == "Laces"


def test_metrics_count_adjustments(client, admin_headers, make_product):
    product = make_product(stock=0)
    client.post(
        "/inventory/adjust",
        json={"product_id": product.id, "quantity": 1, "type": "in"},
        headers=admin_headers,
    )

    response = client.get("/metrics")

    assert response.status_code == 200
    assert 'stock_adjustments_total{type="in",outcome="accepted"}' in response.text
