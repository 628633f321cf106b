# Overview: Pytest coverage for categories and the shared product catalog.

"""
Catalog Tests

- Category tree per company (unique sibling names, no cycles)
- Products: supplier-owned writes, shared catalog reads
- Inactive products visible only to their own supplier
"""

import pytest

from tubex.models import Product, ProductCategory


def create_category(client, headers, name, parent_id=None):
    payload = {'name': name}
    if parent_id is not None:
        payload['parent_id'] = parent_id
    return client.post('/api/v1/categories', headers=headers, json=payload)


# =============================================================================
# CATEGORIES
# =============================================================================


class TestCategories:
    """/api/v1/categories"""

    def test_create_and_list(self, client, supplier_admin_headers):
        response = create_category(client, supplier_admin_headers, 'Cement')
        assert response.status_code == 201
        assert response.json["category"]["parent_id"] is None

        listing = client.get('/api/v1/categories', headers=supplier_admin_headers)
        assert listing.json["count"] == 1
        assert listing.json["items"][0]["name"] == "Cement"

    def test_tree(self, client, supplier_admin_headers):
        root = create_category(client, supplier_admin_headers, 'Steel').json["category"]
        create_category(client, supplier_admin_headers, 'Rebar', root["id"])
        create_category(client, supplier_admin_headers, 'Beams', root["id"])
        create_category(client, supplier_admin_headers, 'Aggregates')

        response = client.get('/api/v1/categories/tree', headers=supplier_admin_headers)
        assert response.status_code == 200
        tree = response.json["items"]
        assert [n["name"] for n in tree] == ["Aggregates", "Steel"]
        assert [c["name"] for c in tree[1]["children"]] == ["Beams", "Rebar"]

    def test_duplicate_sibling_conflict(self, client, supplier_admin_headers):
        create_category(client, supplier_admin_headers, 'Cement')
        response = create_category(client, supplier_admin_headers, 'Cement')
        assert response.status_code == 409

    def test_same_name_under_other_parent(self, client, supplier_admin_headers):
        a = create_category(client, supplier_admin_headers, 'Indoor').json["category"]
        b = create_category(client, supplier_admin_headers, 'Outdoor').json["category"]
        assert create_category(client, supplier_admin_headers, 'Paint', a["id"]).status_code == 201
        assert create_category(client, supplier_admin_headers, 'Paint', b["id"]).status_code == 201

    def test_same_name_in_other_company(self, client, supplier_admin_headers, supplier_b_headers):
        create_category(client, supplier_admin_headers, 'Cement')
        assert create_category(client, supplier_b_headers, 'Cement').status_code == 201

    def test_foreign_parent_not_found(self, client, supplier_admin_headers, supplier_b_headers):
        foreign = create_category(client, supplier_b_headers, 'Steel').json["category"]
        response = create_category(client, supplier_admin_headers, 'Rebar', foreign["id"])
        assert response.status_code == 404

    def test_cycle_rejected(self, client, supplier_admin_headers):
        root = create_category(client, supplier_admin_headers, 'Root').json["category"]
        child = create_category(client, supplier_admin_headers, 'Child', root["id"]).json["category"]

        response = client.put(f'/api/v1/categories/{root["id"]}', headers=supplier_admin_headers, json={
            'parent_id': child["id"],
        })
        assert response.status_code == 400

        own = client.put(f'/api/v1/categories/{root["id"]}', headers=supplier_admin_headers, json={
            'parent_id': root["id"],
        })
        assert own.status_code == 400

    def test_rename(self, client, supplier_admin_headers):
        category = create_category(client, supplier_admin_headers, 'Tiles').json["category"]
        response = client.put(f'/api/v1/categories/{category["id"]}', headers=supplier_admin_headers, json={
            'name': 'Ceramic Tiles',
            'description': 'Floor and wall',
        })
        assert response.status_code == 200
        assert response.json["category"]["name"] == "Ceramic Tiles"

    def test_delete_detaches_children(self, client, supplier_admin_headers, db_session):
        root = create_category(client, supplier_admin_headers, 'Root').json["category"]
        child = create_category(client, supplier_admin_headers, 'Child', root["id"]).json["category"]

        response = client.delete(f'/api/v1/categories/{root["id"]}', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert db_session.get(ProductCategory, root["id"]) is None
        assert db_session.get(ProductCategory, child["id"]).parent_id is None

    def test_foreign_category_not_found(self, client, supplier_admin_headers, supplier_b_headers):
        foreign = create_category(client, supplier_b_headers, 'Steel').json["category"]
        assert client.get(f'/api/v1/categories/{foreign["id"]}', headers=supplier_admin_headers).status_code == 404
        assert client.delete(f'/api/v1/categories/{foreign["id"]}',
                             headers=supplier_admin_headers).status_code == 404

    def test_missing_name(self, client, supplier_admin_headers):
        response = client.post('/api/v1/categories', headers=supplier_admin_headers, json={'description': 'x'})
        assert response.status_code == 400


# =============================================================================
# PRODUCTS
# =============================================================================


class TestProductWrites:
    """Create / update / deactivate by the owning supplier."""

    def test_create_product(self, client, supplier_admin_headers, supplier_a):
        category = create_category(client, supplier_admin_headers, 'Sand').json["category"]

        response = client.post('/api/v1/products', headers=supplier_admin_headers, json={
            'name': 'River Sand',
            'description': 'Washed',
            'base_price': 12.5,
            'unit': 'm3',
            'category_id': category["id"],
        })

        assert response.status_code == 201
        product = response.json["product"]
        assert product["supplier_id"] == supplier_a.id
        assert product["base_price"] == 12.5
        assert product["status"] == "active"
        assert product["category_name"] == "Sand"

    @pytest.mark.parametrize("payload", [
        {'base_price': 10, 'unit': 'm3'},
        {'name': 'No price', 'unit': 'm3'},
        {'name': 'Negative', 'base_price': -1, 'unit': 'm3'},
        {'name': 'Huge', 'base_price': 1000000000, 'unit': 'm3'},
        {'name': 'Bad status', 'base_price': 1, 'unit': 'm3', 'status': 'archived'},
        {'name': 'Owner', 'base_price': 1, 'unit': 'm3', 'supplier_id': 1},
    ])
    def test_invalid_payloads(self, client, supplier_admin_headers, payload):
        response = client.post('/api/v1/products', headers=supplier_admin_headers, json=payload)
        assert response.status_code == 400

    def test_foreign_category_not_found(self, client, supplier_admin_headers, supplier_b_headers):
        foreign = create_category(client, supplier_b_headers, 'Steel').json["category"]
        response = client.post('/api/v1/products', headers=supplier_admin_headers, json={
            'name': 'Sand', 'base_price': 10, 'unit': 'm3', 'category_id': foreign["id"],
        })
        assert response.status_code == 404

    def test_dealer_cannot_create(self, client, dealer_headers):
        response = client.post('/api/v1/products', headers=dealer_headers, json={
            'name': 'Sand', 'base_price': 10, 'unit': 'm3',
        })
        assert response.status_code == 403

    def test_update_product(self, client, supplier_admin_headers, product_a):
        response = client.put(f'/api/v1/products/{product_a.id}', headers=supplier_admin_headers, json={
            'base_price': 99,
        })
        assert response.status_code == 200
        assert response.json["product"]["base_price"] == 99

    def test_empty_update(self, client, supplier_admin_headers, product_a):
        response = client.put(f'/api/v1/products/{product_a.id}', headers=supplier_admin_headers, json={})
        assert response.status_code == 400

    def test_delete_is_soft(self, client, supplier_admin_headers, product_a, db_session):
        response = client.delete(f'/api/v1/products/{product_a.id}', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["product"]["status"] == "inactive"
        assert db_session.get(Product, product_a.id) is not None

    def test_bulk_status(self, client, supplier_admin_headers, supplier_a, product_a, db_session):
        extra = Product(supplier_id=supplier_a.id, name="White Cement", base_price=120, unit="bag")
        db_session.add(extra)
        db_session.commit()

        response = client.post('/api/v1/products/bulk-status', headers=supplier_admin_headers, json={
            'product_ids': [product_a.id, extra.id],
            'status': 'inactive',
        })
        assert response.status_code == 200
        assert response.json == {"updated": 2}

    def test_bulk_status_all_or_nothing(self, client, supplier_admin_headers, product_a, product_b, db_session):
        response = client.post('/api/v1/products/bulk-status', headers=supplier_admin_headers, json={
            'product_ids': [product_a.id, product_b.id],
            'status': 'inactive',
        })
        assert response.status_code == 404
        assert db_session.get(Product, product_a.id).status == "active"

    @pytest.mark.parametrize("payload", [
        {'product_ids': [], 'status': 'inactive'},
        {'product_ids': 'all', 'status': 'inactive'},
        {'product_ids': [1], 'status': 'deleted'},
    ])
    def test_bulk_status_invalid(self, client, supplier_admin_headers, product_a, payload):
        response = client.post('/api/v1/products/bulk-status', headers=supplier_admin_headers, json=payload)
        assert response.status_code == 400


class TestCatalogReads:
    """Shared catalog listing and visibility."""

    def test_catalog_spans_suppliers(self, client, dealer_headers, product_a, product_b):
        response = client.get('/api/v1/products', headers=dealer_headers)
        assert response.status_code == 200
        assert {p["name"] for p in response.json["items"]} == {"Portland Cement PCB40", "Rebar D16"}
        assert response.json["pagination"]["total"] == 2

    def test_search_and_supplier_filter(self, client, dealer_headers, supplier_b, product_a, product_b):
        search = client.get('/api/v1/products?search=cement', headers=dealer_headers)
        assert [p["id"] for p in search.json["items"]] == [product_a.id]

        by_supplier = client.get(f'/api/v1/products?supplier_id={supplier_b.id}', headers=dealer_headers)
        assert [p["id"] for p in by_supplier.json["items"]] == [product_b.id]

    def test_pagination(self, client, dealer_headers, supplier_a, db_session):
        for i in range(3):
            db_session.add(Product(supplier_id=supplier_a.id, name=f"Brick {i}", base_price=1, unit="piece"))
        db_session.commit()

        response = client.get('/api/v1/products?page=2&limit=2', headers=dealer_headers)
        assert response.json["count"] == 1
        assert response.json["pagination"]["total_pages"] == 2
        assert response.json["pagination"]["has_prev"] is True
        assert response.json["pagination"]["has_next"] is False

    @pytest.mark.parametrize("query", ["page=0", "limit=500", "page=abc", "status=archived"])
    def test_bad_query(self, client, dealer_headers, query):
        response = client.get(f'/api/v1/products?{query}', headers=dealer_headers)
        assert response.status_code == 400

    def test_inactive_visible_to_owner_only(self, client, supplier_admin_headers, dealer_headers, product_a,
                                            db_session):
        product_a.status = "inactive"
        db_session.commit()

        assert client.get(f'/api/v1/products/{product_a.id}', headers=dealer_headers).status_code == 404
        assert client.get(f'/api/v1/products/{product_a.id}', headers=supplier_admin_headers).status_code == 200

        own = client.get('/api/v1/products?status=inactive', headers=supplier_admin_headers)
        assert [p["id"] for p in own.json["items"]] == [product_a.id]
        other = client.get('/api/v1/products?status=inactive', headers=dealer_headers)
        assert other.json["items"] == []

    def test_empty_status_lists_active_only(self, client, supplier_admin_headers, dealer_headers, product_a,
                                            product_b, db_session):
        product_b.status = "inactive"
        db_session.commit()

        response = client.get('/api/v1/products?status=', headers=dealer_headers)
        assert response.status_code == 200
        assert [p["id"] for p in response.json["items"]] == [product_a.id]

        own = client.get('/api/v1/products?status=', headers=supplier_admin_headers)
        assert product_b.id not in [p["id"] for p in own.json["items"]]

    def test_suspended_supplier_hidden(self, client, dealer_headers, supplier_b, product_a, product_b, db_session):
        supplier_b.status = "suspended"
        db_session.commit()

        response = client.get('/api/v1/products', headers=dealer_headers)
        assert [p["id"] for p in response.json["items"]] == [product_a.id]
        assert client.get(f'/api/v1/products/{product_b.id}', headers=dealer_headers).status_code == 404
