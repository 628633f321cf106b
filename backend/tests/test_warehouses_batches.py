# Overview: Pytest coverage for warehouses and expiry-tracked batches.

import pytest
from decimal import Decimal

from tubex.models import Batch, Warehouse
from tubex.services.maintenance_service import expire_batches
from tubex.time_utils import days_from_today


class TestWarehouses:
    """Warehouse CRUD and capacity report."""

    def test_create_warehouse(self, client, supplier_admin_headers):
        response = client.post('/api/v1/warehouses', headers=supplier_admin_headers, json={
            'name': 'Da Nang Depot',
            'address': '22 Bach Dang, Da Nang',
            'type': 'distribution',
            'capacity': 500,
            'contact_info': {'name': 'Minh', 'phone': '+84905111222'},
        })

        assert response.status_code == 201
        warehouse = response.json["warehouse"]
        assert warehouse["type"] == "distribution"
        assert warehouse["status"] == "active"
        assert warehouse["capacity"] == 500

    def test_default_type(self, client, supplier_admin_headers):
        response = client.post('/api/v1/warehouses', headers=supplier_admin_headers, json={
            'name': 'Overflow',
            'address': 'Lot 3',
        })
        assert response.json["warehouse"]["type"] == "storage"

    def test_duplicate_name_conflict(self, client, supplier_admin_headers, warehouse_a1):
        response = client.post('/api/v1/warehouses', headers=supplier_admin_headers, json={
            'name': warehouse_a1.name,
            'address': 'Elsewhere',
        })
        assert response.status_code == 409

    def test_same_name_in_other_company(self, client, supplier_b_headers, warehouse_a1):
        response = client.post('/api/v1/warehouses', headers=supplier_b_headers, json={
            'name': warehouse_a1.name,
            'address': 'Elsewhere',
        })
        assert response.status_code == 201

    @pytest.mark.parametrize("payload", [
        {'address': 'No name'},
        {'name': 'No address'},
        {'name': 'Bad type', 'address': 'x', 'type': 'garage'},
        {'name': 'Negative', 'address': 'x', 'capacity': -5},
        {'name': 'Extra', 'address': 'x', 'company_id': 99},
    ])
    def test_invalid_payloads(self, client, supplier_admin_headers, payload):
        response = client.post('/api/v1/warehouses', headers=supplier_admin_headers, json=payload)
        assert response.status_code == 400

    def test_filter_by_type(self, client, supplier_admin_headers, warehouse_a1, warehouse_a2):
        response = client.get('/api/v1/warehouses?type=secondary', headers=supplier_admin_headers)
        assert [w["id"] for w in response.json["items"]] == [warehouse_a2.id]

    def test_update_warehouse(self, client, supplier_admin_headers, warehouse_a1):
        response = client.put(f'/api/v1/warehouses/{warehouse_a1.id}', headers=supplier_admin_headers, json={
            'status': 'under_maintenance',
            'notes': 'Roof repair',
        })
        assert response.status_code == 200
        assert response.json["warehouse"]["status"] == "under_maintenance"

    def test_rename_to_existing_name_conflict(self, client, supplier_admin_headers, warehouse_a1, warehouse_a2):
        response = client.put(f'/api/v1/warehouses/{warehouse_a2.id}', headers=supplier_admin_headers, json={
            'name': warehouse_a1.name,
        })
        assert response.status_code == 409

    def test_capacity_report(self, client, supplier_admin_headers, warehouse_a1, stocked_product_a):
        response = client.get(f'/api/v1/warehouses/{warehouse_a1.id}/capacity', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json == {
            'warehouse_id': warehouse_a1.id,
            'total_capacity': 1000,
            'current_usage': 100,
            'available_capacity': 900,
            'utilization_percentage': 10,
        }

    def test_capacity_report_without_capacity(self, client, supplier_admin_headers, warehouse_a2):
        response = client.get(f'/api/v1/warehouses/{warehouse_a2.id}/capacity', headers=supplier_admin_headers)
        assert response.json["total_capacity"] is None
        assert response.json["available_capacity"] is None
        assert response.json["utilization_percentage"] == 0

    def test_delete_with_inventory_conflict(self, client, supplier_admin_headers, warehouse_a1, stocked_product_a):
        response = client.delete(f'/api/v1/warehouses/{warehouse_a1.id}', headers=supplier_admin_headers)
        assert response.status_code == 409

    def test_delete_empty(self, client, supplier_admin_headers, warehouse_a2, db_session):
        warehouse_id = warehouse_a2.id
        response = client.delete(f'/api/v1/warehouses/{warehouse_id}', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert db_session.get(Warehouse, warehouse_id) is None

    def test_staff_cannot_create(self, client, supplier_staff_headers):
        response = client.post('/api/v1/warehouses', headers=supplier_staff_headers, json={
            'name': 'Staff yard',
            'address': 'x',
        })
        assert response.status_code == 403


class TestBatches:
    """Batch CRUD, listing and stats."""

    def _payload(self, product, warehouse, **extra):
        payload = {
            'batch_number': 'LOT-001',
            'product_id': product.id,
            'warehouse_id': warehouse.id,
            'quantity': 20,
            'unit': 'bag',
        }
        payload.update(extra)
        return payload

    def test_create_batch(self, client, supplier_admin_headers, product_a, warehouse_a1):
        response = client.post('/api/v1/batches', headers=supplier_admin_headers, json=self._payload(
            product_a, warehouse_a1, manufacturing_date='2026-01-10', expiry_date='2027-01-10',
        ))

        assert response.status_code == 201
        batch = response.json["batch"]
        assert batch["batch_number"] == "LOT-001"
        assert batch["expiry_date"] == "2027-01-10"
        assert batch["warehouse_name"] == warehouse_a1.name

    def test_expiry_before_manufacturing(self, client, supplier_admin_headers, product_a, warehouse_a1):
        response = client.post('/api/v1/batches', headers=supplier_admin_headers, json=self._payload(
            product_a, warehouse_a1, manufacturing_date='2026-05-01', expiry_date='2026-04-01',
        ))
        assert response.status_code == 400

    def test_duplicate_number_conflict(self, client, supplier_admin_headers, product_a, warehouse_a1):
        client.post('/api/v1/batches', headers=supplier_admin_headers, json=self._payload(product_a, warehouse_a1))
        response = client.post('/api/v1/batches', headers=supplier_admin_headers,
                               json=self._payload(product_a, warehouse_a1))
        assert response.status_code == 409

    def test_same_number_in_other_company(self, client, supplier_admin_headers, supplier_b_headers,
                                          product_a, product_b, warehouse_a1, warehouse_b1):
        first = client.post('/api/v1/batches', headers=supplier_admin_headers,
                            json=self._payload(product_a, warehouse_a1))
        second = client.post('/api/v1/batches', headers=supplier_b_headers,
                             json=self._payload(product_b, warehouse_b1))
        assert first.status_code == 201
        assert second.status_code == 201

    def test_foreign_warehouse_not_found(self, client, supplier_admin_headers, product_a, warehouse_b1):
        response = client.post('/api/v1/batches', headers=supplier_admin_headers,
                               json=self._payload(product_a, warehouse_b1))
        assert response.status_code == 404

    def test_inactive_foreign_product_not_found(self, client, supplier_admin_headers, product_b, warehouse_a1,
                                                db_session):
        product_b.status = "inactive"
        db_session.commit()

        response = client.post('/api/v1/batches', headers=supplier_admin_headers,
                               json=self._payload(product_b, warehouse_a1))
        assert response.status_code == 404

    def test_dealer_can_stock_catalog_product(self, client, dealer_headers, dealer_a, product_a, db_session):
        yard = Warehouse(company_id=dealer_a.id, name="Delta Yard", address="Hai Phong")
        db_session.add(yard)
        db_session.commit()

        response = client.post('/api/v1/batches', headers=dealer_headers, json=self._payload(product_a, yard))
        assert response.status_code == 201
        assert response.json["batch"]["company_id"] == dealer_a.id

    def test_list_expiring(self, client, supplier_admin_headers, stocked_product_a):
        response = client.get('/api/v1/batches?expiring_days=30', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert [b["batch_number"] for b in response.json["items"]] == ["B-OLD"]
        assert response.json["pagination"]["per_page"] == 50

    def test_stats(self, client, supplier_admin_headers, stocked_product_a, supplier_a, product_a, warehouse_a1,
                   db_session):
        db_session.add(Batch(batch_number="B-GONE", product_id=product_a.id, warehouse_id=warehouse_a1.id,
                             company_id=supplier_a.id, quantity=Decimal("5"), unit="bag",
                             expiry_date=days_from_today(-3)))
        db_session.commit()

        response = client.get('/api/v1/batches/stats', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["total"] == 3
        assert response.json["active"] == 3
        assert response.json["expiring_soon"] == 1
        assert response.json["expired"] == 1
        assert response.json["total_quantity"] == 105

    def test_update_batch(self, client, supplier_admin_headers, stocked_product_a, db_session):
        batch = db_session.query(Batch).filter_by(batch_number="B-NEW").one()
        response = client.put(f'/api/v1/batches/{batch.id}', headers=supplier_admin_headers, json={
            'expiry_date': '2030-12-31',
        })
        assert response.status_code == 200
        assert response.json["batch"]["expiry_date"] == "2030-12-31"

    def test_delete_is_soft(self, client, supplier_admin_headers, stocked_product_a, db_session):
        batch = db_session.query(Batch).filter_by(batch_number="B-NEW").one()
        response = client.delete(f'/api/v1/batches/{batch.id}', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["batch"]["status"] == "inactive"
        assert db_session.get(Batch, batch.id) is not None

    def test_foreign_batch_not_found(self, client, supplier_b_headers, stocked_product_a, db_session):
        batch = db_session.query(Batch).filter_by(batch_number="B-OLD").one()
        response = client.get(f'/api/v1/batches/{batch.id}', headers=supplier_b_headers)
        assert response.status_code == 404


class TestExpireBatches:
    """Maintenance sweep for past-expiry batches."""

    def test_expire_batches(self, db_session, supplier_a, product_a, warehouse_a1):
        db_session.add(Batch(batch_number="OLD-1", product_id=product_a.id, warehouse_id=warehouse_a1.id,
                             company_id=supplier_a.id, quantity=Decimal("5"), unit="bag",
                             expiry_date=days_from_today(-1)))
        db_session.add(Batch(batch_number="FRESH-1", product_id=product_a.id, warehouse_id=warehouse_a1.id,
                             company_id=supplier_a.id, quantity=Decimal("5"), unit="bag",
                             expiry_date=days_from_today(30)))
        db_session.commit()

        assert expire_batches() == 1

        statuses = {b.batch_number: b.status for b in db_session.query(Batch).all()}
        assert statuses == {"OLD-1": "expired", "FRESH-1": "active"}
