# Overview: Pytest coverage for inventory levels, adjustments and transfers.

"""
Inventory Tests

Covers:
- Creating stock rows (opening quantity opens an INIT batch)
- Signed adjustments with FIFO batch consumption
- Low-stock detection and auto reorder
- Transfers between warehouses (optionally moving batches)
- Expiring batch report
"""

import pytest
from decimal import Decimal

from tubex.models import Batch, Inventory, AnalyticsEvent, AuditLogEntry


class TestCreateInventory:
    """POST /api/v1/inventory"""

    def test_create_with_opening_stock(self, client, supplier_admin_headers, product_a, warehouse_a1, db_session):
        response = client.post('/api/v1/inventory', headers=supplier_admin_headers, json={
            'product_id': product_a.id,
            'warehouse_id': warehouse_a1.id,
            'quantity': 25,
            'unit': 'bag',
            'min_threshold': 5,
        })

        assert response.status_code == 201
        data = response.json["inventory"]
        assert data["quantity"] == 25
        assert data["low_stock"] is False

        batches = db_session.query(Batch).filter_by(product_id=product_a.id).all()
        assert len(batches) == 1
        assert batches[0].batch_number.startswith(f"INIT-{product_a.id}-")
        assert batches[0].quantity == Decimal("25")

    def test_create_without_quantity_has_no_batch(self, client, supplier_admin_headers, product_a, warehouse_a1,
                                                  db_session):
        response = client.post('/api/v1/inventory', headers=supplier_admin_headers, json={
            'product_id': product_a.id,
            'warehouse_id': warehouse_a1.id,
            'unit': 'bag',
        })

        assert response.status_code == 201
        assert response.json["inventory"]["quantity"] == 0
        assert db_session.query(Batch).count() == 0

    def test_create_duplicate_conflict(self, client, supplier_admin_headers, stocked_product_a):
        response = client.post('/api/v1/inventory', headers=supplier_admin_headers, json={
            'product_id': stocked_product_a.product_id,
            'warehouse_id': stocked_product_a.warehouse_id,
            'unit': 'bag',
        })
        assert response.status_code == 409

    def test_create_missing_fields(self, client, supplier_admin_headers, product_a):
        response = client.post('/api/v1/inventory', headers=supplier_admin_headers, json={
            'product_id': product_a.id,
        })
        assert response.status_code == 400
        assert "Missing required fields" in response.json["error"]

    def test_create_negative_quantity(self, client, supplier_admin_headers, product_a, warehouse_a1):
        response = client.post('/api/v1/inventory', headers=supplier_admin_headers, json={
            'product_id': product_a.id,
            'warehouse_id': warehouse_a1.id,
            'quantity': -1,
            'unit': 'bag',
        })
        assert response.status_code == 400

    def test_threshold_order(self, client, supplier_admin_headers, product_a, warehouse_a1):
        response = client.post('/api/v1/inventory', headers=supplier_admin_headers, json={
            'product_id': product_a.id,
            'warehouse_id': warehouse_a1.id,
            'unit': 'bag',
            'min_threshold': 50,
            'max_threshold': 10,
        })
        assert response.status_code == 400

    def test_staff_cannot_create(self, client, supplier_staff_headers, product_a, warehouse_a1):
        response = client.post('/api/v1/inventory', headers=supplier_staff_headers, json={
            'product_id': product_a.id,
            'warehouse_id': warehouse_a1.id,
            'unit': 'bag',
        })
        assert response.status_code == 403


class TestAdjustInventory:
    """POST /api/v1/inventory/<id>/adjust"""

    def test_negative_adjustment_consumes_batches_fifo(self, client, supplier_admin_headers, stocked_product_a,
                                                       db_session):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': -50, 'reason': 'damaged'},
        )

        assert response.status_code == 200
        data = response.json["inventory"]
        assert data["quantity"] == 50
        assert [b["batch_number"] for b in data["batches"]] == ["B-OLD", "B-NEW"]
        assert Decimal(data["batches"][0]["deducted"]) == Decimal("40")
        assert Decimal(data["batches"][1]["deducted"]) == Decimal("10")

        old = db_session.query(Batch).filter_by(batch_number="B-OLD").one()
        assert old.status == "depleted"

        entry = db_session.query(AuditLogEntry).filter_by(action="inventory_adjusted").one()
        assert entry.entity_id == stocked_product_a.id
        assert entry.changes["reason"] == "damaged"

    def test_positive_adjustment_into_new_batch(self, client, supplier_admin_headers, stocked_product_a, db_session):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': 30, 'batch_number': 'B-2026-07', 'expiry_date': '2027-07-01'},
        )

        assert response.status_code == 200
        assert response.json["inventory"]["quantity"] == 130
        assert response.json["inventory"]["batches"][0]["created"] is True

        batch = db_session.query(Batch).filter_by(batch_number="B-2026-07").one()
        assert batch.quantity == Decimal("30")
        assert batch.warehouse_id == stocked_product_a.warehouse_id

    def test_positive_adjustment_tops_up_existing_batch(self, client, supplier_admin_headers, stocked_product_a,
                                                        db_session):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': 5, 'batch_number': 'B-NEW'},
        )

        assert response.status_code == 200
        batch = db_session.query(Batch).filter_by(batch_number="B-NEW").one()
        assert batch.quantity == Decimal("65")

    def test_insufficient_inventory(self, client, supplier_admin_headers, stocked_product_a, db_session):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': -101},
        )

        assert response.status_code == 400
        assert response.json["error"] == "Insufficient inventory"
        db_session.refresh(stocked_product_a)
        assert stocked_product_a.quantity == Decimal("100")

    @pytest.mark.parametrize("adjustment", [0, "abc", 1.234, None])
    def test_invalid_adjustment(self, client, supplier_admin_headers, stocked_product_a, adjustment):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': adjustment},
        )
        assert response.status_code == 400

    def test_staff_can_adjust(self, client, supplier_staff_headers, stocked_product_a):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_staff_headers,
            json={'adjustment': -1},
        )
        assert response.status_code == 200


class TestLowStock:
    """Low-stock detection and auto reorder."""

    def test_adjustment_below_threshold_flags_low_stock(self, client, supplier_admin_headers, stocked_product_a):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': -85},
        )
        assert response.json["inventory"]["low_stock"] is True

        listing = client.get('/api/v1/inventory/low-stock', headers=supplier_admin_headers)
        assert listing.status_code == 200
        assert [i["id"] for i in listing.json["items"]] == [stocked_product_a.id]

    def test_threshold_is_inclusive(self, client, supplier_admin_headers, stocked_product_a):
        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': -80},
        )
        assert response.json["inventory"]["quantity"] == 20
        assert response.json["inventory"]["low_stock"] is True

    def test_auto_reorder(self, client, supplier_admin_headers, stocked_product_a, db_session):
        update = client.put(
            f'/api/v1/inventory/{stocked_product_a.id}',
            headers=supplier_admin_headers,
            json={'auto_reorder': True, 'reorder_quantity': 200},
        )
        assert update.status_code == 200

        response = client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': -90},
        )
        assert response.json["inventory"]["last_reorder_date"] is not None

        event = db_session.query(AnalyticsEvent).filter_by(event_type="reorder_triggered").one()
        assert event.data["inventory_id"] == stocked_product_a.id
        assert event.company_id == stocked_product_a.company_id

    def test_no_reorder_without_flag(self, client, supplier_admin_headers, stocked_product_a, db_session):
        client.post(
            f'/api/v1/inventory/{stocked_product_a.id}/adjust',
            headers=supplier_admin_headers,
            json={'adjustment': -90},
        )
        assert db_session.query(AnalyticsEvent).filter_by(event_type="reorder_triggered").count() == 0


class TestTransfer:
    """POST /api/v1/inventory/transfer"""

    def test_transfer_creates_target_row_and_moves_batches(self, client, supplier_admin_headers, stocked_product_a,
                                                           warehouse_a1, warehouse_a2, db_session):
        response = client.post('/api/v1/inventory/transfer', headers=supplier_admin_headers, json={
            'product_id': stocked_product_a.product_id,
            'from_warehouse_id': warehouse_a1.id,
            'to_warehouse_id': warehouse_a2.id,
            'quantity': 60,
            'batch_numbers': ['B-NEW'],
        })

        assert response.status_code == 200
        assert response.json["source"]["quantity"] == 40
        assert response.json["target"]["quantity"] == 60
        assert response.json["moved_batches"] == ["B-NEW"]

        target = db_session.query(Inventory).filter_by(warehouse_id=warehouse_a2.id).one()
        assert target.unit == "bag"
        moved = db_session.query(Batch).filter_by(batch_number="B-NEW").one()
        assert moved.warehouse_id == warehouse_a2.id
        stayed = db_session.query(Batch).filter_by(batch_number="B-OLD").one()
        assert stayed.warehouse_id == warehouse_a1.id

    def test_transfer_insufficient(self, client, supplier_admin_headers, stocked_product_a, warehouse_a1,
                                   warehouse_a2):
        response = client.post('/api/v1/inventory/transfer', headers=supplier_admin_headers, json={
            'product_id': stocked_product_a.product_id,
            'from_warehouse_id': warehouse_a1.id,
            'to_warehouse_id': warehouse_a2.id,
            'quantity': 500,
        })
        assert response.status_code == 400

    def test_transfer_unknown_batch_rejected(self, client, supplier_admin_headers, stocked_product_a,
                                             warehouse_a1, warehouse_a2, db_session):
        response = client.post('/api/v1/inventory/transfer', headers=supplier_admin_headers, json={
            'product_id': stocked_product_a.product_id,
            'from_warehouse_id': warehouse_a1.id,
            'to_warehouse_id': warehouse_a2.id,
            'quantity': 60,
            'batch_numbers': ['B-NEW', 'B-GHOST'],
        })

        assert response.status_code == 400
        assert "B-GHOST" in response.json["error"]

        source = db_session.query(Inventory).filter_by(warehouse_id=warehouse_a1.id).one()
        assert source.quantity == Decimal("100")
        assert db_session.query(Inventory).filter_by(warehouse_id=warehouse_a2.id).first() is None
        assert db_session.query(Batch).filter_by(batch_number="B-NEW").one().warehouse_id == warehouse_a1.id

    def test_transfer_same_warehouse(self, client, supplier_admin_headers, stocked_product_a, warehouse_a1):
        response = client.post('/api/v1/inventory/transfer', headers=supplier_admin_headers, json={
            'product_id': stocked_product_a.product_id,
            'from_warehouse_id': warehouse_a1.id,
            'to_warehouse_id': warehouse_a1.id,
            'quantity': 1,
        })
        assert response.status_code == 400

    def test_staff_cannot_transfer(self, client, supplier_staff_headers, stocked_product_a, warehouse_a1,
                                   warehouse_a2):
        response = client.post('/api/v1/inventory/transfer', headers=supplier_staff_headers, json={
            'product_id': stocked_product_a.product_id,
            'from_warehouse_id': warehouse_a1.id,
            'to_warehouse_id': warehouse_a2.id,
            'quantity': 1,
        })
        assert response.status_code == 403


class TestReadsAndSettings:
    """Listing, expiry report, settings updates and deletion."""

    def test_list_paginated(self, client, supplier_admin_headers, stocked_product_a):
        response = client.get('/api/v1/inventory?page=1&limit=5', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["count"] == 1
        assert response.json["pagination"] == {
            'page': 1,
            'per_page': 5,
            'total': 1,
            'total_pages': 1,
            'has_next': False,
            'has_prev': False,
        }

    def test_own_company_route(self, client, supplier_admin_headers, supplier_a, stocked_product_a):
        response = client.get(f'/api/v1/inventory/company/{supplier_a.id}', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["items"][0]["id"] == stocked_product_a.id

    def test_expiring_batches(self, client, supplier_admin_headers, stocked_product_a):
        soon = client.get('/api/v1/inventory/expiring-batches?days=30', headers=supplier_admin_headers)
        later = client.get('/api/v1/inventory/expiring-batches?days=365', headers=supplier_admin_headers)

        assert [b["batch_number"] for b in soon.json["items"]] == ["B-OLD"]
        assert soon.json["days"] == 30
        assert [b["batch_number"] for b in later.json["items"]] == ["B-OLD", "B-NEW"]

    def test_update_does_not_touch_quantity(self, client, supplier_admin_headers, stocked_product_a):
        response = client.put(
            f'/api/v1/inventory/{stocked_product_a.id}',
            headers=supplier_admin_headers,
            json={'quantity': 5},
        )
        assert response.status_code == 400

    def test_delete(self, client, supplier_admin_headers, stocked_product_a, db_session):
        inventory_id = stocked_product_a.id
        response = client.delete(f'/api/v1/inventory/{inventory_id}', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert db_session.get(Inventory, inventory_id) is None
