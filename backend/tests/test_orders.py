# Overview: Pytest coverage for the order lifecycle and stock allocation.

"""
Order Tests

Covers:
- Placing an order allocates stock from the supplier's inventory (FIFO batches)
- Single-supplier and own-product rules
- Status transitions and who may perform them
- Cancellation restores rows and batches
- Bulk processing, history and the order document
"""

import pytest
from decimal import Decimal

from tubex.models import Batch, Inventory, Order, OrderHistory, OrderDocument, AnalyticsEvent
from tubex.services.order_service import can_transition


DELIVERY = {'street': '12 Tran Hung Dao', 'city': 'Hanoi', 'province': 'HN'}


def place_order(client, headers, product_id, quantity, **extra):
    payload = {
        'items': [{'product_id': product_id, 'quantity': quantity}],
        'delivery_address': DELIVERY,
    }
    payload.update(extra)
    return client.post('/api/v1/orders', headers=headers, json=payload)


class TestTransitions:
    """Pure lifecycle table checks."""

    @pytest.mark.parametrize("current,new", [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "processing"),
        ("processing", "shipped"),
        ("processing", "cancelled"),
        ("shipped", "delivered"),
    ])
    def test_allowed(self, current, new):
        assert can_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        ("pending", "shipped"),
        ("confirmed", "delivered"),
        ("shipped", "cancelled"),
        ("delivered", "pending"),
        ("cancelled", "confirmed"),
    ])
    def test_rejected(self, current, new):
        assert not can_transition(current, new)


class TestCreateOrder:
    """Placing orders."""

    def test_create_order_deducts_stock_fifo(self, client, dealer_headers, stocked_product_a, db_session):
        response = place_order(client, dealer_headers, stocked_product_a.product_id, 50, notes='Urgent')

        assert response.status_code == 201
        order = response.json["order"]
        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert order["company_id"] == stocked_product_a.company_id
        assert order["total_amount"] == 4775
        assert order["items"][0]["unit_price"] == 95.5

        db_session.refresh(stocked_product_a)
        assert stocked_product_a.quantity == Decimal("50")

        old = db_session.query(Batch).filter_by(batch_number="B-OLD").one()
        new = db_session.query(Batch).filter_by(batch_number="B-NEW").one()
        assert old.quantity == Decimal("0")
        assert old.status == "depleted"
        assert new.quantity == Decimal("50")

        allocations = order["items"][0]["metadata"]["allocations"]
        assert allocations[0]["inventory_id"] == stocked_product_a.id
        assert [b["batch_number"] for b in allocations[0]["batches"]] == ["B-OLD", "B-NEW"]

    def test_create_order_spans_warehouses(self, client, dealer_headers, stocked_product_a, warehouse_a2,
                                           supplier_a, db_session):
        second = Inventory(company_id=supplier_a.id, product_id=stocked_product_a.product_id,
                           warehouse_id=warehouse_a2.id, quantity=Decimal("30"), unit="bag")
        db_session.add(second)
        db_session.commit()

        response = place_order(client, dealer_headers, stocked_product_a.product_id, 120)
        assert response.status_code == 201

        db_session.refresh(stocked_product_a)
        db_session.refresh(second)
        assert stocked_product_a.quantity == Decimal("0")
        assert second.quantity == Decimal("10")

    def test_create_order_insufficient_stock(self, client, dealer_headers, stocked_product_a, db_session):
        response = place_order(client, dealer_headers, stocked_product_a.product_id, 101)
        assert response.status_code == 400
        assert "Insufficient stock" in response.json["error"]

        db_session.refresh(stocked_product_a)
        assert stocked_product_a.quantity == Decimal("100")
        assert db_session.query(Order).count() == 0

    def test_create_order_applies_discount(self, client, dealer_headers, stocked_product_a):
        response = client.post('/api/v1/orders', headers=dealer_headers, json={
            'items': [{'product_id': stocked_product_a.product_id, 'quantity': 10, 'discount': 5.5}],
            'delivery_address': DELIVERY,
        })
        assert response.status_code == 201
        assert response.json["order"]["total_amount"] == 900

    def test_create_order_multiple_suppliers_rejected(self, client, dealer_headers, stocked_product_a, product_b):
        response = client.post('/api/v1/orders', headers=dealer_headers, json={
            'items': [
                {'product_id': stocked_product_a.product_id, 'quantity': 1},
                {'product_id': product_b.id, 'quantity': 1},
            ],
            'delivery_address': DELIVERY,
        })
        assert response.status_code == 400
        assert "single supplier" in response.json["error"]

    def test_create_order_own_products_rejected(self, client, supplier_admin_headers, stocked_product_a):
        response = place_order(client, supplier_admin_headers, stocked_product_a.product_id, 1)
        assert response.status_code == 400
        assert "own products" in response.json["error"]

    def test_create_order_inactive_product_rejected(self, client, dealer_headers, stocked_product_a,
                                                    product_a, db_session):
        product_a.status = "inactive"
        db_session.commit()

        response = place_order(client, dealer_headers, product_a.id, 1)
        assert response.status_code == 400

    @pytest.mark.parametrize("items", [
        [],
        [{'product_id': 1}],
        [{'product_id': 1, 'quantity': 0}],
        [{'product_id': 'abc', 'quantity': 1}],
    ])
    def test_create_order_invalid_items(self, client, dealer_headers, items):
        response = client.post('/api/v1/orders', headers=dealer_headers, json={
            'items': items,
            'delivery_address': DELIVERY,
        })
        assert response.status_code == 400

    def test_create_order_requires_delivery_address(self, client, dealer_headers, stocked_product_a):
        response = client.post('/api/v1/orders', headers=dealer_headers, json={
            'items': [{'product_id': stocked_product_a.product_id, 'quantity': 1}],
        })
        assert response.status_code == 400

    def test_create_order_writes_history_and_document(self, client, dealer_headers, stocked_product_a, db_session):
        response = place_order(client, dealer_headers, stocked_product_a.product_id, 5)
        order_id = response.json["order"]["id"]

        history = db_session.query(OrderHistory).filter_by(order_id=order_id).all()
        assert len(history) == 1
        assert history[0].previous_status is None
        assert history[0].new_status == "pending"

        document = db_session.query(OrderDocument).filter_by(order_id=order_id).one()
        assert document.status == "pending"
        assert document.customer_company_id == response.json["order"]["customer_company_id"]

        events = db_session.query(AnalyticsEvent).filter_by(event_type="order_created").all()
        assert len(events) == 1
        assert events[0].data["order_id"] == order_id

    def test_low_stock_after_order_triggers_reorder(self, client, dealer_headers, stocked_product_a, db_session):
        stocked_product_a.auto_reorder = True
        db_session.commit()

        response = place_order(client, dealer_headers, stocked_product_a.product_id, 85)
        assert response.status_code == 201

        db_session.refresh(stocked_product_a)
        assert stocked_product_a.last_reorder_date is not None
        assert db_session.query(AnalyticsEvent).filter_by(event_type="reorder_triggered").count() == 1


class TestListAndRead:
    """Order listing by direction."""

    def test_directions(self, client, dealer_headers, supplier_admin_headers, stocked_product_a):
        place_order(client, dealer_headers, stocked_product_a.product_id, 1)
        place_order(client, dealer_headers, stocked_product_a.product_id, 2)

        incoming = client.get('/api/v1/orders?direction=incoming', headers=supplier_admin_headers)
        outgoing = client.get('/api/v1/orders?direction=outgoing', headers=supplier_admin_headers)
        dealer_out = client.get('/api/v1/orders?direction=outgoing', headers=dealer_headers)

        assert incoming.json["pagination"]["total"] == 2
        assert outgoing.json["pagination"]["total"] == 0
        assert dealer_out.json["pagination"]["total"] == 2
        assert "items" not in incoming.json["items"][0]

    def test_invalid_direction(self, client, dealer_headers):
        response = client.get('/api/v1/orders?direction=sideways', headers=dealer_headers)
        assert response.status_code == 400

    def test_status_filter(self, client, dealer_headers, supplier_admin_headers, stocked_product_a):
        first = place_order(client, dealer_headers, stocked_product_a.product_id, 1).json["order"]["id"]
        place_order(client, dealer_headers, stocked_product_a.product_id, 1)
        client.put(f'/api/v1/orders/{first}', headers=supplier_admin_headers, json={'status': 'confirmed'})

        response = client.get('/api/v1/orders?status=confirmed', headers=dealer_headers)
        assert [o["id"] for o in response.json["items"]] == [first]


class TestStatusUpdates:
    """Supplier-driven lifecycle."""

    @pytest.fixture
    def order_id(self, client, dealer_headers, stocked_product_a):
        return place_order(client, dealer_headers, stocked_product_a.product_id, 10).json["order"]["id"]

    def test_full_lifecycle(self, client, supplier_admin_headers, order_id):
        for status in ("confirmed", "processing", "shipped", "delivered"):
            response = client.put(
                f'/api/v1/orders/{order_id}',
                headers=supplier_admin_headers,
                json={'status': status, 'notes': f'to {status}'},
            )
            assert response.status_code == 200, response.json
            assert response.json["order"]["status"] == status

        history = client.get(f'/api/v1/orders/{order_id}/history', headers=supplier_admin_headers)
        assert history.json["count"] == 5
        assert history.json["items"][0]["new_status"] == "delivered"

    def test_invalid_transition(self, client, supplier_admin_headers, order_id):
        response = client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json={'status': 'shipped'})
        assert response.status_code == 400
        assert "Invalid status transition" in response.json["error"]

    def test_customer_cannot_update(self, client, dealer_headers, order_id):
        response = client.put(f'/api/v1/orders/{order_id}', headers=dealer_headers, json={'status': 'confirmed'})
        assert response.status_code == 403

    def test_payment_status_failed(self, client, supplier_admin_headers, order_id):
        response = client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers,
                              json={'payment_status': 'failed'})
        assert response.status_code == 200
        assert response.json["order"]["payment_status"] == "failed"
        assert response.json["order"]["metadata"]["updated_by"] is not None

    @pytest.mark.parametrize("payment_status", ["paid", "refunded"])
    def test_payment_status_needs_recorded_payment(self, client, supplier_admin_headers, order_id, payment_status):
        response = client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers,
                              json={'payment_status': payment_status})
        assert response.status_code == 400
        assert "recorded through payments" in response.json["error"]

        order = client.get(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers).json["order"]
        assert order["payment_status"] == "pending"

    def test_empty_update_rejected(self, client, supplier_admin_headers, order_id):
        response = client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json={})
        assert response.status_code == 400

    def test_supplier_cancel_processing_restores_stock(self, client, supplier_admin_headers, order_id,
                                                       stocked_product_a, db_session):
        client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json={'status': 'confirmed'})
        response = client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers,
                              json={'status': 'cancelled'})
        assert response.status_code == 200

        db_session.refresh(stocked_product_a)
        assert stocked_product_a.quantity == Decimal("100")

    def test_document_follows_status(self, client, supplier_admin_headers, order_id):
        client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json={'status': 'confirmed'})
        response = client.get(f'/api/v1/activity/orders/{order_id}/document', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["document"]["status"] == "confirmed"


class TestCancelOrder:
    """Either party may cancel a pending order."""

    @pytest.fixture
    def order_id(self, client, dealer_headers, stocked_product_a):
        return place_order(client, dealer_headers, stocked_product_a.product_id, 50).json["order"]["id"]

    def test_customer_cancel_restores_batches(self, client, dealer_headers, order_id, stocked_product_a, db_session):
        response = client.post(f'/api/v1/orders/{order_id}/cancel', headers=dealer_headers,
                               json={'reason': 'Ordered twice'})
        assert response.status_code == 200
        order = response.json["order"]
        assert order["status"] == "cancelled"
        assert order["metadata"]["cancellation_reason"] == "Ordered twice"

        db_session.refresh(stocked_product_a)
        assert stocked_product_a.quantity == Decimal("100")

        old = db_session.query(Batch).filter_by(batch_number="B-OLD").one()
        new = db_session.query(Batch).filter_by(batch_number="B-NEW").one()
        assert old.quantity == Decimal("40")
        assert old.status == "active"
        assert new.quantity == Decimal("60")

    def test_supplier_can_cancel(self, client, supplier_admin_headers, order_id):
        response = client.post(f'/api/v1/orders/{order_id}/cancel', headers=supplier_admin_headers, json={})
        assert response.status_code == 200

    def test_cannot_cancel_confirmed(self, client, dealer_headers, supplier_admin_headers, order_id):
        client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json={'status': 'confirmed'})
        response = client.post(f'/api/v1/orders/{order_id}/cancel', headers=dealer_headers, json={})
        assert response.status_code == 400

    def test_cannot_cancel_twice(self, client, dealer_headers, order_id, stocked_product_a, db_session):
        client.post(f'/api/v1/orders/{order_id}/cancel', headers=dealer_headers, json={})
        response = client.post(f'/api/v1/orders/{order_id}/cancel', headers=dealer_headers, json={})
        assert response.status_code == 400

        db_session.refresh(stocked_product_a)
        assert stocked_product_a.quantity == Decimal("100")


class TestBulkProcess:
    """Bulk status changes on incoming orders."""

    def test_bulk_confirm(self, client, dealer_headers, supplier_admin_headers, stocked_product_a):
        ids = [place_order(client, dealer_headers, stocked_product_a.product_id, 1).json["order"]["id"]
               for _ in range(3)]

        response = client.post('/api/v1/orders/bulk-process', headers=supplier_admin_headers, json={
            'order_ids': ids + [99999],
            'status': 'confirmed',
        })
        assert response.status_code == 200
        assert response.json["processed"] == ids
        assert response.json["failed"] == [{'order_id': 99999, 'error': 'Order not found'}]

    def test_bulk_nothing_processed(self, client, dealer_headers, supplier_admin_headers, stocked_product_a):
        order_id = place_order(client, dealer_headers, stocked_product_a.product_id, 1).json["order"]["id"]

        response = client.post('/api/v1/orders/bulk-process', headers=supplier_admin_headers, json={
            'order_ids': [order_id],
            'status': 'delivered',
        })
        assert response.status_code == 400
        assert response.json["processed"] == []
        assert len(response.json["failed"]) == 1

    def test_bulk_requires_manage_orders(self, client, dealer_staff_headers):
        response = client.post('/api/v1/orders/bulk-process', headers=dealer_staff_headers, json={
            'order_ids': [1],
            'status': 'confirmed',
        })
        assert response.status_code == 403


class TestMalformedBodies:
    """Order endpoints reject JSON bodies that are not objects."""

    @pytest.fixture
    def order_id(self, client, dealer_headers, stocked_product_a):
        return place_order(client, dealer_headers, stocked_product_a.product_id, 1).json["order"]["id"]

    @pytest.mark.parametrize("body", [[1, 2], "confirmed", 7])
    def test_update_rejects_non_object(self, client, supplier_admin_headers, order_id, body):
        response = client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json=body)
        assert response.status_code == 400
        assert response.json["error"] == "Invalid JSON payload"

    def test_cancel_rejects_list(self, client, dealer_headers, order_id):
        response = client.post(f'/api/v1/orders/{order_id}/cancel', headers=dealer_headers, json=["reason"])
        assert response.status_code == 400

        order = client.get(f'/api/v1/orders/{order_id}', headers=dealer_headers).json["order"]
        assert order["status"] == "pending"

    def test_bulk_rejects_list(self, client, supplier_admin_headers, order_id):
        response = client.post('/api/v1/orders/bulk-process', headers=supplier_admin_headers, json=[order_id])
        assert response.status_code == 400
        assert response.json["error"] == "Invalid JSON payload"

    def test_create_rejects_list(self, client, dealer_headers, stocked_product_a):
        response = client.post('/api/v1/orders', headers=dealer_headers,
                               json=[{'product_id': stocked_product_a.product_id, 'quantity': 1}])
        assert response.status_code == 400
