# Overview: Pytest coverage for document-store reads (audit trail, analytics, customer activity).

import pytest
from decimal import Decimal


def place_order(client, headers, product_id, quantity):
    return client.post('/api/v1/orders', headers=headers, json={
        'items': [{'product_id': product_id, 'quantity': quantity}],
        'delivery_address': {'street': '12 Tran Hung Dao', 'city': 'Hanoi', 'province': 'HN'},
    })


@pytest.fixture
def order_id(client, dealer_headers, stocked_product_a):
    response = place_order(client, dealer_headers, stocked_product_a.product_id, 5)
    assert response.status_code == 201
    return response.json["order"]["id"]


class TestAuditTrail:
    """GET /api/v1/activity/audit"""

    def test_status_change_recorded(self, client, supplier_admin_headers, order_id):
        client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json={'status': 'confirmed'})

        response = client.get('/api/v1/activity/audit?entity_type=order', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["count"] == 1
        entry = response.json["items"][0]
        assert entry["action"] == "order_status_changed"
        assert entry["entity_id"] == order_id
        assert entry["changes"]["status"] == {"from": "pending", "to": "confirmed"}

    def test_scoped_to_company(self, client, supplier_admin_headers, supplier_b_headers, order_id):
        client.put(f'/api/v1/orders/{order_id}', headers=supplier_admin_headers, json={'status': 'confirmed'})

        response = client.get('/api/v1/activity/audit', headers=supplier_b_headers)
        assert response.json["items"] == []


class TestAnalytics:
    """GET /api/v1/activity/analytics"""

    def test_events_and_summary(self, client, supplier_admin_headers, order_id):
        response = client.get('/api/v1/activity/analytics', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert response.json["summary"] == {"order_created": 1}
        event = response.json["events"][0]
        assert event["event_type"] == "order_created"
        assert event["data"]["order_id"] == order_id

    def test_window_filters(self, client, supplier_admin_headers, order_id):
        future = client.get('/api/v1/activity/analytics?since=2100-01-01T00:00:00Z', headers=supplier_admin_headers)
        assert future.json["events"] == []
        assert future.json["summary"] == {}

        past = client.get('/api/v1/activity/analytics?until=2000-01-01T00:00:00Z', headers=supplier_admin_headers)
        assert past.json["events"] == []

    def test_event_type_filter_keeps_summary(self, client, supplier_admin_headers, order_id):
        response = client.get('/api/v1/activity/analytics?event_type=reorder_triggered',
                              headers=supplier_admin_headers)
        assert response.json["events"] == []
        assert response.json["summary"] == {"order_created": 1}

    @pytest.mark.parametrize("query", [
        "since=yesterday",
        "since=2026-05-01T00:00:00Z&until=2026-04-01T00:00:00Z",
    ])
    def test_bad_window(self, client, supplier_admin_headers, query):
        response = client.get(f'/api/v1/activity/analytics?{query}', headers=supplier_admin_headers)
        assert response.status_code == 400


class TestCustomerActivity:
    """GET /api/v1/activity/customers/<user_id>"""

    def test_supplier_sees_customer_orders(self, client, supplier_admin_headers, dealer_admin, order_id):
        response = client.get(f'/api/v1/activity/customers/{dealer_admin.id}', headers=supplier_admin_headers)
        assert response.status_code == 200
        assert [a["activity_type"] for a in response.json["items"]] == ["order_placed"]
        assert response.json["items"][0]["metadata"]["order_id"] == order_id

    def test_cancellation_recorded(self, client, supplier_admin_headers, dealer_headers, dealer_admin, order_id):
        client.post(f'/api/v1/orders/{order_id}/cancel', headers=dealer_headers, json={'reason': 'Changed plan'})

        response = client.get(f'/api/v1/activity/customers/{dealer_admin.id}', headers=supplier_admin_headers)
        assert {a["activity_type"] for a in response.json["items"]} == {"order_placed", "order_cancelled"}

    def test_own_employee(self, client, dealer_headers, dealer_admin, order_id):
        response = client.get(f'/api/v1/activity/customers/{dealer_admin.id}', headers=dealer_headers)
        assert response.status_code == 200
        assert response.json["count"] == 1

    def test_unrelated_company_not_found(self, client, supplier_b_headers, dealer_admin, order_id):
        response = client.get(f'/api/v1/activity/customers/{dealer_admin.id}', headers=supplier_b_headers)
        assert response.status_code == 404

    def test_unknown_user(self, client, supplier_admin_headers):
        response = client.get('/api/v1/activity/customers/99999', headers=supplier_admin_headers)
        assert response.status_code == 404


class TestOrderDocument:
    """GET /api/v1/activity/orders/<id>/document"""

    def test_customer_reads_document(self, client, dealer_headers, order_id):
        response = client.get(f'/api/v1/activity/orders/{order_id}/document', headers=dealer_headers)
        assert response.status_code == 200
        document = response.json["document"]
        assert document["order_id"] == order_id
        assert Decimal(document["items"][0]["quantity"]) == 5

    def test_third_party_not_found(self, client, supplier_b_headers, order_id):
        response = client.get(f'/api/v1/activity/orders/{order_id}/document', headers=supplier_b_headers)
        assert response.status_code == 404
