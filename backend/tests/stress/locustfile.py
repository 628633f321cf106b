"""
Tubex Load Testing with Locust

Run against a seeded server (see `flask companies create` / `flask users create`):
    locust -f backend/tests/stress/locustfile.py --host http://127.0.0.1:5001

Or headless:
    locust -f backend/tests/stress/locustfile.py --host http://127.0.0.1:5001 \
           --users 10 --spawn-rate 2 --run-time 60s --headless

Environment:
- TUBEX_DEALER_EMAILS / TUBEX_SUPPLIER_EMAILS: comma-separated logins
- TUBEX_PASSWORD: shared password for those logins
- TUBEX_PRODUCT_ID / TUBEX_INVENTORY_ID: stocked product and its inventory row

Pass thresholds:
- p95 response time < 500ms for reads
- p95 response time < 1000ms for writes
- Error rate < 1%
"""

import os
import time
import random
from typing import Optional, Dict, List

from locust import HttpUser, task, between, events


# =============================================================================
# CONFIGURATION
# =============================================================================

def _emails(var: str, default: str) -> List[str]:
    return [e.strip() for e in os.environ.get(var, default).split(",") if e.strip()]


DEALER_EMAILS = _emails("TUBEX_DEALER_EMAILS", "admin@delta.vn")
SUPPLIER_EMAILS = _emails("TUBEX_SUPPLIER_EMAILS", "staff@alpha.vn")
PASSWORD = os.environ.get("TUBEX_PASSWORD", "Passw0rd!")
PRODUCT_ID = int(os.environ.get("TUBEX_PRODUCT_ID", "1"))
INVENTORY_ID = int(os.environ.get("TUBEX_INVENTORY_ID", "1"))

DELIVERY_ADDRESS = {"street": "1 Load Test St", "city": "Hanoi", "province": "HN"}

WRITE_MARKERS = ("place", "cancel", "adjust")


# =============================================================================
# METRICS TRACKING
# =============================================================================

class MetricsCollector:
    """Per-endpoint counts, errors and response times."""

    def __init__(self):
        self.request_counts: Dict[str, int] = {}
        self.error_counts: Dict[str, int] = {}
        self.response_times: Dict[str, List[float]] = {}

    def record(self, name: str, response_time: float, success: bool):
        self.request_counts.setdefault(name, 0)
        self.error_counts.setdefault(name, 0)
        self.response_times.setdefault(name, [])

        self.request_counts[name] += 1
        if not success:
            self.error_counts[name] += 1
        self.response_times[name].append(response_time)

    def get_summary(self) -> Dict:
        summary = {}
        for name, count in self.request_counts.items():
            times = sorted(self.response_times[name])
            if not times:
                continue
            p95_idx = min(int(len(times) * 0.95), len(times) - 1)
            summary[name] = {
                "count": count,
                "errors": self.error_counts[name],
                "error_rate": self.error_counts[name] / count * 100,
                "avg_ms": sum(times) / len(times),
                "p95_ms": times[p95_idx],
            }
        return summary


metrics = MetricsCollector()


# =============================================================================
# USER BEHAVIORS
# =============================================================================

class TubexUser(HttpUser):
    """Base user that logs in on start."""
    wait_time = between(0.5, 2)
    abstract = True

    emails: List[str] = []
    token: Optional[str] = None

    def on_start(self):
        response = self.client.post(
            "/api/v1/auth/login",
            json={"email": random.choice(self.emails), "password": PASSWORD},
            name="auth/login",
        )
        if response.status_code == 200:
            self.token = response.json().get("token")

    def get_headers(self) -> Dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def timed(self, method: str, path: str, name: str, ok=(200,), **kwargs):
        start = time.time()
        response = self.client.request(method, path, headers=self.get_headers(), name=name, **kwargs)
        metrics.record(name, (time.time() - start) * 1000, response.status_code in ok)
        return response


class BrowsingDealer(TubexUser):
    """Dealer reading the catalog and their own orders."""
    weight = 3
    emails = DEALER_EMAILS

    @task(5)
    def browse_catalog(self):
        self.timed("GET", "/api/v1/products", "products/list", params={"limit": 20})

    @task(2)
    def search_catalog(self):
        self.timed("GET", "/api/v1/products", "products/search", params={"search": "cement"})

    @task(2)
    def list_orders(self):
        self.timed("GET", "/api/v1/orders", "orders/list", params={"direction": "outgoing"})

    @task(1)
    def health_check(self):
        self.timed("GET", "/api/v1/health", "system/health")


class OrderingDealer(TubexUser):
    """
    Dealer placing orders against one supplier's stock.

    Concurrent placements contend for the same inventory rows; a 400 for
    insufficient stock or a 409 for a busy row is an expected outcome.
    """
    weight = 2
    emails = DEALER_EMAILS
    placed: List[int] = []

    @task(4)
    def place_order(self):
        response = self.timed(
            "POST", "/api/v1/orders", "orders/place", ok=(201, 400, 409),
            json={
                "items": [{"product_id": PRODUCT_ID, "quantity": random.randint(1, 3)}],
                "delivery_address": DELIVERY_ADDRESS,
            },
        )
        if response.status_code == 201:
            self.placed.append(response.json()["order"]["id"])

    @task(1)
    def cancel_recent_order(self):
        if not self.placed:
            return
        order_id = self.placed.pop()
        self.timed("POST", f"/api/v1/orders/{order_id}/cancel", "orders/cancel", ok=(200, 400),
                   json={"reason": "Load test"})


class StockKeeper(TubexUser):
    """Supplier staff adjusting stock and watching thresholds."""
    weight = 1
    emails = SUPPLIER_EMAILS

    @task(3)
    def adjust_stock(self):
        self.timed(
            "POST", f"/api/v1/inventory/{INVENTORY_ID}/adjust", "inventory/adjust", ok=(200, 400, 409),
            json={"adjustment": random.randint(1, 5), "reason": "Load test restock"},
        )

    @task(2)
    def low_stock(self):
        self.timed("GET", "/api/v1/inventory/low-stock", "inventory/low_stock")

    @task(2)
    def list_inventory(self):
        self.timed("GET", "/api/v1/inventory", "inventory/list")


# =============================================================================
# EVENT HANDLERS
# =============================================================================

@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Print summary when test stops."""
    print("\n" + "=" * 80)
    print("LOAD TEST SUMMARY")
    print("=" * 80)

    print(f"\n{'Endpoint':<30} {'Count':>8} {'Errors':>8} {'Err%':>8} {'Avg(ms)':>10} {'P95(ms)':>10}")
    print("-" * 80)

    total_requests = 0
    total_errors = 0
    all_pass = True

    for name, stats in sorted(metrics.get_summary().items()):
        total_requests += stats["count"]
        total_errors += stats["errors"]

        p95_threshold = 1000 if any(marker in name for marker in WRITE_MARKERS) else 500
        passed = stats["p95_ms"] < p95_threshold and stats["error_rate"] < 1
        all_pass = all_pass and passed

        print(f"{name:<30} {stats['count']:>8} {stats['errors']:>8} {stats['error_rate']:>7.2f}% "
              f"{stats['avg_ms']:>9.1f} {stats['p95_ms']:>9.1f} [{'PASS' if passed else 'FAIL'}]")

    print("-" * 80)
    print(f"{'TOTAL':<30} {total_requests:>8} {total_errors:>8} {total_errors / max(total_requests, 1) * 100:>7.2f}%")
    print("=" * 80)
    print("\n[PASS] All endpoints within thresholds" if all_pass else "\n[FAIL] Some endpoints exceeded thresholds")
