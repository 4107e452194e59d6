"""
Pre-Deploy and Smoke Test Script.

Runs the application in-process and executes a smoke test:
1. Health Check
2. Single line pricing (tier discount)
3. Whole quote pricing -> totals
4. Approval check
"""

import sys
from decimal import Decimal

from fastapi.testclient import TestClient
from cpq.app.main import app

client = TestClient(app)

TIER_RULE = {
    "id": "smoke-tier",
    "name": "Smoke volume discount",
    "org_id": "default",
    "rule_type": "tier",
    "conditions": {"min_qty": 10},
    "discount_type": "percentage",
    "discount_value": 10,
    "priority": 5,
}


def print_step(step, msg):
    print(f"[{step}] {msg}")


def fail(msg):
    print(f"❌ FAILURE: {msg}")
    sys.exit(1)


def success(msg):
    print(f"✅ {msg}")


def main():
    print("🚀 Starting Deployment Validation...")

    # 1. Health Check
    print_step("PRE-DEPLOY", "Checking /health...")
    response = client.get("/health")
    if response.status_code != 200:
        fail(f"Health check returned {response.status_code}")
    success("Health check passed")

    # 2. Line pricing
    print_step("PRICING", "Pricing 20 units at 100 with a 10% tier rule...")
    response = client.post("/v1/pricing/calculate", json={
        "context": {
            "product_id": "smoke-product",
            "quantity": 20,
            "customer_level": "normal",
            "base_price": 100,
            "org_id": "default",
        },
        "rules": [TIER_RULE],
    })
    if response.status_code != 200:
        fail(f"Pricing failed: {response.text}")
    unit_price = Decimal(response.json()["unit_price"])
    if unit_price != Decimal("90"):
        fail(f"Expected unit price 90.00, got {unit_price}")
    success(f"Unit price {unit_price}")

    # 3. Quote pricing and totals
    print_step("QUOTE", "Pricing a one-line quote with a 100 discount...")
    response = client.post("/v1/quotes/price", json={
        "org_id": "default",
        "customer_level": "normal",
        "lines": [{"product_id": "smoke-product", "product_name": "Smoke", "quantity": 20, "base_price": 100}],
        "rules": [TIER_RULE],
        "tax_rate": "0.05",
        "discount_amount": 100,
    })
    if response.status_code != 200:
        fail(f"Quote pricing failed: {response.text}")
    total = Decimal(response.json()["totals"]["total_amount"])
    if total != Decimal("1785"):
        fail(f"Expected total 1785.00, got {total}")
    success(f"Quote total {total}")

    # 4. Approval
    print_step("APPROVAL", "Submitting quote against a 1000 threshold...")
    response = client.post("/v1/quotes/approval-check", json={
        "total_amount": str(total),
        "settings": [{"name": "Manager", "threshold_amount": 1000}],
    })
    if response.status_code != 200 or response.json()["status"] != "pending_approval":
        fail(f"Approval check failed: {response.text}")
    success("Quote routed to approval")

    print("🎉 Deployment validation complete")


if __name__ == "__main__":
    main()
