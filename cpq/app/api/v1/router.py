"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from cpq.app.api.v1.endpoints import pricing, quotes

router = APIRouter()

# Pricing engine endpoints
router.include_router(pricing.router)

# Quote totals, pricing and workflow endpoints
router.include_router(quotes.router)
