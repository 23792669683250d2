"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from buffet_ledger.app.api.v1.endpoints import (
    auth, companies, entries, settlements, receipts, admin
)

router = APIRouter()

# Session / PIN sign-in
router.include_router(auth.router)

# Counter screens
router.include_router(companies.router)
router.include_router(entries.router)
router.include_router(settlements.router)
router.include_router(settlements.payments_router)
router.include_router(receipts.router)

# Admin dashboard
router.include_router(admin.router)
