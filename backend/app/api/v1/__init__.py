"""
API v1 Routes
Project: JobQuote (Quote & Invoice Backend)

Version 1 router of the API.
"""

from fastapi import APIRouter

from app.api.v1 import business_profile, clients, emails, invoices, quotes, usage

# Aggregated v1 router
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(clients.router)
api_v1_router.include_router(business_profile.router)
api_v1_router.include_router(quotes.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(usage.router)
api_v1_router.include_router(emails.router)

__all__ = ["api_v1_router"]
