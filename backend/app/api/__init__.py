"""
API Routes
Project: JobQuote (Quote & Invoice Backend)

Aggregation of the versioned routers.
"""

from app.api.v1 import api_v1_router

__all__ = ["api_v1_router"]
