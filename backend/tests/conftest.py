"""
Pytest configuration and fixtures for the JobQuote services.

The database session is an AsyncMock; models are real ORM instances
that are never attached to a session.
"""

import datetime
import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Client, Invoice, Quote
from app.schemas.quote import QuoteStatus
from app.schemas.usage import QuotaLimits, SubscriptionStatus
from app.services import quote_state_machine


# ============================================================
# AsyncSession mock
# ============================================================


@asynccontextmanager
async def _savepoint():
    yield


def make_result(value=None, scalar=None):
    """Build a mock Result for db.execute."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = scalar
    result.scalar.return_value = scalar
    return result


@pytest.fixture
def mock_db():
    """Create a mock AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    db.begin_nested = MagicMock(side_effect=lambda: _savepoint())
    return db


# ============================================================
# Time
# ============================================================


@pytest.fixture
def now():
    """Wednesday 14 October 2026, 09:30 in Sydney."""
    return datetime.datetime(2026, 10, 13, 22, 30, tzinfo=datetime.timezone.utc)


# ============================================================
# Models
# ============================================================


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def client(user_id):
    """A client with a valid email."""
    return Client(
        id=uuid.uuid4(),
        user_id=user_id,
        name="Sarah Nguyen",
        email="sarah@example.com",
        phone="0412 345 678",
    )


@pytest.fixture
def bathroom_items():
    """4h labour at $120 and one vanity at $180."""
    return [
        {"name": "Labour", "category": "labour", "quantity": Decimal("4"), "unit_price": Decimal("120.00")},
        {"name": "Vanity unit", "category": "materials", "quantity": Decimal("1"), "unit_price": Decimal("180.00")},
    ]


@pytest.fixture
def draft_quote(user_id, client, bathroom_items, now):
    """Draft quote totalling 660.00 + 66.00 GST."""
    return quote_state_machine.create(
        owner_id=user_id,
        client=client,
        job_title="Bathroom renovation",
        description="Replace vanity and fittings",
        items=bathroom_items,
        now=now,
    )


@pytest.fixture
def sent_quote(draft_quote, now):
    return quote_state_machine.transition(draft_quote, QuoteStatus.SENT, now)


@pytest.fixture
def invoice_for(now):
    """Factory for a stored invoice of a quote."""
    def _make(quote: Quote, number: str = "INV-261014-ABC123") -> Invoice:
        return Invoice(
            id=uuid.uuid4(),
            user_id=quote.user_id,
            quote_id=quote.id,
            invoice_number=number,
            total=quote.total,
            due_date=datetime.date(2026, 10, 21),
            status="unpaid",
            created_at=now,
            updated_at=now,
        )
    return _make


# ============================================================
# Subscriptions
# ============================================================


@pytest.fixture
def free_tier():
    """Subscription service mock answering the free tier (3/week, 3/month)."""
    service = MagicMock()
    service.get_status = AsyncMock(
        return_value=SubscriptionStatus(
            is_premium=False,
            limits=QuotaLimits(quotes_per_week=3, invoices_per_month=3),
        )
    )
    return service


@pytest.fixture
def premium_tier():
    service = MagicMock()
    service.get_status = AsyncMock(
        return_value=SubscriptionStatus(is_premium=True, limits=QuotaLimits())
    )
    return service
