"""
Unit tests for invoice generation.

The service tests drive InvoiceService against a mock session and
simulate concurrent inserts with the IntegrityError the database raises.
"""

import datetime
import re
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    ConflictError,
    InvoiceAlreadyExistsError,
    NotFoundError,
    QuotaExceededError,
    QuoteLockedError,
    QuoteNotInvoiceableError,
)
from app.schemas.quote import QuoteStatus
from app.schemas.usage import UsageKind
from app.services import invoice_generator
from app.services import quote_state_machine as qsm
from app.services.invoice_generator import InvoiceService, generate_invoice_number
from conftest import make_result


def _unique_violation(constraint: str) -> IntegrityError:
    orig = Exception(f'duplicate key value violates unique constraint "{constraint}"')
    return IntegrityError("INSERT INTO invoices ...", {}, orig)


# ============================================================
# Pure operations
# ============================================================


class TestCreateInvoice:
    """Tests for building an invoice from a quote."""

    def test_from_sent_quote(self, sent_quote, now):
        invoice = invoice_generator.create_invoice(sent_quote, None, now)

        assert invoice.quote_id == sent_quote.id
        assert invoice.user_id == sent_quote.user_id
        assert invoice.total == Decimal("726.00")
        assert invoice.status == "unpaid"
        assert invoice.paid_at is None

    def test_due_in_seven_days(self, sent_quote, now):
        invoice = invoice_generator.create_invoice(sent_quote, None, now, payment_terms_days=7)

        # 09:30 on 14 October in Sydney
        assert invoice.due_date == datetime.date(2026, 10, 21)

    def test_due_date_uses_business_date(self, sent_quote):
        # 14:30 UTC on 13 October is already 14 October in Sydney
        late = datetime.datetime(2026, 10, 13, 14, 30, tzinfo=datetime.timezone.utc)
        invoice = invoice_generator.create_invoice(sent_quote, None, late, payment_terms_days=0)

        assert invoice.due_date == datetime.date(2026, 10, 14)

    def test_from_approved_quote(self, sent_quote, now):
        qsm.transition(sent_quote, QuoteStatus.APPROVED)

        invoice = invoice_generator.create_invoice(sent_quote, None, now)

        assert invoice.total == sent_quote.total

    def test_total_is_frozen(self, sent_quote, now):
        """A sent quote cannot be re-priced once invoiced."""
        invoice = invoice_generator.create_invoice(sent_quote, None, now)
        assert invoice.total == Decimal("726.00")

        with pytest.raises(QuoteLockedError):
            qsm.update_items(
                sent_quote,
                [{"name": "Labour", "category": "labour", "quantity": Decimal("8"), "unit_price": Decimal("120.00")}],
            )

        assert sent_quote.total == Decimal("726.00")
        assert invoice.total == Decimal("726.00")

    @pytest.mark.parametrize("path", [[], [QuoteStatus.SENT, QuoteStatus.REJECTED]])
    def test_not_invoiceable(self, draft_quote, now, path):
        for step in path:
            qsm.transition(draft_quote, step)

        with pytest.raises(QuoteNotInvoiceableError):
            invoice_generator.create_invoice(draft_quote, None, now)

    def test_already_invoiced(self, sent_quote, now, invoice_for):
        with pytest.raises(InvoiceAlreadyExistsError):
            invoice_generator.create_invoice(sent_quote, invoice_for(sent_quote), now)


class TestInvoiceNumber:
    """Tests for invoice numbering."""

    def test_format(self, now):
        assert re.fullmatch(r"INV-261014-[0-9A-F]{6}", generate_invoice_number(now))

    def test_numbers_differ(self, now):
        numbers = {generate_invoice_number(now) for _ in range(20)}

        assert len(numbers) > 1


class TestMarkPaid:
    """Tests for payment marking."""

    def test_mark_paid(self, sent_quote, invoice_for, now):
        invoice = invoice_for(sent_quote)

        invoice_generator.mark_paid(invoice, now)

        assert invoice.status == "paid"
        assert invoice.paid_at == now

    def test_already_paid(self, sent_quote, invoice_for, now):
        invoice = invoice_for(sent_quote)
        invoice_generator.mark_paid(invoice, now)

        with pytest.raises(ConflictError):
            invoice_generator.mark_paid(invoice, now)


# ============================================================
# Service
# ============================================================


@pytest.fixture
def quota():
    tracker = MagicMock()
    tracker.check_and_increment = AsyncMock(return_value=None)
    return tracker


@pytest.fixture
def service(quota):
    return InvoiceService(quota_tracker=quota)


class TestInvoiceService:
    """Tests for InvoiceService.create_invoice / get_or_create_invoice_view."""

    async def test_create(self, service, quota, mock_db, sent_quote, user_id, now):
        mock_db.execute.side_effect = [make_result(sent_quote), make_result(None)]

        invoice = await service.create_invoice(mock_db, user_id, sent_quote.id, now)

        assert invoice.total == Decimal("726.00")
        mock_db.add.assert_called_once_with(invoice)
        quota.check_and_increment.assert_awaited_once_with(mock_db, user_id, UsageKind.INVOICE, now)

    async def test_quote_not_found(self, service, mock_db, user_id, sent_quote):
        mock_db.execute.side_effect = [make_result(None)]

        with pytest.raises(NotFoundError):
            await service.create_invoice(mock_db, user_id, sent_quote.id)

    async def test_quota_checked_after_status(self, service, quota, mock_db, draft_quote, user_id):
        mock_db.execute.side_effect = [make_result(draft_quote), make_result(None)]

        with pytest.raises(QuoteNotInvoiceableError):
            await service.create_invoice(mock_db, user_id, draft_quote.id)
        quota.check_and_increment.assert_not_awaited()

    async def test_quota_exceeded(self, service, quota, mock_db, sent_quote, user_id):
        mock_db.execute.side_effect = [make_result(sent_quote), make_result(None)]
        quota.check_and_increment.side_effect = QuotaExceededError()

        with pytest.raises(QuotaExceededError):
            await service.create_invoice(mock_db, user_id, sent_quote.id)
        mock_db.add.assert_not_called()

    async def test_lost_race_on_quote(self, service, mock_db, sent_quote, user_id):
        """The unique constraint on quote_id decides between two inserts."""
        mock_db.execute.side_effect = [make_result(sent_quote), make_result(None)]
        mock_db.flush.side_effect = _unique_violation("uq_invoices_quote_id")

        with pytest.raises(InvoiceAlreadyExistsError):
            await service.create_invoice(mock_db, user_id, sent_quote.id)

    async def test_number_collision_retried(self, service, mock_db, sent_quote, user_id, now):
        mock_db.execute.side_effect = [make_result(sent_quote), make_result(None)]
        mock_db.flush.side_effect = [_unique_violation("uq_invoices_invoice_number"), None]

        invoice = await service.create_invoice(mock_db, user_id, sent_quote.id, now)

        assert mock_db.flush.await_count == 2
        assert invoice.invoice_number.startswith("INV-261014-")

    async def test_number_collisions_exhausted(self, service, mock_db, sent_quote, user_id):
        mock_db.execute.side_effect = [make_result(sent_quote), make_result(None)]
        mock_db.flush.side_effect = _unique_violation("uq_invoices_invoice_number")

        with pytest.raises(ConflictError, match="unique invoice number"):
            await service.create_invoice(mock_db, user_id, sent_quote.id)
        assert mock_db.flush.await_count == invoice_generator.MAX_NUMBER_ATTEMPTS

    async def test_other_integrity_error_propagates(self, service, mock_db, sent_quote, user_id):
        mock_db.execute.side_effect = [make_result(sent_quote), make_result(None)]
        mock_db.flush.side_effect = _unique_violation("fk_something_else")

        with pytest.raises(IntegrityError):
            await service.create_invoice(mock_db, user_id, sent_quote.id)

    async def test_view_returns_existing(self, service, quota, mock_db, sent_quote, user_id, invoice_for):
        existing = invoice_for(sent_quote)
        mock_db.execute.side_effect = [make_result(existing)]

        invoice, created = await service.get_or_create_invoice_view(mock_db, user_id, sent_quote.id)

        assert invoice is existing
        assert created is False
        quota.check_and_increment.assert_not_awaited()

    async def test_view_creates(self, service, mock_db, sent_quote, user_id, now):
        mock_db.execute.side_effect = [make_result(None), make_result(sent_quote), make_result(None)]

        invoice, created = await service.get_or_create_invoice_view(mock_db, user_id, sent_quote.id, now)

        assert created is True
        assert invoice.quote_id == sent_quote.id

    async def test_view_after_lost_race_returns_winner(
        self, service, mock_db, sent_quote, user_id, invoice_for
    ):
        """Two taps on "view invoice": the second one gets the first one's invoice."""
        winner = invoice_for(sent_quote, number="INV-261014-WINNER")
        mock_db.execute.side_effect = [
            make_result(None),        # view: no invoice yet
            make_result(sent_quote),  # create: load quote
            make_result(None),        # create: pre-check
            make_result(winner),      # view: re-read after the lost insert
        ]
        mock_db.flush.side_effect = _unique_violation("uq_invoices_quote_id")

        invoice, created = await service.get_or_create_invoice_view(mock_db, user_id, sent_quote.id)

        assert invoice is winner
        assert created is False

    async def test_mark_paid(self, service, mock_db, sent_quote, user_id, invoice_for):
        stored = invoice_for(sent_quote)
        mock_db.execute.side_effect = [make_result(stored)]

        invoice = await service.mark_paid(mock_db, user_id, stored.id)

        assert invoice.status == "paid"
        mock_db.flush.assert_awaited_once()
