"""
Unit tests for the quote state machine.
"""

import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import (
    BusinessValidationError,
    EmptyQuoteError,
    IllegalTransitionError,
    InvalidItemError,
    InvalidRateError,
    QuoteLockedError,
)
from app.schemas.quote import QuoteStatus
from app.services import quote_state_machine as qsm

LEGAL_EDGES = {
    (QuoteStatus.DRAFT, QuoteStatus.SENT),
    (QuoteStatus.SENT, QuoteStatus.APPROVED),
    (QuoteStatus.SENT, QuoteStatus.REJECTED),
    (QuoteStatus.REJECTED, QuoteStatus.DRAFT),
}

# Steps from draft to each status
PATHS = {
    QuoteStatus.DRAFT: [],
    QuoteStatus.SENT: [QuoteStatus.SENT],
    QuoteStatus.APPROVED: [QuoteStatus.SENT, QuoteStatus.APPROVED],
    QuoteStatus.REJECTED: [QuoteStatus.SENT, QuoteStatus.REJECTED],
}



def _snapshot(quote):
    return (
        quote.status,
        quote.job_title,
        quote.description,
        quote.subtotal,
        quote.tax_amount,
        quote.total,
        [(i.name, i.quantity, i.unit_price) for i in quote.items],
    )


class TestCreate:
    """Tests for quote creation."""

    def test_creates_draft_with_totals(self, draft_quote, client, user_id):
        assert draft_quote.status == QuoteStatus.DRAFT.value
        assert draft_quote.user_id == user_id
        assert draft_quote.client_id == client.id
        assert draft_quote.subtotal == Decimal("660.00")
        assert draft_quote.tax_amount == Decimal("66.00")
        assert draft_quote.total == Decimal("726.00")

    def test_items_keep_order(self, draft_quote):
        assert [i.name for i in draft_quote.items] == ["Labour", "Vanity unit"]
        assert [i.position for i in draft_quote.items] == [0, 1]

    def test_trims_text(self, user_id, client, bathroom_items):
        quote = qsm.create(user_id, client, "  Tap repair ", " Kitchen tap ", bathroom_items)

        assert quote.job_title == "Tap repair"
        assert quote.description == "Kitchen tap"

    def test_without_gst(self, user_id, client, bathroom_items):
        quote = qsm.create(user_id, client, "Tap", "Tap", bathroom_items, tax_enabled=False)

        assert quote.tax_amount == Decimal("0.00")
        assert quote.total == Decimal("660.00")

    @pytest.mark.parametrize(
        "title, description, expected",
        [
            ("", "Desc", "Job title is required"),
            ("Title", "  ", "Job description is required"),
        ],
    )
    def test_required_text(self, user_id, client, bathroom_items, title, description, expected):
        with pytest.raises(BusinessValidationError, match=expected):
            qsm.create(user_id, client, title, description, bathroom_items)

    def test_client_required(self, user_id, bathroom_items):
        with pytest.raises(BusinessValidationError, match="Please select a client"):
            qsm.create(user_id, None, "Title", "Desc", bathroom_items)

    def test_items_required(self, user_id, client):
        with pytest.raises(BusinessValidationError, match="At least one quote item is required"):
            qsm.create(user_id, client, "Title", "Desc", [])

    def test_title_checked_before_items(self, user_id, client):
        with pytest.raises(BusinessValidationError, match="Job title is required"):
            qsm.create(user_id, client, None, None, [])

    def test_invalid_item(self, user_id, client, bathroom_items):
        bathroom_items[1]["quantity"] = Decimal("0")

        with pytest.raises(InvalidItemError, match="Quantity must be greater than 0"):
            qsm.create(user_id, client, "Title", "Desc", bathroom_items)

    def test_quantity_below_a_cent(self, user_id, client, bathroom_items):
        bathroom_items[0]["quantity"] = Decimal("0.004")

        with pytest.raises(InvalidItemError, match="Quantity must be greater than 0"):
            qsm.create(user_id, client, "Title", "Desc", bathroom_items)

    def test_quantity_stored_in_cents(self, user_id, client, bathroom_items):
        bathroom_items[0]["quantity"] = Decimal("0.005")

        quote = qsm.create(user_id, client, "Title", "Desc", bathroom_items, tax_enabled=False)

        assert quote.items[0].quantity == Decimal("0.01")
        assert quote.subtotal == Decimal("181.20")

    def test_total_too_large(self, user_id, client):
        items = [
            {"name": f"Crane {n}", "category": "other", "quantity": 1, "unit_price": Decimal("9000000000")}
            for n in range(2)
        ]

        with pytest.raises(BusinessValidationError, match="Quote total is too large"):
            qsm.create(user_id, client, "Title", "Desc", items)

    def test_negative_rate(self, user_id, client, bathroom_items):
        with pytest.raises(InvalidRateError):
            qsm.create(user_id, client, "Title", "Desc", bathroom_items, tax_rate=Decimal("-0.10"))


class TestTransition:
    """Tests for status changes."""

    def test_send(self, draft_quote, now):
        later = now + datetime.timedelta(hours=1)
        qsm.transition(draft_quote, QuoteStatus.SENT, later)

        assert draft_quote.status == "sent"
        assert draft_quote.updated_at == later
        assert draft_quote.total == Decimal("726.00")

    @pytest.mark.parametrize("target", [QuoteStatus.APPROVED, QuoteStatus.REJECTED])
    def test_sent_to_final(self, sent_quote, target):
        qsm.transition(sent_quote, target)

        assert sent_quote.status == target.value

    def test_revise_rejected(self, sent_quote):
        qsm.transition(sent_quote, QuoteStatus.REJECTED)
        qsm.transition(sent_quote, QuoteStatus.DRAFT)

        assert sent_quote.status == "draft"

    @pytest.mark.parametrize(
        "current, target",
        [
            (current, target)
            for current in QuoteStatus
            for target in QuoteStatus
            if (current, target) not in LEGAL_EDGES
        ],
    )
    def test_illegal_edges(self, draft_quote, current, target):
        for step in PATHS[current]:
            qsm.transition(draft_quote, step)
        before = _snapshot(draft_quote)

        with pytest.raises(IllegalTransitionError) as exc_info:
            qsm.transition(draft_quote, target)

        assert exc_info.value.extra["from"] == current.value
        assert exc_info.value.extra["to"] == target.value
        assert _snapshot(draft_quote) == before

    def test_twelve_illegal_edges(self):
        illegal = [
            (c, t) for c in QuoteStatus for t in QuoteStatus if not qsm.can_transition(c, t)
        ]

        assert len(illegal) == 12
        assert (QuoteStatus.APPROVED, QuoteStatus.SENT) in illegal
        assert (QuoteStatus.REJECTED, QuoteStatus.SENT) in illegal

    def test_send_empty_quote(self, draft_quote):
        qsm.update_items(draft_quote, [])

        with pytest.raises(EmptyQuoteError):
            qsm.transition(draft_quote, QuoteStatus.SENT)
        assert draft_quote.status == "draft"

    def test_can_transition(self):
        assert qsm.can_transition(QuoteStatus.DRAFT, QuoteStatus.SENT)
        assert not qsm.can_transition(QuoteStatus.APPROVED, QuoteStatus.SENT)


class TestUpdateItems:
    """Tests for item replacement."""

    def test_replaces_and_recomputes(self, draft_quote):
        qsm.update_items(
            draft_quote,
            [{"name": "Labour", "category": "labour", "quantity": Decimal("2"), "unit_price": Decimal("120")}],
        )

        assert len(draft_quote.items) == 1
        assert draft_quote.subtotal == Decimal("240.00")
        assert draft_quote.tax_amount == Decimal("24.00")
        assert draft_quote.total == Decimal("264.00")

    def test_locked_after_send(self, sent_quote, bathroom_items):
        before = _snapshot(sent_quote)

        with pytest.raises(QuoteLockedError):
            qsm.update_items(sent_quote, bathroom_items[:1])
        assert _snapshot(sent_quote) == before

    def test_invalid_item_changes_nothing(self, draft_quote, bathroom_items):
        before = _snapshot(draft_quote)
        bathroom_items.append({"name": "Paint", "category": "paint", "quantity": 1, "unit_price": 10})

        with pytest.raises(InvalidItemError, match="Unknown item type: paint"):
            qsm.update_items(draft_quote, bathroom_items)
        assert _snapshot(draft_quote) == before


class TestUpdateDetails:
    """Tests for title/description edits."""

    def test_partial_update(self, draft_quote):
        qsm.update_details(draft_quote, job_title="Ensuite renovation")

        assert draft_quote.job_title == "Ensuite renovation"
        assert draft_quote.description == "Replace vanity and fittings"

    def test_blank_rejected(self, draft_quote):
        with pytest.raises(BusinessValidationError, match="Job title is required"):
            qsm.update_details(draft_quote, job_title=" ")
        assert draft_quote.job_title == "Bathroom renovation"

    def test_locked_after_send(self, sent_quote):
        with pytest.raises(QuoteLockedError):
            qsm.update_details(sent_quote, description="Changed")
