"""
Quote state machine
Project: JobQuote (Quote & Invoice Backend)

Creation, status transitions and item edits of a quote.

States:
    draft → sent → approved
              ↘ rejected → draft   (explicit "revise" action)

These functions never touch the database: they build or mutate ORM
instances in memory and the caller flushes/commits them. A failed call
leaves the quote exactly as it was.
"""

import datetime
import logging
import uuid
from typing import Any, Iterable, Optional

from app.core.exceptions import (
    EmptyQuoteError,
    IllegalTransitionError,
    QuoteLockedError,
    ValidationError,
)
from app.models.client import Client
from app.models.quote import Quote, QuoteItem
from app.schemas.quote import VALID_TRANSITIONS, ItemCategory, QuoteStatus
from app.services.money import DEFAULT_TAX_RATE, MAX_AMOUNT, Amount, compute_tax, round2, to_decimal
from app.services.quote_ledger import QuoteTotals, compute_totals, validate_item

logger = logging.getLogger(__name__)

__all__ = [
    "QuoteStatus",
    "VALID_TRANSITIONS",
    "create",
    "transition",
    "update_items",
    "update_details",
    "can_transition",
]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _build_items(items: Iterable[Any]) -> list[QuoteItem]:
    """Turn validated input items into QuoteItem rows, keeping their order."""
    rows = []
    for position, item in enumerate(items):
        category = _field(item, "category")
        rows.append(
            QuoteItem(
                id=uuid.uuid4(),
                position=position,
                name=_field(item, "name").strip(),
                category=ItemCategory(category).value,
                quantity=round2(_field(item, "quantity")),
                unit_price=round2(_field(item, "unit_price")),
            )
        )
    return rows


def _checked_totals(quote: Quote, items: Iterable[Any]) -> QuoteTotals:
    totals = compute_totals(items, quote.tax_enabled, quote.tax_rate)
    if totals.total > MAX_AMOUNT:
        raise ValidationError("Quote total is too large")
    return totals


def _apply_totals(quote: Quote, items: Iterable[Any]) -> None:
    totals = _checked_totals(quote, items)
    quote.subtotal = totals.subtotal
    quote.tax_amount = totals.tax
    quote.total = totals.total


def _require_text(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(message)
    return value.strip()


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    """Return True if `current → target` is an allowed edge."""
    return target in VALID_TRANSITIONS.get(current, [])


# ------------------------------------------------------------
# Operations
# ------------------------------------------------------------

def create(
    owner_id: uuid.UUID,
    client: Optional[Client],
    job_title: Optional[str],
    description: Optional[str],
    items: list[Any],
    tax_enabled: bool = True,
    tax_rate: Amount = DEFAULT_TAX_RATE,
    now: Optional[datetime.datetime] = None,
) -> Quote:
    """
    Build a new draft quote.

    Validation stops at the first failure, in this order: job title,
    description, client, items (at least one, then each item).

    Args:
        owner_id: UUID of the owning user
        client: Client the quote is addressed to
        job_title: Job title
        description: Job description
        items: Line items
        tax_enabled: Whether GST applies
        tax_rate: GST rate as a fraction
        now: Creation time (default: current UTC time)

    Returns:
        Unsaved Quote in draft status with computed totals

    Raises:
        ValidationError: If a field is missing or blank, or the total
            does not fit the stored precision
        InvalidItemError: If an item is invalid
        InvalidRateError: If tax_rate is negative
    """
    now = now or _utcnow()

    job_title = _require_text(job_title, "Job title is required")
    description = _require_text(description, "Job description is required")
    if client is None:
        raise ValidationError("Please select a client")
    if not items:
        raise ValidationError("At least one quote item is required")
    for item in items:
        validate_item(item)

    tax_rate = to_decimal(tax_rate)
    # Reject a negative rate before building anything
    compute_tax(0, tax_rate, tax_enabled)

    quote = Quote(
        id=uuid.uuid4(),
        user_id=owner_id,
        client_id=client.id,
        job_title=job_title,
        description=description,
        status=QuoteStatus.DRAFT.value,
        tax_enabled=tax_enabled,
        tax_rate=tax_rate,
        created_at=now,
        updated_at=now,
    )
    quote.client = client
    quote.items = _build_items(items)
    _apply_totals(quote, quote.items)
    return quote


def transition(
    quote: Quote,
    target: QuoteStatus,
    now: Optional[datetime.datetime] = None,
) -> Quote:
    """
    Move a quote to a new status.

    Allowed edges: draft→sent, sent→approved, sent→rejected,
    rejected→draft. Totals are recomputed with the status change so the
    two never disagree.

    Args:
        quote: Quote to update
        target: New status
        now: Time of the change (default: current UTC time)

    Returns:
        The same quote, updated

    Raises:
        IllegalTransitionError: If the edge is not allowed
        EmptyQuoteError: If sending a quote with no items
    """
    now = now or _utcnow()
    current = QuoteStatus(quote.status)
    target = QuoteStatus(target)

    if not can_transition(current, target):
        allowed = [s.value for s in VALID_TRANSITIONS.get(current, [])]
        raise IllegalTransitionError(
            f"Cannot change quote status from '{current.value}' to '{target.value}'",
            extra={"from": current.value, "to": target.value, "allowed": allowed},
        )

    if target == QuoteStatus.SENT and not quote.items:
        raise EmptyQuoteError()

    totals = compute_totals(quote.items, quote.tax_enabled, quote.tax_rate)

    quote.status = target.value
    quote.subtotal = totals.subtotal
    quote.tax_amount = totals.tax
    quote.total = totals.total
    quote.updated_at = now

    logger.info("Quote %s: %s -> %s", quote.id, current.value, target.value)
    return quote


def update_items(
    quote: Quote,
    new_items: list[Any],
    now: Optional[datetime.datetime] = None,
) -> Quote:
    """
    Replace the items of a draft quote and recompute its totals.

    An empty list is accepted; sending the quote re-checks it.

    Raises:
        QuoteLockedError: If the quote is not in draft
        InvalidItemError: If any new item is invalid (nothing is changed)
    """
    now = now or _utcnow()
    if QuoteStatus(quote.status) != QuoteStatus.DRAFT:
        raise QuoteLockedError()

    for item in new_items:
        validate_item(item)

    rows = _build_items(new_items)
    totals = _checked_totals(quote, rows)

    quote.items = rows
    quote.subtotal = totals.subtotal
    quote.tax_amount = totals.tax
    quote.total = totals.total
    quote.updated_at = now
    return quote


def update_details(
    quote: Quote,
    job_title: Optional[str] = None,
    description: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> Quote:
    """
    Edit the title and/or description of a draft quote.

    None keeps the current value; a blank string is rejected.

    Raises:
        QuoteLockedError: If the quote is not in draft
        ValidationError: If a given value is blank
    """
    now = now or _utcnow()
    if QuoteStatus(quote.status) != QuoteStatus.DRAFT:
        raise QuoteLockedError()

    new_title = quote.job_title
    new_description = quote.description
    if job_title is not None:
        new_title = _require_text(job_title, "Job title is required")
    if description is not None:
        new_description = _require_text(description, "Job description is required")

    quote.job_title = new_title
    quote.description = new_description
    quote.updated_at = now
    return quote
