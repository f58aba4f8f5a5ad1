"""
SQLAlchemy mixins for models
Project: JobQuote (Quote & Invoice Backend)

Reusable mixins adding common columns to models.
"""

import datetime
import uuid

from sqlalchemy import DateTime, Uuid
from sqlalchemy import event, inspect
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func


class TimestampMixin:
    """
    Mixin for automatic creation and update timestamps.

    Adds:
    - created_at: creation date/time (set automatically)
    - updated_at: last update date/time (updated automatically)

    Usage:
        class MyModel(Base, TimestampMixin):
            __tablename__ = "my_table"
            ...
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Record creation date/time",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Record last update date/time",
    )


class UUIDMixin:
    """
    Mixin for a client-side generated UUID primary key.

    Usage:
        class MyModel(Base, UUIDMixin):
            __tablename__ = "my_table"
            ...
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


class OwnedMixin:
    """
    Mixin for records owned by a single user.

    Every query on an owned model filters on user_id; the value is
    the subject of the auth provider's token.
    """

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        doc="UUID of the owning user",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Keep updated_at current on flush.

    Modified objects get a fresh updated_at unless the caller already set
    it during this unit of work; new objects keep an explicit value and
    otherwise get now.

    Args:
        session: SQLAlchemy session
        flush_context: Flush context
        instances: Unused
    """
    now = datetime.datetime.now(datetime.timezone.utc)

    for obj in session.dirty:
        if not hasattr(obj, "updated_at"):
            continue
        if not session.is_modified(obj, include_collections=False):
            continue
        if inspect(obj).attrs.updated_at.history.has_changes():
            continue
        obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at") and obj.updated_at is None:
            obj.updated_at = now
