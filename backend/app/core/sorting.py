"""Shared sorting utilities for repository queries."""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from app.core.database import Base


def apply_order_by(
    query: Query,  # type: ignore[type-arg]
    model: type[Base],
    order_by: str | None,
    default_field: str = "created_at",
    default_direction: str = "desc",
    allowed_fields: Collection[str] | None = None,
) -> Query:  # type: ignore[type-arg]
    """Apply ordering to a SQLAlchemy query.

    Args:
        query: The SQLAlchemy query to sort.
        model: The SQLAlchemy model class.
        order_by: Sort string in "field:direction" format (e.g. "booking_date:asc").
            Unknown fields fall back to ``default_field``.
        default_field: Default column to sort by.
        default_direction: Default sort direction ("asc" or "desc").
        allowed_fields: Columns callers may sort by. Defaults to every mapped column.

    Returns:
        The query with ordering applied. Ties are broken by primary key so
        paging is stable.
    """
    sortable = set(allowed_fields) if allowed_fields is not None else set(model.__table__.columns.keys())
    field, _, direction = (order_by or "").partition(":")
    if field not in sortable:
        field, direction = default_field, default_direction
    if direction not in ("asc", "desc"):
        direction = "asc" if order_by else default_direction

    order_func = asc if direction == "asc" else desc
    return query.order_by(order_func(getattr(model, field)), asc(model.id))
