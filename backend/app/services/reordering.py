"""Ordered-collection reordering for sibling items (songs in a playlist).

Siblings under one parent carry a dense 1-based order key: for N items the
keys are exactly {1..N}. Moving an item removes it, clamps the requested
position into [1, N], reinserts it, and renumbers every item from 1. The
result depends only on the input sequence, so calling it with an item's
current position returns the same (id, order_key) pairs.

Pattern: pure functions over frozen dataclasses. The repository loads and
locks the sibling rows, calls these functions, and writes the keys back with
``apply_order_keys``.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from app.core.errors import NotFoundError

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class OrderedItem:
    """Position of one item among its siblings.

    Attributes:
        id: Item id, unique within the parent.
        parent_id: Id of the owning collection.
        order_key: 1-based position.
    """

    id: int
    parent_id: int
    order_key: int


# =============================================================================
# Operations
# =============================================================================


def _renumber(items: Iterable[OrderedItem]) -> list[OrderedItem]:
    return [
        item if item.order_key == index else replace(item, order_key=index)
        for index, item in enumerate(items, start=1)
    ]


def reorder(
    items: Sequence[OrderedItem],
    moved_item_id: int,
    requested_position: int,
) -> list[OrderedItem]:
    """Move one item to a new 1-based position and renumber densely.

    Args:
        items: Siblings in any order; they are ranked by (order_key, id).
        moved_item_id: Id of the item to move.
        requested_position: Target position. Values below 1 clamp to 1,
            values above N clamp to N (append).

    Returns:
        New sequence with order_key = index + 1 for every item.

    Raises:
        NotFoundError: If moved_item_id is not among items.
    """
    remaining = sorted(items, key=lambda item: (item.order_key, item.id))
    index = next(
        (i for i, item in enumerate(remaining) if item.id == moved_item_id), None
    )
    if index is None:
        raise NotFoundError("Song", moved_item_id)

    moved = remaining.pop(index)
    position = max(1, min(requested_position, len(remaining) + 1))
    remaining.insert(position - 1, moved)

    logger.debug(
        "Reordered item %s from position %d to %d",
        moved_item_id,
        index + 1,
        position,
    )
    return _renumber(remaining)


def next_order_key(items: Iterable[OrderedItem]) -> int:
    """Order key for a newly appended item: max + 1, or 1 when empty."""
    return max((item.order_key for item in items), default=0) + 1


def densify(items: Sequence[OrderedItem]) -> list[OrderedItem]:
    """Renumber 1..N keeping the current relative order.

    Used after a deletion closes a gap in the key range.
    """
    ordered = sorted(items, key=lambda item: (item.order_key, item.id))
    return _renumber(ordered)


def apply_order_keys(
    rows: Iterable[Any],
    ordered: Iterable[OrderedItem],
    *,
    attr: str = "order_id",
) -> int:
    """Write computed order keys back onto loaded ORM rows.

    Args:
        rows: ORM instances with an ``id`` and an order attribute.
        ordered: Result of reorder() or densify().
        attr: Name of the order attribute on the rows.

    Returns:
        Number of rows whose key changed.
    """
    keys = {item.id: item.order_key for item in ordered}
    changed = 0
    for row in rows:
        new_key = keys.get(row.id)
        if new_key is not None and getattr(row, attr) != new_key:
            setattr(row, attr, new_key)
            changed += 1
    return changed
