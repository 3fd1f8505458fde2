from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


def rank(
    items: Iterable[T],
    score: Callable[[T], Any],
    *,
    descending: bool = False,
    limit: int | None = None,
) -> list[T]:
    """Stable sort by ``score`` and optional cap.

    Items with equal scores keep their input order in both directions
    (``sorted(reverse=True)`` preserves stability), and the capped list is
    always a prefix of the uncapped one.
    """
    ranked = sorted(items, key=score, reverse=descending)
    if limit is None:
        return ranked
    if limit <= 0:
        return []
    return ranked[:limit]
