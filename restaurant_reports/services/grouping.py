"""Group-and-reduce helpers shared by the report builders."""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

T = TypeVar("T")
A = TypeVar("A")
K = TypeVar("K", bound=Hashable)


def fold_groups(
    records: Iterable[T],
    key: Callable[[T], Optional[K]],
    initial: Callable[[K, T], A],
    step: Callable[[A, T], A],
) -> Dict[K, A]:
    """Group ``records`` by ``key`` and fold each group with ``step``.

    ``initial`` seeds the accumulator from the group key and the first record
    of the group. Records whose key is ``None`` are skipped. Groups keep the
    order in which their key was first encountered.
    """

    groups: Dict[K, A] = {}
    for record in records:
        group_key = key(record)
        if group_key is None:
            continue
        if group_key not in groups:
            groups[group_key] = initial(group_key, record)
        groups[group_key] = step(groups[group_key], record)
    return groups


def rank(
    items: Iterable[T],
    key: Callable[[T], Any],
    *,
    limit: Optional[int] = None,
    descending: bool = True,
) -> List[T]:
    """Stable sort by ``key``; ties keep their encounter order."""

    ordered = sorted(items, key=key, reverse=descending)
    return ordered if limit is None else ordered[:limit]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage_of(part: float, whole: float) -> int:
    """Whole-number share of ``part`` in ``whole``, 0 when ``whole`` is 0."""

    if not whole:
        return 0
    ratio = (part / whole) * 100
    if math.isnan(ratio) or math.isinf(ratio):
        return 0
    return round_half_up(ratio)


__all__ = ["fold_groups", "percentage_of", "rank", "round_half_up"]
