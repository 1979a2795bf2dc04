"""
Merge rules for guest + durable collections.

Both rules keep the durable (remote) order first and append what only the
guest side had. Merging an empty guest collection returns the remote one
unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence


def merge_keyed[T, K: Hashable](
    remote: Sequence[T],
    local: Sequence[T],
    key: Callable[[T], K],
    combine: Callable[[T, T], T],
) -> list[T]:
    """
    Keyed merge: same key on both sides → combine(remote_item, local_item).

    Example (cart lines, quantities summed):
        merge_keyed(remote, local, key=lambda l: l.key,
                    combine=lambda a, b: a.with_quantity(a.quantity + b.quantity))
    """
    if not local:
        return list(remote)

    merged: dict[K, T] = {}
    for item in remote:
        merged[key(item)] = item
    for item in local:
        k = key(item)
        merged[k] = combine(merged[k], item) if k in merged else item
    return list(merged.values())


def merge_union[T: Hashable](remote: Sequence[T], local: Sequence[T]) -> list[T]:
    """Set union, insertion order preserved, duplicates collapse."""
    return list(dict.fromkeys([*remote, *local]))


__all__ = ("merge_keyed", "merge_union")
