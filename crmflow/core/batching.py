"""Helpers for splitting identifier sequences into request-sized chunks."""

from typing import Iterable, List, Sequence, TypeVar

T = TypeVar("T")


def chunk_list(items: Sequence[T], size: int) -> List[List[T]]:
    """Split ``items`` into consecutive chunks of at most ``size``."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def progressive_chunks(items: Sequence[T], sizes: Iterable[int]) -> List[List[T]]:
    """
    Split ``items`` using a decreasing size schedule.

    Each tier takes as many full chunks of its size as fit in what is left,
    then hands the remainder to the next tier. The last tier takes everything
    that is still left, so no item is ever dropped.

    >>> [len(c) for c in progressive_chunks(list(range(1000)), [300, 100, 50, 1])]
    [300, 300, 300, 100]
    """
    schedule = [int(s) for s in sizes]
    if not schedule or any(s <= 0 for s in schedule):
        raise ValueError("chunk schedule must contain positive sizes")

    chunks: List[List[T]] = []
    index = 0
    total = len(items)
    for position, size in enumerate(schedule):
        is_last_tier = position == len(schedule) - 1
        while index < total:
            remaining = total - index
            if remaining < size and not is_last_tier:
                break
            chunks.append(list(items[index:index + size]))
            index += size
    return chunks
