# src/ledgerlink/batching/splitter.py
"""Partition write operations into container-sized batches.

A container call accepts between 2 and 10 items. Full batches of ten are
cut first; the final two operations are held back and appended to the
trailing partial batch, or form a batch of their own when that partial
batch is already too large to take them. This never produces a batch of
one and uses the fewest batches the size limits allow.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")

MIN_BATCH_SIZE = 2
MAX_BATCH_SIZE = 10


def split_operations(operations: Sequence[T], max_size: int = MAX_BATCH_SIZE) -> list[list[T]]:
    """Split operations into ordered batches.

    Examples (sizes):
        2..10 -> [n]
        11    -> [9, 2]
        17    -> [10, 7]
        21    -> [10, 9, 2]
        22    -> [10, 10, 2]

    Args:
        operations: Operations in submission order
        max_size: Upper bound of a batch; must be at least 4

    Returns:
        Batches preserving the input order. Empty input gives no batches;
        a single operation gives one batch of one (callers dispatch that
        case directly instead of as a container call).

    Raises:
        ValueError: If max_size is below 4.
    """
    if max_size < 2 * MIN_BATCH_SIZE:
        raise ValueError(f"max_size must be at least {2 * MIN_BATCH_SIZE}, got {max_size}")

    count = len(operations)
    if count == 0:
        return []
    if count <= max_size:
        return [list(operations)]

    batches: list[list[T]] = []
    current: list[T] = []
    held_back = count - MIN_BATCH_SIZE
    for operation in operations[:held_back]:
        current.append(operation)
        if len(current) == max_size:
            batches.append(current)
            current = []
    if len(current) > max_size - MIN_BATCH_SIZE:
        batches.append(current)
        current = []
    current.extend(operations[held_back:])
    batches.append(current)
    return batches
