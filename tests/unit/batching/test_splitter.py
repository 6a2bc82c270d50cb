# tests/unit/batching/test_splitter.py
"""Tests for split_operations."""

import pytest

from ledgerlink.batching.splitter import split_operations


def _sizes(count: int) -> list[int]:
    return [len(batch) for batch in split_operations(list(range(count)))]


class TestSplitSizes:
    """Batch sizes for representative submission lengths."""

    def test_empty_gives_no_batches(self) -> None:
        """Nothing to send means no batches."""
        assert split_operations([]) == []

    def test_single_operation_is_one_batch(self) -> None:
        """A lone operation is returned as-is; callers dispatch it directly."""
        assert _sizes(1) == [1]

    @pytest.mark.parametrize("count", [2, 5, 9, 10])
    def test_up_to_ten_is_one_batch(self, count: int) -> None:
        """Anything that fits one container call stays in one batch."""
        assert _sizes(count) == [count]

    @pytest.mark.parametrize(
        ("count", "expected"),
        [
            (11, [9, 2]),
            (12, [10, 2]),
            (17, [10, 7]),
            (20, [10, 10]),
            (21, [10, 9, 2]),
            (22, [10, 10, 2]),
            (30, [10, 10, 10]),
            (31, [10, 10, 9, 2]),
        ],
    )
    def test_long_submissions(self, count: int, expected: list[int]) -> None:
        """Full batches of ten first; the last two never end up alone."""
        assert _sizes(count) == expected


class TestSplitOrdering:
    """Order and membership of the produced batches."""

    def test_order_is_preserved(self) -> None:
        """Concatenating the batches gives back the input."""
        operations = [f"op{i}" for i in range(23)]

        batches = split_operations(operations)

        assert [op for batch in batches for op in batch] == operations

    def test_accepts_tuples(self) -> None:
        """Any sequence works, and batches come back as lists."""
        batches = split_operations(tuple(range(11)))

        assert batches == [list(range(9)), [9, 10]]


class TestSplitValidation:
    """Argument validation."""

    def test_rejects_max_size_too_small_for_two_minimum_batches(self) -> None:
        """max_size below 4 could force a batch of one."""
        with pytest.raises(ValueError, match="max_size must be at least 4"):
            split_operations(list(range(5)), max_size=3)

    def test_custom_max_size(self) -> None:
        """The same rule applies to a smaller container limit."""
        assert [len(b) for b in split_operations(list(range(7)), max_size=4)] == [4, 3]
