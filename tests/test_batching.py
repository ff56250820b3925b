import pytest

from crmflow.core.batching import chunk_list, progressive_chunks


def test_chunk_list_splits_with_short_tail():
    assert chunk_list([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]


def test_chunk_list_rejects_non_positive_size():
    with pytest.raises(ValueError):
        chunk_list([1, 2], 0)


def test_progressive_chunks_uses_largest_tier_first():
    chunks = progressive_chunks(list(range(1000)), [300, 100, 50, 1])
    assert [len(c) for c in chunks] == [300, 300, 300, 100]


def test_progressive_chunks_hands_remainder_to_smaller_tiers():
    items = list(range(1034))
    chunks = progressive_chunks(items, [300, 100, 50, 1])

    assert [len(c) for c in chunks] == [300, 300, 300, 100] + [1] * 34
    assert [x for chunk in chunks for x in chunk] == items


def test_progressive_chunks_skips_tiers_larger_than_remainder():
    chunks = progressive_chunks(list(range(250)), [300, 100, 50, 1])
    assert [len(c) for c in chunks] == [100, 100, 50]


def test_progressive_chunks_last_tier_takes_everything_left():
    chunks = progressive_chunks(list(range(7)), [5, 3])
    assert [len(c) for c in chunks] == [5, 2]


def test_progressive_chunks_empty_and_invalid_schedule():
    assert progressive_chunks([], [300, 1]) == []
    with pytest.raises(ValueError):
        progressive_chunks([1], [])
    with pytest.raises(ValueError):
        progressive_chunks([1], [10, 0])
