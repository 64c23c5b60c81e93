"""
Tests for RingBuffer slot addressing and wraparound
"""
import pytest

from apps.buffers.ring import RingBuffer


def numbered(capacity):
    return RingBuffer(capacity, lambda: None, items=range(capacity))


class TestRingBuffer:
    """Test RingBuffer basic operations"""

    def test_new_buffer_holds_sentinels(self) -> None:
        buffer = RingBuffer(4, lambda: 'empty')
        assert list(buffer) == ['empty'] * 4
        assert len(buffer) == 4

    def test_write_then_read(self) -> None:
        buffer = RingBuffer(5, lambda: None)
        buffer.write(3, 'x')
        assert buffer.read(3) == 'x'
        assert buffer.read(2) is None

    def test_out_of_range_index_raises(self) -> None:
        buffer = RingBuffer(3, lambda: None)
        with pytest.raises(IndexError):
            buffer.write(3, 'x')
        with pytest.raises(IndexError):
            buffer.read(-1)

    def test_wrap(self) -> None:
        buffer = RingBuffer(10, lambda: None)
        assert buffer.wrap(12) == 2
        assert buffer.wrap(-3) == 7

    def test_items_are_padded(self) -> None:
        buffer = RingBuffer(4, lambda: 0, items=[1, 2])
        assert list(buffer) == [1, 2, 0, 0]

    def test_too_many_items_rejected(self) -> None:
        with pytest.raises(ValueError):
            RingBuffer(2, lambda: 0, items=[1, 2, 3])

    def test_zero_capacity_rejected(self) -> None:
        with pytest.raises(ValueError):
            RingBuffer(0, lambda: 0)

    def test_reset(self) -> None:
        buffer = numbered(3)
        buffer.reset()
        assert list(buffer) == [None, None, None]


class TestReadRange:
    """Test range reads across the wrap point"""

    def test_contiguous_range(self) -> None:
        assert numbered(10).read_range(2, 5) == [2, 3, 4]

    def test_wrapped_range(self) -> None:
        assert numbered(10).read_range(7, 3) == [7, 8, 9, 0, 1, 2]

    def test_range_up_to_capacity(self) -> None:
        assert numbered(10).read_range(8, 10) == [8, 9]

    def test_invalid_range(self) -> None:
        with pytest.raises(IndexError):
            numbered(10).read_range(0, 11)

    def test_ordered_from_write_index(self) -> None:
        # Index 4 is the next slot to write, so it holds the oldest value
        assert numbered(6).ordered_from(4) == [4, 5, 0, 1, 2, 3]
