"""
Fixed-capacity ring buffer used for the per-sensor PM2.5 and AQI histories.

Unlike an append-only deque, the caller owns the write index: the index is
stored next to the buffer contents in the sensor record and advanced once per
scheduler tick, so reads and writes are always addressed by physical slot.
"""
from typing import Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar('T')


class RingBuffer(Generic[T]):
    """
    Circular buffer of ``capacity`` slots.
    - Every slot holds a value; unwritten slots hold ``default_factory()``
    - ``write`` and ``read`` take physical indices in ``[0, capacity)``
    - ``read_range`` handles wraparound by concatenating two segments
    """

    __slots__ = ('capacity', '_slots', '_default_factory')

    def __init__(
        self,
        capacity: int,
        default_factory: Callable[[], T],
        items: Optional[Iterable[T]] = None,
    ):
        """
        Initialize ring buffer.

        Args:
            capacity: Number of slots
            default_factory: Builds the sentinel element for unwritten slots
            items: Existing slot contents, oldest physical index first. Short
                input is padded with sentinels; longer input is rejected.
        """
        if capacity <= 0:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._default_factory = default_factory
        self._slots: List[T] = [default_factory() for _ in range(capacity)]

        if items is not None:
            items = list(items)
            if len(items) > capacity:
                raise ValueError(
                    f"{len(items)} items do not fit in a buffer of capacity {capacity}"
                )
            self._slots[:len(items)] = items

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.capacity:
            raise IndexError(f"Index {index} out of range [0, {self.capacity})")

    def wrap(self, index: int) -> int:
        """Map any integer onto a physical slot index."""
        return index % self.capacity

    def write(self, index: int, value: T) -> None:
        """Overwrite the slot at ``index``. O(1)."""
        self._check_index(index)
        self._slots[index] = value

    def read(self, index: int) -> T:
        """Return the slot at ``index``. O(1)."""
        self._check_index(index)
        return self._slots[index]

    def read_range(self, start: int, end: int) -> List[T]:
        """
        Slots from ``start`` (inclusive) to ``end`` (exclusive).

        When ``start > end`` the range wraps: ``[start, capacity)`` followed by
        ``[0, end)``. ``end`` may equal ``capacity`` to read up to the last slot.
        """
        if start < 0 or start > self.capacity or end < 0 or end > self.capacity:
            raise IndexError(
                f"Invalid range [{start}, {end}) for buffer of capacity {self.capacity}"
            )
        if start <= end:
            return self._slots[start:end]
        return self._slots[start:] + self._slots[:end]

    def ordered_from(self, index: int) -> List[T]:
        """Whole buffer in chronological order when ``index`` is the next slot to write."""
        self._check_index(index)
        return self._slots[index:] + self._slots[:index]

    def reset(self) -> None:
        """Refill every slot with the sentinel."""
        self._slots = [self._default_factory() for _ in range(self.capacity)]

    def __len__(self) -> int:
        return self.capacity

    def __iter__(self) -> Iterator[T]:
        return iter(self._slots)

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={self.capacity})"
