"""
Bounded FIFO history used by the adaptive controller.
"""
from collections import deque
from typing import Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class BoundedHistory(Generic[T]):
    """
    Fixed-capacity FIFO buffer.

    Pushing onto a full buffer evicts the oldest value and returns it.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._items: deque[T] = deque(maxlen=capacity)

    def push(self, value: T) -> Optional[T]:
        """
        Append a value, evicting the oldest one when full.

        Args:
            value: Value to append

        Returns:
            The evicted value, or None if nothing was evicted
        """
        evicted = self._items[0] if len(self._items) == self.capacity else None
        self._items.append(value)
        return evicted

    def mean(self) -> Optional[float]:
        """Arithmetic mean of the retained values, None when empty."""
        if not self._items:
            return None
        return sum(self._items) / len(self._items)

    def clear(self) -> None:
        self._items.clear()

    def is_full(self) -> bool:
        return len(self._items) == self.capacity

    def to_list(self) -> list[T]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)
