"""
Append-only segmented storage for reference orbits.

A reference orbit may hold many millions of coordinates and its final length
is not known until the arbitrary-precision iteration finishes. Growing one
contiguous array would repeatedly reallocate and copy, so values are kept in
fixed-size float64 segments instead and read back strictly in order through
lightweight cursors.
"""

import numpy as np
from typing import List, Optional
import logging

from .errors import OrbitBufferFrozenError, SequenceExhaustedError

logger = logging.getLogger(__name__)

# Largest segment allocated for a single orbit component
MAX_SEGMENT_SIZE = 100_000


class SequentialOrbitBuffer:
    """Chunked sequence of float64 values, filled once then read sequentially."""

    def __init__(self, segment_size: int = MAX_SEGMENT_SIZE):
        """
        Initialize an empty buffer.

        Args:
            segment_size: Capacity of each backing segment
        """
        if segment_size <= 0:
            raise ValueError("segment_size must be positive")

        self.segment_size = int(segment_size)
        self._segments: List[np.ndarray] = []
        self._length = 0
        self._tail_position = self.segment_size
        self._frozen = False
        self._default_cursor: Optional['OrbitCursor'] = None

    @classmethod
    def for_iterations(cls, max_iterations: int) -> 'SequentialOrbitBuffer':
        """Create a buffer whose segments are sized for an iteration cap."""
        return cls(max(1, min(MAX_SEGMENT_SIZE, max_iterations)))

    def add(self, value: float) -> None:
        """
        Append a value at the end of the sequence.

        Raises:
            OrbitBufferFrozenError: If a cursor has already been created
        """
        if self._frozen:
            raise OrbitBufferFrozenError("Cannot append to an orbit buffer after reading has started")

        if self._tail_position == self.segment_size:
            self._segments.append(np.empty(self.segment_size, dtype=np.float64))
            self._tail_position = 0
            if len(self._segments) > 1:
                logger.debug(f"Allocated orbit segment {len(self._segments)} ({self._length} values stored)")

        self._segments[-1][self._tail_position] = value
        self._tail_position += 1
        self._length += 1

    def freeze(self) -> None:
        """Mark the buffer as complete; further appends are rejected."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def num_segments(self) -> int:
        return len(self._segments)

    def __len__(self) -> int:
        return self._length

    def cursor(self) -> 'OrbitCursor':
        """
        Create an independent read cursor positioned at the first element.

        Creating a cursor freezes the buffer.
        """
        self.freeze()
        return OrbitCursor(self)

    # Built-in cursor for single-consumer use

    def reset_cursor(self) -> None:
        """Return the built-in cursor to the first element."""
        self._builtin_cursor().reset()

    def has_next(self) -> bool:
        return self._builtin_cursor().has_next()

    def next(self) -> float:
        """Read the element under the built-in cursor and advance it."""
        return self._builtin_cursor().next()

    def _builtin_cursor(self) -> 'OrbitCursor':
        if self._default_cursor is None:
            self._default_cursor = self.cursor()
        return self._default_cursor

    def to_array(self) -> np.ndarray:
        """Return the stored values as one contiguous float64 array (copies)."""
        if not self._segments:
            return np.empty(0, dtype=np.float64)
        return np.concatenate(self._segments)[:self._length]


class OrbitCursor:
    """Forward-only read position into a SequentialOrbitBuffer.

    Each consumer owns its own cursor, so several readers can share one
    frozen buffer without touching each other's state.
    """

    __slots__ = ('_buffer', '_position', '_segment_index', '_offset', '_segment')

    def __init__(self, buffer: SequentialOrbitBuffer):
        self._buffer = buffer
        self.reset()

    def reset(self) -> None:
        """Move back to the first element in O(1)."""
        self._position = 0
        self._segment_index = -1
        self._offset = self._buffer.segment_size
        self._segment = None

    @property
    def position(self) -> int:
        return self._position

    def has_next(self) -> bool:
        return self._position < self._buffer._length

    def next(self) -> float:
        """
        Return the element at the cursor and advance.

        Raises:
            SequenceExhaustedError: If every element has already been read
        """
        if self._position >= self._buffer._length:
            raise SequenceExhaustedError(
                f"Orbit cursor exhausted after {self._buffer._length} elements"
            )

        if self._offset == self._buffer.segment_size:
            self._segment_index += 1
            self._segment = self._buffer._segments[self._segment_index]
            self._offset = 0

        value = float(self._segment[self._offset])
        self._offset += 1
        self._position += 1
        return value

    def __iter__(self) -> 'OrbitCursor':
        return self

    def __next__(self) -> float:
        if not self.has_next():
            raise StopIteration
        return self.next()
