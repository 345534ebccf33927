from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

import torch

from ..data.schema import Example
from ..errors import ConfigurationError

Listener = Callable[[Example], None]


@dataclass
class WindowStats:
    size: int
    capacity: int


class SlidingWindow:
    """Bounded FIFO of the most recent training examples."""

    def __init__(self, max_size: int, num_attributes: int):
        if int(max_size) < 1:
            raise ConfigurationError(f"max_size must be >= 1, got {max_size}")
        self.max_size = int(max_size)
        self.num_attributes = int(num_attributes)
        self._items: deque = deque()
        self._on_insert: List[Listener] = []
        self._on_evict: List[Listener] = []
        self._version = 0
        self._matrix: Optional[torch.Tensor] = None
        self._matrix_version = -1

    def subscribe(self, on_insert: Optional[Listener] = None, on_evict: Optional[Listener] = None) -> None:
        if on_insert is not None:
            self._on_insert.append(on_insert)
        if on_evict is not None:
            self._on_evict.append(on_evict)

    def insert(self, example: Example) -> Optional[Example]:
        """Append example, evicting the oldest first when full. Returns the evicted example."""
        evicted = None
        if len(self._items) >= self.max_size:
            evicted = self._items.popleft()
            self._version += 1
            for fn in self._on_evict:
                fn(evicted)
        self._items.append(example)
        self._version += 1
        for fn in self._on_insert:
            fn(example)
        return evicted

    def clear(self) -> None:
        self._items.clear()
        self._version += 1
        self._matrix = None

    def oldest(self) -> Example:
        if not self._items:
            raise IndexError("window is empty")
        return self._items[0]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Example]:
        return iter(list(self._items))

    def __getitem__(self, position: int) -> Example:
        return self._items[position]

    @property
    def version(self) -> int:
        return self._version

    @property
    def stats(self) -> WindowStats:
        return WindowStats(size=len(self._items), capacity=self.max_size)

    def matrix(self) -> torch.Tensor:
        """(len, num_attributes) float64 attributes in window order, rebuilt once per version."""
        if self._matrix is None or self._matrix_version != self._version:
            if self._items:
                self._matrix = torch.stack([e.x for e in self._items])
            else:
                self._matrix = torch.zeros(0, self.num_attributes, dtype=torch.float64)
            self._matrix_version = self._version
        return self._matrix

    def targets(self) -> List:
        return [e.target for e in self._items]
