from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import torch

from ..data.schema import Example
from ..errors import SearchFault
from ..memory.window import SlidingWindow
from .distance import as_query, euclidean


@dataclass
class NeighborSet:
    """Neighbours ordered by (distance, window position)."""
    examples: List[Example] = field(default_factory=list)
    distances: List[float] = field(default_factory=list)
    positions: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.examples)

    @property
    def targets(self) -> List:
        return [e.target for e in self.examples]


class NeighborSearch(ABC):
    """Nearest-neighbour strategy bound to a live window."""

    name: str = "base"

    def __init__(self):
        self.window: Optional[SlidingWindow] = None

    def configure(self, window: SlidingWindow) -> "NeighborSearch":
        self.window = window
        return self

    def k_nearest(self, query, k: int) -> NeighborSet:
        if self.window is None:
            raise SearchFault("search has not been bound to a window")
        q = as_query(query.x if isinstance(query, Example) else query, self.window.num_attributes)
        n = len(self.window)
        if n == 0 or k < 1:
            return NeighborSet()
        positions = self._candidates(q, min(int(k), n))
        return self._rank(q, positions, min(int(k), n))

    @abstractmethod
    def _candidates(self, query: torch.Tensor, k: int) -> torch.Tensor:
        """Ascending window positions guaranteed to contain the k nearest, ties included."""

    def _rank(self, query: torch.Tensor, positions: torch.Tensor, k: int) -> NeighborSet:
        points = self.window.matrix()[positions]
        d = euclidean(query, points)
        # stable sort keeps earlier window positions first among equal distances
        order = torch.sort(d, stable=True).indices[:k]
        picked = positions[order].tolist()
        return NeighborSet(
            examples=[self.window[p] for p in picked],
            distances=d[order].tolist(),
            positions=picked,
        )
