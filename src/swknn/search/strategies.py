from __future__ import annotations

from typing import Optional

import numpy as np
import torch
from sklearn.neighbors import KDTree

from ..errors import ConfigurationError
from .base import NeighborSearch


class LinearSearch(NeighborSearch):
    """Scores every example in the window. Reference strategy."""

    name = "linear"

    def _candidates(self, query: torch.Tensor, k: int) -> torch.Tensor:
        return torch.arange(len(self.window))


class KDTreeSearch(NeighborSearch):
    """
    k-d tree over the window, rebuilt lazily whenever the window changed.

    The tree only proposes candidates: every point within the k-th tree
    distance (plus a rounding margin) is re-scored with the same metric as
    LinearSearch, so both strategies return the same ordered neighbours.
    """

    name = "kdtree"

    def __init__(self, leaf_size: int = 40, rtol: float = 1e-9):
        super().__init__()
        if int(leaf_size) < 1:
            raise ConfigurationError(f"leaf_size must be >= 1, got {leaf_size}")
        self.leaf_size = int(leaf_size)
        self.rtol = float(rtol)
        self._tree: Optional[KDTree] = None
        self._tree_version = -1

    def _index(self) -> KDTree:
        if self._tree is None or self._tree_version != self.window.version:
            self._tree = KDTree(self.window.matrix().numpy(), leaf_size=self.leaf_size)
            self._tree_version = self.window.version
        return self._tree

    def _candidates(self, query: torch.Tensor, k: int) -> torch.Tensor:
        tree = self._index()
        q = query.numpy().reshape(1, -1)
        dist, _ = tree.query(q, k=k)
        kth = float(dist[0, -1])
        radius = kth + self.rtol * max(1.0, kth)
        ind = tree.query_radius(q, r=radius)[0]
        return torch.from_numpy(np.sort(ind).astype(np.int64))


SEARCH_STRATEGIES = {
    LinearSearch.name: LinearSearch,
    KDTreeSearch.name: KDTreeSearch,
}


def build_search(name: str, leaf_size: int = 40) -> NeighborSearch:
    key = name.lower()
    if key == LinearSearch.name:
        return LinearSearch()
    if key == KDTreeSearch.name:
        return KDTreeSearch(leaf_size=leaf_size)
    raise ConfigurationError(f"Unknown search strategy {name!r}; expected one of {sorted(SEARCH_STRATEGIES)}")
