from __future__ import annotations

from typing import Dict, List, Tuple

import torch

from ..data.schema import Example
from ..errors import EmptyClassError, StateCorruptionError


class CentroidTracker:
    """
    Per-class running attribute sums and counts for the examples currently in
    the window. Centroids are derived on demand as sum / count, so a query
    costs O(classes) instead of O(window).
    """

    def __init__(self, num_attributes: int, categorical: bool = True):
        self.num_attributes = int(num_attributes)
        self.categorical = categorical
        self._sums: Dict = {}
        self._counts: Dict = {}
        self.max_label_seen: int = 0

    def on_insert(self, example: Example) -> None:
        key = self._key(example)
        if key not in self._sums:
            self._sums[key] = torch.zeros(self.num_attributes, dtype=torch.float64)
            self._counts[key] = 0
        self._sums[key] += example.x
        self._counts[key] += 1
        if self.categorical and key > self.max_label_seen:
            self.max_label_seen = key

    def on_evict(self, example: Example) -> None:
        key = self._key(example)
        if key not in self._sums:
            raise StateCorruptionError(f"eviction for untracked class {key!r}")
        if self._counts[key] <= 0:
            raise StateCorruptionError(f"eviction would drive the count of class {key!r} below zero")
        self._sums[key] -= example.x
        self._counts[key] -= 1
        if self._counts[key] == 0:
            if not self.categorical:
                # numeric targets rarely repeat; keep only keys present in the window
                del self._sums[key]
                del self._counts[key]
                return
            # drop rounding residue so an empty class sums to exactly zero
            self._sums[key].zero_()

    def centroid(self, label) -> torch.Tensor:
        n = self._counts.get(label, 0)
        if n == 0:
            raise EmptyClassError(label)
        return self._sums[label] / n

    def sum(self, label) -> torch.Tensor:
        if label not in self._sums:
            return torch.zeros(self.num_attributes, dtype=torch.float64)
        return self._sums[label].clone()

    def count(self, label) -> int:
        return self._counts.get(label, 0)

    def labels(self) -> List:
        return sorted(self._sums)

    def active_centroids(self) -> Tuple[List, torch.Tensor]:
        """Labels with at least one instance and their centroids stacked row-wise."""
        labels, rows = [], []
        for label in self.labels():
            try:
                rows.append(self.centroid(label))
            except EmptyClassError:
                continue
            labels.append(label)
        if not rows:
            return [], torch.zeros(0, self.num_attributes, dtype=torch.float64)
        return labels, torch.stack(rows)

    def clear(self) -> None:
        self._sums.clear()
        self._counts.clear()
        self.max_label_seen = 0

    def summary(self) -> str:
        lines = []
        for label in self.labels():
            attrs = ", ".join(f"{v:.6g}" for v in self._sums[label].tolist())
            lines.append(f"class {label}: count={self._counts[label]} sums=[{attrs}]")
        return "\n".join(lines)

    def _key(self, example: Example):
        if self.categorical:
            return int(example.target)
        return float(example.target)
