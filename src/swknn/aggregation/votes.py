from __future__ import annotations

from typing import Optional, Sequence

import torch

from ..errors import ConfigurationError, NoNeighborsError
from ..memory.centroids import CentroidTracker
from ..search.base import NeighborSet
from ..search.distance import euclidean

MEAN = "mean"
MEDIAN = "median"
AGGREGATIONS = (MEAN, MEDIAN)


def vote_vector(neighbors: NeighborSet, max_label: int) -> torch.Tensor:
    """One vote per neighbour, indexed 0..max_label. Ties are left to the caller."""
    v = torch.zeros(int(max_label) + 1, dtype=torch.float64)
    for label in neighbors.targets:
        label = int(label)
        if label >= v.shape[0]:
            # a neighbour can never carry a label above the tracked maximum
            raise ValueError(f"neighbour label {label} exceeds max label {max_label}")
        v[label] += 1.0
    return v


def regress_mean(targets: Sequence[float]) -> float:
    if len(targets) == 0:
        raise NoNeighborsError("mean of an empty neighbour set")
    return float(sum(float(t) for t in targets) / len(targets))


def regress_median(targets: Sequence[float]) -> float:
    n = len(targets)
    if n == 0:
        raise NoNeighborsError("median of an empty neighbour set")
    s = sorted(float(t) for t in targets)
    mid = n // 2
    if n % 2 == 1:
        return s[mid]
    return (s[mid - 1] + s[mid]) / 2.0


def regress(targets: Sequence[float], mode: str = MEAN) -> float:
    if mode == MEAN:
        return regress_mean(targets)
    if mode == MEDIAN:
        return regress_median(targets)
    raise ConfigurationError(f"Unknown aggregation {mode!r}; expected one of {AGGREGATIONS}")


def nearest_centroid(query: torch.Tensor, tracker: CentroidTracker) -> Optional[object]:
    """
    Label of the class centroid closest to query, or None when no class has
    instances. Equal distances resolve to the smaller label.
    """
    labels, centroids = tracker.active_centroids()
    if not labels:
        return None
    d = euclidean(query, centroids)
    best = int(torch.sort(d, stable=True).indices[0])
    return labels[best]


def centroid_votes(query: torch.Tensor, tracker: CentroidTracker, max_label: int) -> torch.Tensor:
    v = torch.zeros(int(max_label) + 1, dtype=torch.float64)
    label = nearest_centroid(query, tracker)
    if label is not None:
        v[int(label)] += 1.0
    return v
