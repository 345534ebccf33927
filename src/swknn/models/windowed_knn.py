from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import torch
from rich.console import Console
from rich.markup import escape

from ..aggregation.votes import AGGREGATIONS, centroid_votes, nearest_centroid, regress, vote_vector
from ..data.schema import Example, Schema, check_example
from ..errors import ConfigurationError, LifecycleError, NoNeighborsError, SearchFault
from ..memory.centroids import CentroidTracker
from ..memory.window import SlidingWindow
from ..search.base import NeighborSearch, NeighborSet
from ..search.distance import as_query
from ..search.strategies import SEARCH_STRATEGIES, build_search

SENTINEL = "sentinel"
DEFAULT = "default"


@dataclass
class KNNCfg:
    k: int = 10
    max_size: int = 1000
    search: str = "linear"        # "linear" | "kdtree"
    aggregation: str = "mean"     # "mean" | "median", regression only
    centroid_mode: bool = False   # vote for the nearest class centroid instead of the k nearest examples
    no_neighbors: str = SENTINEL  # "sentinel" | "default", regression with an empty window
    default_value: float = 0.0
    leaf_size: int = 40
    debug: bool = False

    def validate(self) -> "KNNCfg":
        if int(self.k) < 1:
            raise ConfigurationError(f"k must be >= 1, got {self.k}")
        if int(self.max_size) < 1:
            raise ConfigurationError(f"max_size must be >= 1, got {self.max_size}")
        if self.search.lower() not in SEARCH_STRATEGIES:
            raise ConfigurationError(f"Unknown search strategy {self.search!r}")
        if self.aggregation not in AGGREGATIONS:
            raise ConfigurationError(f"Unknown aggregation {self.aggregation!r}")
        if self.no_neighbors not in (SENTINEL, DEFAULT):
            raise ConfigurationError(f"Unknown no-neighbours policy {self.no_neighbors!r}")
        if int(self.leaf_size) < 1:
            raise ConfigurationError(f"leaf_size must be >= 1, got {self.leaf_size}")
        return self


class State(Enum):
    UNCONFIGURED = "unconfigured"
    READY = "ready"
    TRAINING = "training"
    PREDICTING = "predicting"


class PredictionStatus(Enum):
    OK = "ok"
    EMPTY = "empty"  # no neighbours: valid but uninformative
    FAULT = "fault"  # the search could not score the query


@dataclass
class Prediction:
    status: PredictionStatus
    votes: Optional[torch.Tensor] = None
    value: Optional[float] = None
    neighbors: NeighborSet = field(default_factory=NeighborSet)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is PredictionStatus.OK

    def scores(self) -> List[float]:
        if self.votes is not None:
            return self.votes.tolist()
        return [] if self.value is None else [self.value]

    def label(self) -> Optional[int]:
        """Arg-max of the votes; the lowest label wins a tie. None when nothing voted."""
        if self.votes is None or self.votes.numel() == 0 or float(self.votes.max()) <= 0.0:
            return None
        return int(torch.argmax(self.votes))


class WindowedKNN:
    """
    k nearest neighbours over a sliding window of the stream.

    Lifecycle: configure(schema) -> train/predict one example at a time ->
    reset(). Each instance owns its window and centroid tracker; calls must
    not overlap.
    """

    purpose = "kNN over a bounded sliding window with incrementally tracked class centroids."

    def __init__(self, cfg: Optional[KNNCfg] = None, console: Optional[Console] = None):
        self.cfg = (cfg or KNNCfg()).validate()
        self.console = console or Console(stderr=True)
        self.state = State.UNCONFIGURED
        self.schema: Optional[Schema] = None
        self.window: Optional[SlidingWindow] = None
        self.tracker: Optional[CentroidTracker] = None
        self.search: Optional[NeighborSearch] = None
        self.max_label_seen: int = 0
        self.trained: int = 0

    # ---- lifecycle
    def configure(self, schema: Schema) -> "WindowedKNN":
        if not isinstance(schema, Schema):
            raise ConfigurationError(f"expected a Schema, got {type(schema).__name__}")
        self.schema = schema
        self.window = SlidingWindow(self.cfg.max_size, schema.num_attributes)
        self.tracker = CentroidTracker(schema.num_attributes, categorical=schema.is_categorical)
        self.window.subscribe(on_insert=self.tracker.on_insert, on_evict=self.tracker.on_evict)
        self.search = build_search(self.cfg.search, leaf_size=self.cfg.leaf_size).configure(self.window)
        self.max_label_seen = 0
        self.trained = 0
        self.state = State.READY
        return self

    def reset(self) -> None:
        if self.window is not None:
            self.window.clear()
        if self.tracker is not None:
            self.tracker.clear()
        self.schema = None
        self.window = None
        self.tracker = None
        self.search = None
        self.max_label_seen = 0
        self.trained = 0
        self.state = State.UNCONFIGURED

    def _require_ready(self, op: str) -> None:
        if self.state is not State.READY:
            raise LifecycleError(f"{op}() called in state {self.state.value}; configure(schema) first")

    # ---- training
    def train(self, example: Example) -> None:
        self._require_ready("train")
        check_example(example, self.schema)
        self.state = State.TRAINING
        try:
            # the window evicts before appending and notifies the tracker on both
            self.window.insert(example)
            self.max_label_seen = self.tracker.max_label_seen
            self.trained += 1
        finally:
            self.state = State.READY
        if self.cfg.debug:
            self.console.log(f"window {len(self.window)}/{self.window.max_size}\n{escape(self.tracker.summary())}")

    # ---- prediction
    def predict(self, example: Example) -> Prediction:
        self._require_ready("predict")
        self.state = State.PREDICTING
        try:
            return self._predict(example)
        finally:
            self.state = State.READY

    def _predict(self, example: Example) -> Prediction:
        x = example.x if isinstance(example, Example) else example
        try:
            q = as_query(x, self.schema.num_attributes)
            if self.cfg.centroid_mode:
                return self._predict_centroid(q)
            neighbors = self.search.k_nearest(q, self.cfg.k)
        except SearchFault as e:
            self.console.log(f"[yellow]kNN search failed: {escape(str(e))}[/yellow]")
            return self._fault(str(e))

        if self.schema.is_categorical:
            votes = vote_vector(neighbors, self.max_label_seen)
            status = PredictionStatus.OK if len(neighbors) else PredictionStatus.EMPTY
            return Prediction(status=status, votes=votes, neighbors=neighbors)
        try:
            value = regress(neighbors.targets, self.cfg.aggregation)
        except NoNeighborsError:
            return self._no_neighbors(neighbors)
        return Prediction(status=PredictionStatus.OK, value=value, neighbors=neighbors)

    def _predict_centroid(self, q: torch.Tensor) -> Prediction:
        if self.schema.is_categorical:
            votes = centroid_votes(q, self.tracker, self.max_label_seen)
            status = PredictionStatus.OK if float(votes.sum()) > 0 else PredictionStatus.EMPTY
            return Prediction(status=status, votes=votes)
        label = nearest_centroid(q, self.tracker)
        if label is None:
            return self._no_neighbors(NeighborSet())
        return Prediction(status=PredictionStatus.OK, value=float(label))

    def _no_neighbors(self, neighbors: NeighborSet) -> Prediction:
        value = float(self.cfg.default_value) if self.cfg.no_neighbors == DEFAULT else None
        return Prediction(status=PredictionStatus.EMPTY, value=value, neighbors=neighbors)

    def _fault(self, message: str) -> Prediction:
        if self.schema.is_categorical:
            votes = torch.zeros(self.max_label_seen + 1, dtype=torch.float64)
            return Prediction(status=PredictionStatus.FAULT, votes=votes, error=message)
        return Prediction(status=PredictionStatus.FAULT, error=message)

    # ---- introspection
    def measurements(self) -> Dict[str, float]:
        if self.state is State.UNCONFIGURED:
            return {"window_size": 0, "window_capacity": self.cfg.max_size, "classes_tracked": 0,
                    "max_label_seen": 0, "trained": 0}
        active, _ = self.tracker.active_centroids()
        return {
            "window_size": len(self.window),
            "window_capacity": self.window.max_size,
            "classes_tracked": len(active),
            "max_label_seen": self.max_label_seen,
            "trained": self.trained,
        }

    def describe(self) -> str:
        c = self.cfg
        mode = "centroid" if c.centroid_mode else f"{c.k}-NN"
        lines = [
            f"WindowedKNN ({mode}, search={c.search}, window={c.max_size})",
            f"state: {self.state.value}",
        ]
        if self.schema is not None:
            lines.append(f"target: {self.schema.target}, attributes: {self.schema.num_attributes}")
            if not self.schema.is_categorical:
                lines.append(f"aggregation: {c.aggregation}, no neighbours: {c.no_neighbors}")
            for label in self.tracker.labels():
                lines.append(f"  class {label}: {self.tracker.count(label)} in window")
        return "\n".join(lines)


def build_classifier(cfg: KNNCfg, schema: Optional[Schema] = None, console: Optional[Console] = None) -> WindowedKNN:
    clf = WindowedKNN(cfg, console=console)
    if schema is not None:
        clf.configure(schema)
    return clf
