from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np
from sklearn.datasets import make_blobs, make_classification, make_regression

from .schema import CATEGORICAL, NUMERIC, Example, Schema


@dataclass
class StreamCfg:
    kind: str = "blobs"        # "blobs" | "classification" | "regression" | "csv"
    path: Optional[str] = None  # csv only
    num_examples: int = 5000
    num_attributes: int = 4
    num_classes: int = 3
    class_index: int = -1
    target: str = CATEGORICAL  # csv only; synthetic kinds fix their own target
    delimiter: str = ","
    skip_header: bool = False
    noise: float = 0.1
    seed: int = 0
    max_examples: Optional[int] = None


class _ArrayStream:
    """Replays an attribute matrix and targets one example at a time, in order."""

    def __init__(self, X: np.ndarray, y: np.ndarray, schema: Schema, limit: Optional[int] = None):
        if X.shape[0] != y.shape[0]:
            raise ValueError("X and y must align on the first dimension")
        self.X = np.asarray(X, dtype=np.float64)
        self.y = y
        self.schema = schema
        self.limit = X.shape[0] if limit is None else min(int(limit), X.shape[0])

    def __len__(self) -> int:
        return self.limit

    def __iter__(self) -> Iterator[Example]:
        cast = int if self.schema.is_categorical else float
        for i in range(self.limit):
            yield Example.dense(self.X[i], cast(self.y[i]))


class BlobStream(_ArrayStream):
    def __init__(self, cfg: StreamCfg):
        X, y = make_blobs(
            n_samples=cfg.num_examples,
            n_features=cfg.num_attributes,
            centers=cfg.num_classes,
            random_state=cfg.seed,
        )
        schema = Schema(cfg.num_attributes, class_index=-1, target=CATEGORICAL, num_classes=cfg.num_classes)
        super().__init__(X, y, schema, cfg.max_examples)


class ClassificationStream(_ArrayStream):
    def __init__(self, cfg: StreamCfg):
        X, y = make_classification(
            n_samples=cfg.num_examples,
            n_features=cfg.num_attributes,
            n_informative=max(2, cfg.num_attributes // 2),
            n_redundant=0,
            n_classes=cfg.num_classes,
            n_clusters_per_class=1,
            flip_y=cfg.noise,
            random_state=cfg.seed,
        )
        schema = Schema(cfg.num_attributes, class_index=-1, target=CATEGORICAL, num_classes=cfg.num_classes)
        super().__init__(X, y, schema, cfg.max_examples)


class RegressionStream(_ArrayStream):
    def __init__(self, cfg: StreamCfg):
        X, y = make_regression(
            n_samples=cfg.num_examples,
            n_features=cfg.num_attributes,
            noise=cfg.noise,
            random_state=cfg.seed,
        )
        schema = Schema(cfg.num_attributes, class_index=-1, target=NUMERIC)
        super().__init__(X, y, schema, cfg.max_examples)


class CsvStream(_ArrayStream):
    """Numeric CSV with the target in column class_index."""

    def __init__(self, cfg: StreamCfg):
        if not cfg.path:
            raise ValueError("csv stream needs a path")
        rows = np.loadtxt(cfg.path, delimiter=cfg.delimiter, skiprows=1 if cfg.skip_header else 0, ndmin=2)
        idx = cfg.class_index % rows.shape[1]
        y = rows[:, idx]
        X = np.delete(rows, idx, axis=1)
        num_classes = int(y.max()) + 1 if cfg.target == CATEGORICAL and y.size else cfg.num_classes
        schema = Schema(X.shape[1], class_index=cfg.class_index, target=cfg.target, num_classes=max(1, num_classes))
        super().__init__(X, y, schema, cfg.max_examples)


def build_stream(cfg: StreamCfg) -> _ArrayStream:
    kind = cfg.kind.lower()
    if kind == "blobs":
        return BlobStream(cfg)
    if kind == "classification":
        return ClassificationStream(cfg)
    if kind == "regression":
        return RegressionStream(cfg)
    if kind == "csv":
        return CsvStream(cfg)
    raise NotImplementedError(f"Stream {cfg.kind} not implemented")
