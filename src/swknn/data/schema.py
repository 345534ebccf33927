from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np
import torch

from ..errors import ConfigurationError, SchemaError

CATEGORICAL = "categorical"
NUMERIC = "numeric"

Target = Union[int, float]


@dataclass(frozen=True)
class Schema:
    """
    Header of a stream.

    num_attributes counts the input attributes only; class_index is the
    position of the target inside a raw row of num_attributes + 1 values.
    """
    num_attributes: int
    class_index: int = -1
    target: str = CATEGORICAL  # "categorical" | "numeric"
    num_classes: int = 2

    def __post_init__(self):
        if int(self.num_attributes) < 1:
            raise ConfigurationError(f"num_attributes must be >= 1, got {self.num_attributes}")
        if self.target not in (CATEGORICAL, NUMERIC):
            raise ConfigurationError(f"Unknown target kind {self.target!r}")
        if self.is_categorical and int(self.num_classes) < 1:
            raise ConfigurationError(f"num_classes must be >= 1, got {self.num_classes}")
        width = self.num_attributes + 1
        if not -width <= self.class_index < width:
            raise ConfigurationError(f"class_index {self.class_index} out of range for {width} columns")

    @property
    def is_categorical(self) -> bool:
        return self.target == CATEGORICAL

    def split_row(self, row: Sequence[float]) -> "Example":
        """Build an Example from a raw row that still contains the target column."""
        values = np.asarray(row, dtype=np.float64)
        if values.ndim != 1 or values.shape[0] != self.num_attributes + 1:
            raise SchemaError(f"expected a row of {self.num_attributes + 1} values, got shape {values.shape}")
        idx = self.class_index % values.shape[0]
        target = values[idx]
        x = np.delete(values, idx)
        return Example.dense(x, int(target) if self.is_categorical else float(target))


@dataclass(frozen=True, eq=False)
class Example:
    """Attribute vector plus target. The tensor is a private float64 copy."""
    x: torch.Tensor = field(repr=False)
    target: Target

    @classmethod
    def dense(cls, values: Sequence[float], target: Target) -> "Example":
        arr = np.array(values, dtype=np.float64).reshape(-1)
        # missing values count as 0
        arr[np.isnan(arr)] = 0.0
        return cls(x=torch.from_numpy(arr), target=target)

    @classmethod
    def sparse(
        cls,
        indices: Sequence[int],
        values: Sequence[float],
        num_attributes: int,
        target: Target,
    ) -> "Example":
        if len(indices) != len(values):
            raise SchemaError("indices and values must align")
        arr = np.zeros(int(num_attributes), dtype=np.float64)
        for i, v in zip(indices, values):
            if not 0 <= int(i) < num_attributes:
                raise SchemaError(f"sparse index {i} outside 0..{num_attributes - 1}")
            arr[int(i)] = v
        return cls.dense(arr, target)

    @property
    def num_attributes(self) -> int:
        return int(self.x.shape[0])

    def values(self) -> np.ndarray:
        return self.x.numpy().copy()


def check_example(example: Example, schema: Schema) -> None:
    """Raise SchemaError when an example cannot be stored under schema."""
    if example.num_attributes != schema.num_attributes:
        raise SchemaError(
            f"example has {example.num_attributes} attributes, schema expects {schema.num_attributes}"
        )
    if not torch.isfinite(example.x).all():
        raise SchemaError("example contains infinite attribute values")
    t = example.target
    try:
        ft = float(t)
    except (TypeError, ValueError) as e:
        raise SchemaError(f"target must be numeric, got {t!r}") from e
    if schema.is_categorical:
        if isinstance(t, bool) or not np.isfinite(ft) or ft != int(ft) or ft < 0:
            raise SchemaError(f"categorical target must be a non-negative integer, got {t!r}")
    elif not np.isfinite(ft):
        raise SchemaError(f"numeric target must be finite, got {t!r}")
