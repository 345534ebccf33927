from __future__ import annotations

from typing import Dict, List, Optional

import numpy as np
from sklearn.metrics import accuracy_score, cohen_kappa_score, mean_absolute_error, mean_squared_error


def classification_scores(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    if y_true.size == 0:
        return {"ACC": float("nan"), "KAPPA": float("nan")}
    acc = accuracy_score(y_true, y_pred)
    # kappa is undefined when both sequences hold a single identical label
    if np.unique(np.concatenate([y_true, y_pred])).size < 2:
        kappa = 1.0 if acc == 1.0 else 0.0
    else:
        kappa = cohen_kappa_score(y_true, y_pred)
    return {"ACC": float(acc), "KAPPA": float(kappa)}


def regression_scores(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    if y_true.size == 0:
        return {"MAE": float("nan"), "RMSE": float("nan")}
    return {
        "MAE": float(mean_absolute_error(y_true, y_pred)),
        "RMSE": float(np.sqrt(mean_squared_error(y_true, y_pred))),
    }


def compute_all(y_true: np.ndarray, y_pred: np.ndarray, categorical: bool = True):
    y_true, y_pred = np.asarray(y_true), np.asarray(y_pred)
    if categorical:
        return classification_scores(y_true.astype(np.int64), y_pred.astype(np.int64))
    return regression_scores(y_true.astype(np.float64), y_pred.astype(np.float64))


class PrequentialScores:
    """Collects test-then-train outcomes. Predictions without an estimate are counted, not scored."""

    def __init__(self, categorical: bool = True):
        self.categorical = categorical
        self.y_true: List = []
        self.y_pred: List = []
        self.seen = 0
        self.empty = 0
        self.faults = 0

    def add(self, target, estimate: Optional[float], status: str = "ok") -> None:
        self.seen += 1
        if status == "empty":
            self.empty += 1
        elif status == "fault":
            self.faults += 1
        if estimate is None:
            return
        self.y_true.append(target)
        self.y_pred.append(estimate)

    def compute(self) -> Dict[str, float]:
        out = compute_all(np.array(self.y_true), np.array(self.y_pred), self.categorical)
        out.update({"seen": self.seen, "scored": len(self.y_true), "empty": self.empty, "faults": self.faults})
        return out
