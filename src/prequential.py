from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional

from omegaconf import DictConfig, OmegaConf
from rich.console import Console

from .swknn.data.schema import Example
from .swknn.data.streams import StreamCfg, build_stream
from .swknn.logging import get_logger, log_scalars, save_run_log
from .swknn.metrics.stream_scores import PrequentialScores
from .swknn.models.windowed_knn import KNNCfg, WindowedKNN, build_classifier
from .swknn.seed import set_seed


def run_prequential(
    clf: WindowedKNN,
    stream: Iterable[Example],
    console: Console,
    writer=None,
    display_freq: int = 1000,
):
    """Test-then-train: every example is predicted before it is learned from."""
    categorical = clf.schema.is_categorical
    scores = PrequentialScores(categorical=categorical)
    for i, example in enumerate(stream):
        pred = clf.predict(example)
        estimate = pred.label() if categorical else pred.value
        scores.add(example.target, estimate, pred.status.value)
        clf.train(example)
        if (i + 1) % display_freq == 0:
            running = scores.compute()
            log_scalars(writer, "prequential", running, i + 1)
            log_scalars(writer, "model", clf.measurements(), i + 1)
            shown = " ".join(f"{k}={v:.4f}" if isinstance(v, float) else f"{k}={v}" for k, v in running.items())
            console.log(f"[{i+1}] {shown}")
    return scores.compute()


def main_prequential(cfg: DictConfig):
    set_seed(cfg.seed)

    # ---- logging
    out_dir = Path(os.path.join(cfg.output_dir, "prequential"))
    console, writer = get_logger(out_dir, use_tb=cfg.log.tb, record=cfg.log.get("save_console", False))
    console.log(OmegaConf.to_yaml(cfg))

    # ---- stream / learner
    stream = build_stream(StreamCfg(**cfg.stream))
    kcfg = KNNCfg(**cfg.model)
    clf = build_classifier(kcfg, schema=stream.schema, console=console)
    console.rule(clf.describe().splitlines()[0])

    results = run_prequential(clf, stream, console, writer, display_freq=cfg.eval.display_freq)

    console.rule("Results")
    for name, value in results.items():
        console.log(f"{name}: {value}")
    for name, value in clf.measurements().items():
        console.log(f"model/{name}: {value}")
    if writer:
        writer.close()
    save_run_log(console, out_dir)
    return results


def main_describe(cfg: DictConfig, console: Optional[Console] = None):
    console = console or Console()
    stream = build_stream(StreamCfg(**cfg.stream))
    clf = build_classifier(KNNCfg(**cfg.model), schema=stream.schema, console=console)
    console.print(clf.purpose)
    console.print(clf.describe())
    return clf
