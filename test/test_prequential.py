import io

from omegaconf import OmegaConf
from rich.console import Console

from src.prequential import main_describe, main_prequential, run_prequential
from src.swknn.data.streams import StreamCfg, build_stream
from src.swknn.logging import log_scalars
from src.swknn.models.windowed_knn import KNNCfg, build_classifier


def _cfg(tmp_path, log=None, **model):
    return OmegaConf.create(
        {
            "mode": "prequential",
            "seed": 0,
            "output_dir": str(tmp_path),
            "log": {"tb": False, **(log or {})},
            "stream": {"kind": "blobs", "num_examples": 300, "num_attributes": 2, "num_classes": 3, "seed": 0},
            "model": {"k": 5, "max_size": 100, **model},
            "eval": {"display_freq": 100},
        }
    )


def test_run_prequential_blobs():
    out = io.StringIO()
    console = Console(file=out, width=200)
    stream = build_stream(StreamCfg(kind="blobs", num_examples=400, num_attributes=2, num_classes=3))
    clf = build_classifier(KNNCfg(k=5, max_size=200, search="kdtree"), schema=stream.schema, console=console)
    results = run_prequential(clf, stream, console, display_freq=100)
    assert results["seen"] == 400
    assert results["empty"] == 1  # only the very first example meets an empty window
    assert results["ACC"] > 0.6
    assert clf.measurements()["window_size"] == 200
    assert "[400]" in out.getvalue()


def test_run_prequential_regression():
    console = Console(file=io.StringIO())
    stream = build_stream(StreamCfg(kind="regression", num_examples=200, num_attributes=2, noise=0.0))
    clf = build_classifier(KNNCfg(k=3, aggregation="median"), schema=stream.schema, console=console)
    results = run_prequential(clf, stream, console)
    assert results["scored"] == 199
    assert results["MAE"] >= 0.0


def test_main_prequential(tmp_path):
    results = main_prequential(_cfg(tmp_path, centroid_mode=True))
    assert results["seen"] == 300
    assert (tmp_path / "prequential").is_dir()
    assert not (tmp_path / "prequential" / "run.log").exists()


def test_main_prequential_saves_console_transcript(tmp_path):
    main_prequential(_cfg(tmp_path, log={"save_console": True}))
    text = (tmp_path / "prequential" / "run.log").read_text()
    assert "Results" in text
    assert "model/window_size: 100" in text


def test_log_scalars_keeps_plain_numbers():
    class Writer:
        def __init__(self):
            self.seen = {}

        def add_scalar(self, tag, value, step):
            self.seen[tag] = (value, step)

    w = Writer()
    log_scalars(w, "prequential", {"ACC": 0.5, "seen": 3, "KAPPA": None, "flag": True}, 7)
    assert w.seen == {"prequential/ACC": (0.5, 7), "prequential/seen": (3.0, 7)}
    log_scalars(None, "prequential", {"ACC": 0.5}, 7)


def test_main_describe(tmp_path):
    console = Console(file=io.StringIO(), width=200)
    clf = main_describe(_cfg(tmp_path, search="kdtree"), console=console)
    text = console.file.getvalue()
    assert "search=kdtree" in text
    assert clf.measurements()["trained"] == 0
