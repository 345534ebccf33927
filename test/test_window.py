import pytest
import torch

from src.swknn.data.schema import Example
from src.swknn.errors import ConfigurationError
from src.swknn.memory.window import SlidingWindow


def _ex(i, label=0):
    return Example.dense([float(i), float(-i)], label)


def test_window_keeps_last_m_in_order():
    w = SlidingWindow(max_size=3, num_attributes=2)
    inserted = []
    for i in range(10):
        e = _ex(i)
        w.insert(e)
        inserted.append(e)
        assert len(w) <= 3
        assert list(w) == inserted[-3:]
    assert w.oldest() is inserted[-3]
    assert w.stats.size == 3 and w.stats.capacity == 3


def test_evicts_before_insert():
    w = SlidingWindow(max_size=2, num_attributes=2)
    events = []
    w.subscribe(
        on_insert=lambda e: events.append(("insert", e.x[0].item(), len(w))),
        on_evict=lambda e: events.append(("evict", e.x[0].item(), len(w))),
    )
    for i in range(3):
        w.insert(_ex(i))
    assert events == [
        ("insert", 0.0, 1),
        ("insert", 1.0, 2),
        ("evict", 0.0, 1),
        ("insert", 2.0, 2),
    ]


def test_insert_returns_evicted():
    w = SlidingWindow(max_size=1, num_attributes=2)
    first = _ex(1)
    assert w.insert(first) is None
    assert w.insert(_ex(2)) is first


def test_invalid_size():
    with pytest.raises(ConfigurationError):
        SlidingWindow(max_size=0, num_attributes=2)


def test_oldest_on_empty():
    w = SlidingWindow(max_size=4, num_attributes=2)
    with pytest.raises(IndexError):
        w.oldest()
    assert list(w) == []
    assert w.matrix().shape == (0, 2)


def test_matrix_follows_window_order():
    w = SlidingWindow(max_size=2, num_attributes=2)
    for i in range(3):
        w.insert(_ex(i))
    m = w.matrix()
    assert torch.equal(m, torch.tensor([[1.0, -1.0], [2.0, -2.0]], dtype=torch.float64))
    assert w.matrix() is m  # cached until the window changes
    v = w.version
    w.insert(_ex(5))
    assert w.version > v
    assert w.matrix()[-1, 0].item() == 5.0


def test_iteration_is_restartable():
    w = SlidingWindow(max_size=5, num_attributes=2)
    for i in range(4):
        w.insert(_ex(i))
    assert [e.x[0].item() for e in w] == [e.x[0].item() for e in w] == [0.0, 1.0, 2.0, 3.0]
