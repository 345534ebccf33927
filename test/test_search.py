import numpy as np
import pytest

from src.swknn.data.schema import Example
from src.swknn.errors import ConfigurationError, SearchFault
from src.swknn.memory.window import SlidingWindow
from src.swknn.search.strategies import KDTreeSearch, LinearSearch, build_search


def _window(points, max_size=None):
    w = SlidingWindow(max_size or max(1, len(points)), len(points[0]) if points else 2)
    for i, p in enumerate(points):
        w.insert(Example.dense(p, i % 3))
    return w


@pytest.mark.parametrize("seed", range(5))
def test_linear_and_kdtree_agree(seed):
    rng = np.random.default_rng(seed)
    # small integer grid: plenty of duplicated points and equal distances
    w = SlidingWindow(25, 2)
    linear = LinearSearch().configure(w)
    tree = KDTreeSearch(leaf_size=2).configure(w)
    for step in range(60):
        w.insert(Example.dense(rng.integers(0, 4, size=2), int(rng.integers(0, 3))))
        queries = [rng.integers(0, 4, size=2), rng.uniform(-1, 5, size=2)]
        for q in queries:
            for k in (1, 2, 3, 7, len(w), len(w) + 3):
                a = linear.k_nearest(q, k)
                b = tree.k_nearest(q, k)
                assert a.positions == b.positions, (step, q, k)
                assert a.distances == b.distances
                assert [e is f for e, f in zip(a.examples, b.examples)] == [True] * len(a)


def test_ordering_and_tie_break():
    w = _window([[3.0, 0.0], [1.0, 0.0], [-1.0, 0.0], [0.0, 5.0]])
    for search in (LinearSearch(), KDTreeSearch()):
        res = search.configure(w).k_nearest([0.0, 0.0], 3)
        # [1,0] and [-1,0] are equidistant: the earlier one comes first
        assert res.positions == [1, 2, 0]
        assert res.distances == [1.0, 1.0, 3.0]


def test_fewer_than_k():
    w = _window([[0.0, 0.0], [1.0, 1.0]])
    for name in ("linear", "kdtree"):
        res = build_search(name).configure(w).k_nearest([0.0, 0.0], 5)
        assert len(res) == 2
        assert res.positions == [0, 1]


def test_empty_window_returns_nothing():
    w = SlidingWindow(4, 2)
    for name in ("linear", "kdtree"):
        res = build_search(name).configure(w).k_nearest([1.0, 2.0], 3)
        assert len(res) == 0 and res.targets == []


def test_tree_follows_window_changes():
    w = SlidingWindow(2, 1)
    tree = KDTreeSearch().configure(w)
    w.insert(Example.dense([0.0], 0))
    w.insert(Example.dense([10.0], 1))
    assert tree.k_nearest([1.0], 1).targets == [0]
    w.insert(Example.dense([9.0], 1))  # evicts [0.0]
    res = tree.k_nearest([1.0], 1)
    assert res.targets == [1]
    assert res.distances == [8.0]


def test_sparse_and_missing_count_as_zero():
    w = SlidingWindow(2, 3)
    w.insert(Example.sparse([2], [4.0], 3, 0))
    w.insert(Example.dense([float("nan"), 0.0, 1.0], 1))
    res = LinearSearch().configure(w).k_nearest(Example.dense([0.0, 0.0, 0.0], 0), 2)
    assert res.targets == [1, 0]
    assert res.distances == [1.0, 4.0]


def test_malformed_query():
    w = _window([[0.0, 0.0]])
    search = LinearSearch().configure(w)
    with pytest.raises(SearchFault):
        search.k_nearest([1.0, 2.0, 3.0], 1)
    with pytest.raises(SearchFault):
        search.k_nearest([float("inf"), 0.0], 1)
    with pytest.raises(SearchFault):
        LinearSearch().k_nearest([0.0, 0.0], 1)


def test_unknown_strategy():
    with pytest.raises(ConfigurationError):
        build_search("ball_tree")
    with pytest.raises(ConfigurationError):
        KDTreeSearch(leaf_size=0)
