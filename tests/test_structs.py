import pytest

from pubgrublib.structs import ConflictStatistics, DirectedGraph


@pytest.fixture()
def graph():
    return DirectedGraph()


def test_graph(graph):
    """Test integrity of a simple graph.

    a -> b -> c
    |         ^
    +---------+
    """
    graph.add("a")
    graph.add("b")
    graph.add("c")
    graph.connect("a", "b")
    graph.connect("b", "c")
    graph.connect("a", "c")
    assert list(graph) == ["a", "b", "c"]
    assert len(graph) == 3
    assert set(graph.iter_edges()) == {("a", "b"), ("a", "c"), ("b", "c")}
    assert list(graph.iter_children("a")) == ["b", "c"]
    assert list(graph.iter_parents("c")) == ["b", "a"]
    assert graph.connected("a", "c")
    assert not graph.connected("c", "a")


def test_graph_add_twice(graph):
    graph.add("a")
    with pytest.raises(ValueError):
        graph.add("a")


def test_graph_connect_unknown_vertex(graph):
    graph.add("a")
    with pytest.raises(KeyError):
        graph.connect("a", "b")
    with pytest.raises(KeyError):
        graph.connect("b", "a")


def test_conflict_statistics():
    stats = ConflictStatistics()
    assert stats == (0, 0)
    assert stats.conflict_count == 0
    stats = stats._replace(affected=2, culprit=1)
    assert stats.conflict_count == 3
