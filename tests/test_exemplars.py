from apgraph.clustering_algs.exemplars import choose_exemplars

from .conftest import make_graph


def groups(assignments):
    return {
        frozenset(members["member"])
        for _, members in assignments.groupby("cluster_id")
    }


def test_each_vertex_takes_its_best_destination():
    graph = make_graph([
        (1, 1, 0.0, 0.5, 0.5),
        (1, 2, 0.0, 1.0, 0.0),
        (2, 2, 0.0, 1.0, 2.0),
        (2, 1, 0.0, 0.0, 0.0),
        (3, 3, 0.0, -1.0, 0.0),
        (3, 2, 0.0, 1.0, 1.0),
    ])

    assignments = choose_exemplars(graph)
    exemplar = dict(zip(assignments["member"], assignments["exemplar"]))

    # vertex 1 ties between itself and 2, the smaller id wins
    assert exemplar == {1: 1, 2: 2, 3: 2}
    assert groups(assignments) == {frozenset({1}), frozenset({2, 3})}
    assert sorted(assignments["cluster_id"].unique()) == [0, 1]


def test_vertex_without_outgoing_edges_is_its_own_exemplar():
    graph = make_graph([
        (1, 1, 0.0, -5.0, 0.0),
        (1, 2, 0.0, 0.0, 0.0),
    ])

    assignments = choose_exemplars(graph)

    assert len(assignments) == 2
    assert set(assignments["exemplar"]) == {2}
    assert groups(assignments) == {frozenset({1, 2})}


def test_row_order_does_not_change_the_result():
    graph = make_graph([
        (1, 1, 0.0, 1.0, 0.0),
        (1, 2, 0.0, 1.0, 0.0),
        (2, 2, 0.0, 3.0, 0.0),
        (2, 1, 0.0, 3.0, 0.0),
        (3, 1, 0.0, 2.0, 0.0),
        (3, 3, 0.0, 0.0, 0.0),
    ])

    forward = choose_exemplars(graph)
    backward = choose_exemplars(graph.iloc[::-1].reset_index(drop=True))

    assert forward.equals(backward)
