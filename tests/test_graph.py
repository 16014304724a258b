import numpy as np
import pandas as pd
import pytest

from apgraph.exceptions import EmptyInputError
from apgraph.graph import GraphBuilder, as_similarity_frame, distinct_vertices


@pytest.fixture
def builder():
    return GraphBuilder()


def edge_map(graph):
    return {
        (src, dst): similarity
        for src, dst, similarity in graph[["src", "dst", "similarity"]].itertuples(index=False)
    }


def test_symmetric_input_is_mirrored(builder):
    graph = builder.construct_graph([(1, 2, 0.5), (3, 3, 1.0)], symmetric=True)

    assert len(graph) == 3
    assert edge_map(graph) == {(1, 2): 0.5, (2, 1): 0.5, (3, 3): 1.0}
    assert (graph["availability"] == 0.0).all()
    assert (graph["responsibility"] == 0.0).all()


def test_asymmetric_input_is_kept_as_is(builder):
    graph = builder.construct_graph([(1, 2, 0.5), (2, 1, 0.7)], symmetric=False)

    assert edge_map(graph) == {(1, 2): 0.5, (2, 1): 0.7}


def test_normalization_divides_by_outgoing_sum(builder):
    graph = builder.construct_graph(
        [(1, 2, 1.0), (1, 3, 3.0), (4, 5, 2.0), (4, 6, -2.0)],
        normalize=True,
        symmetric=False,
    )
    edges = edge_map(graph)

    assert edges[(1, 2)] == pytest.approx(0.25)
    assert edges[(1, 3)] == pytest.approx(0.75)
    # outgoing sum of vertex 4 is zero, left unscaled
    assert edges[(4, 5)] == 2.0
    assert edges[(4, 6)] == -2.0


def test_median_odd_count(builder):
    sims = [(1, 2, 5.0), (1, 3, 1.0), (2, 3, 4.0), (3, 4, 2.0), (4, 5, 3.0)]

    assert builder.median(sims) == 3.0


def test_median_even_count(builder):
    sims = [(1, 2, 1.0), (2, 3, 2.0), (3, 4, 3.0), (4, 1, 4.0)]

    assert builder.median(sims) == 2.5


def test_median_of_empty_relation(builder):
    with pytest.raises(EmptyInputError):
        builder.median([])


def test_determine_preferences_adds_median_self_loops(builder):
    sims = [(1, 2, 1.0), (1, 3, 2.0), (2, 3, 3.0), (3, 4, 4.0), (4, 5, 5.0)]

    with_prefs = builder.determine_preferences(sims)
    loops = with_prefs[with_prefs["i"] == with_prefs["j"]]

    assert len(with_prefs) == 10
    assert sorted(loops["i"]) == [1, 2, 3, 4, 5]
    assert (loops["s"] == 3.0).all()


def test_determine_preferences_even_count(builder):
    sims = [(1, 2, 1.0), (2, 3, 2.0), (3, 4, 3.0), (4, 1, 4.0)]

    with_prefs = builder.determine_preferences(sims)
    loops = with_prefs[with_prefs["i"] == with_prefs["j"]]

    assert (loops["s"] == 2.5).all()


def test_embed_preferences_uses_given_value(builder):
    sims = [(1, 2, 100.0), (2, 3, -40.0)]

    with_prefs = builder.embed_preferences(sims, -7.25)
    loops = with_prefs[with_prefs["i"] == with_prefs["j"]]

    assert sorted(loops["i"]) == [1, 2, 3]
    assert (loops["s"] == -7.25).all()
    assert len(with_prefs) == 5


def test_as_similarity_frame_accepts_arrays_and_frames():
    from_array = as_similarity_frame(np.array([[1, 2, 0.5], [2, 3, 0.25]]))
    from_frame = as_similarity_frame(pd.DataFrame({"a": [1, 2], "b": [2, 3], "c": [0.5, 0.25]}))

    pd.testing.assert_frame_equal(from_array, from_frame)
    assert list(from_array.columns) == ["i", "j", "s"]
    assert from_array["i"].dtype == np.int64
    assert from_array["s"].dtype == np.float64


def test_as_similarity_frame_rejects_bad_shapes():
    with pytest.raises(ValueError):
        as_similarity_frame([(1, 2)])

    with pytest.raises(ValueError):
        as_similarity_frame(pd.DataFrame({"i": [1], "j": [2]}))


def test_distinct_vertices():
    frame = as_similarity_frame([(5, 2, 1.0), (2, 9, 1.0)])

    assert distinct_vertices(frame).tolist() == [2, 5, 9]
