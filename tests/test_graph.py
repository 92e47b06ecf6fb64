"""Tests for graph.py — construction, ordering and contraction."""
import json

import pytest

from wr_scheduler.errors import ConfigError, GraphError
from wr_scheduler.graph import FunctionGraph


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def test_from_dependencies_builds_edges(diamond_graph):
    assert set(diamond_graph.edges) == {
        ("start", "f1"),
        ("start", "f2"),
        ("f1", "f3"),
        ("f2", "f3"),
    }


def test_isolated_node_kept():
    graph = FunctionGraph(nodes=["lonely"], edges=[("a", "b")])
    assert "lonely" in graph
    assert len(graph) == 3


def test_duplicate_edges_collapsed():
    graph = FunctionGraph(edges=[("a", "b"), ("a", "b")])
    assert graph.edges == [("a", "b")]


def test_unknown_predecessor_raises():
    with pytest.raises(GraphError, match="'missing'"):
        FunctionGraph.from_dependencies({"a": ["missing"]})


def test_cycle_raises_at_construction():
    with pytest.raises(GraphError, match="cycle"):
        FunctionGraph.from_dependencies({"a": ["c"], "b": ["a"], "c": ["b"]})


def test_cycle_message_names_functions():
    with pytest.raises(GraphError) as excinfo:
        FunctionGraph(edges=[("start", "a"), ("a", "b"), ("b", "a")])
    assert "'a'" in str(excinfo.value)
    assert "'b'" in str(excinfo.value)
    assert "'start'" not in str(excinfo.value)


def test_self_loop_raises():
    with pytest.raises(GraphError, match="itself"):
        FunctionGraph(edges=[("a", "a")])


def test_invalid_name_raises():
    with pytest.raises(GraphError):
        FunctionGraph(nodes=[""])


# ---------------------------------------------------------------------------
# Ordering and queries
# ---------------------------------------------------------------------------

def test_topological_order(diamond_graph):
    assert diamond_graph.topological_order() == ["start", "f1", "f2", "f3"]


def test_topological_order_predecessors_first():
    graph = FunctionGraph.from_dependencies({
        "z_last": ["m_mid"],
        "m_mid": ["a_first", "b_second"],
        "a_first": [],
        "b_second": [],
    })
    order = graph.topological_order()
    for source, target in graph.edges:
        assert order.index(source) < order.index(target)


def test_topological_order_ties_alphabetical():
    graph = FunctionGraph(nodes=["c", "a", "b"])
    assert graph.topological_order() == ["a", "b", "c"]


def test_predecessors_and_successors(diamond_graph):
    assert diamond_graph.predecessors("f3") == ["f1", "f2"]
    assert diamond_graph.successors("start") == ["f1", "f2"]
    assert diamond_graph.predecessors("start") == []


def test_unknown_function_query_raises(diamond_graph):
    with pytest.raises(GraphError, match="Unknown function"):
        diamond_graph.predecessors("nope")


# ---------------------------------------------------------------------------
# File layouts
# ---------------------------------------------------------------------------

def test_from_dict_json_graph_layout():
    data = {
        "graph": {
            "nodes": [{"id": "pipeline_start"}, {"id": "align"}, {"id": "pipeline_end"}],
            "edges": [
                {"relation": "dependsOn", "source": "pipeline_start", "target": "align"},
                {"relation": "dependsOn", "source": "align", "target": "pipeline_end"},
            ],
        }
    }
    graph = FunctionGraph.from_dict(data)
    assert graph.topological_order() == ["pipeline_start", "align", "pipeline_end"]


def test_from_dict_edge_to_unknown_node_raises():
    data = {"graph": {"nodes": [{"id": "a"}], "edges": [{"source": "a", "target": "b"}]}}
    with pytest.raises(GraphError, match="unknown function 'b'"):
        FunctionGraph.from_dict(data)


def test_from_dict_functions_layout():
    graph = FunctionGraph.from_dict({"functions": {"a": [], "b": ["a"]}})
    assert graph.edges == [("a", "b")]


def test_from_dict_unrecognised_layout_raises():
    with pytest.raises(GraphError):
        FunctionGraph.from_dict({"something": 1})


def test_from_file_yaml(tmp_path):
    path = tmp_path / "graph.yaml"
    path.write_text("functions:\n  a: []\n  b: [a]\n")
    assert FunctionGraph.from_file(path).topological_order() == ["a", "b"]


def test_from_file_json(tmp_path):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps({
        "graph": {"nodes": [{"id": "a"}, {"id": "b"}], "edges": [{"source": "a", "target": "b"}]}
    }))
    assert FunctionGraph.from_file(path).predecessors("b") == ["a"]


def test_from_file_invalid_yaml(tmp_path):
    path = tmp_path / "graph.yaml"
    path.write_text("functions: [unclosed\n")
    with pytest.raises(ConfigError):
        FunctionGraph.from_file(path)


def test_from_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        FunctionGraph.from_file(tmp_path / "nope.yaml")


# ---------------------------------------------------------------------------
# contract
# ---------------------------------------------------------------------------

def test_contract_bridges_removed_function():
    graph = FunctionGraph(edges=[("a", "b"), ("b", "c")])
    contracted = graph.contract(["b"])
    assert contracted.nodes == ["a", "c"]
    assert contracted.edges == [("a", "c")]


def test_contract_bridges_chain_of_removed_functions(diamond_graph):
    contracted = diamond_graph.contract(["f1", "f2"])
    assert contracted.edges == [("start", "f3")]


def test_contract_leaves_original_untouched(diamond_graph):
    diamond_graph.contract(["f1"])
    assert "f1" in diamond_graph


def test_contract_nothing_is_a_copy(diamond_graph):
    contracted = diamond_graph.contract([])
    assert set(contracted.edges) == set(diamond_graph.edges)
