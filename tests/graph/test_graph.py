"""Tests for Edge, GraphBuilder and Graph."""
import json
from types import MappingProxyType

import pytest
from omegaconf import OmegaConf

from genflow.core.graph.graph import Edge, EdgeConnection, Graph, GraphBuilder, GraphStructureError
from genflow.core.graph.nodes import IterateNode, NodeRole, NoiseNode, RangeOfSizeNode, TextToLatentsNode


@pytest.fixture
def builder() -> GraphBuilder:
    b = GraphBuilder()
    b.add_node(RangeOfSizeNode(NodeRole.RANGE_OF_SIZE, start=3, size=2))
    b.add_node(IterateNode(NodeRole.ITERATE))
    b.add_node(NoiseNode(NodeRole.NOISE, width=64, height=64))
    b.add_node(TextToLatentsNode(NodeRole.TEXT_TO_LATENTS, steps=10))
    b.connect(NodeRole.RANGE_OF_SIZE, "collection", NodeRole.ITERATE, "collection")
    b.connect(NodeRole.ITERATE, "item", NodeRole.NOISE, "seed")
    b.connect(NodeRole.NOISE, "noise", NodeRole.TEXT_TO_LATENTS, "noise")
    return b


class TestEdge:
    def test_connect(self):
        e = Edge.connect("noise", "noise", "text_to_latents", "noise")
        assert e.source == EdgeConnection("noise", "noise")
        assert e.destination.node_id == "text_to_latents"
        assert repr(e) == "noise.noise -> text_to_latents.noise"

    def test_role_ids_become_strings(self):
        e = Edge.connect(NodeRole.RANDOM_INT, "a", NodeRole.NOISE, "seed")
        assert e.to_dict() == {
            "source": {"node_id": "rand_int", "field": "a"},
            "destination": {"node_id": "noise", "field": "seed"},
        }

    def test_empty_parts_raise(self):
        with pytest.raises(ValueError):
            Edge.connect("", "a", "noise", "seed")
        with pytest.raises(ValueError):
            Edge.connect("rand_int", " ", "noise", "seed")

    def test_from_dict(self):
        data = {
            "source": {"node_id": "iterate", "field": "item"},
            "destination": {"node_id": "noise", "field": "seed"},
        }
        assert Edge.from_dict(data).to_dict() == data


class TestGraphBuilder:
    def test_duplicate_node_raises(self, builder):
        with pytest.raises(GraphStructureError, match="already exists"):
            builder.add_node(NoiseNode(NodeRole.NOISE, seed=1))

    def test_edge_unknown_node_raises(self, builder):
        with pytest.raises(GraphStructureError, match="not found"):
            builder.connect(NodeRole.RANDOM_INT, "a", NodeRole.NOISE, "seed")
        with pytest.raises(GraphStructureError, match="not found"):
            builder.connect(NodeRole.NOISE, "noise", NodeRole.LATENTS_TO_IMAGE, "latents")

    def test_failed_add_leaves_builder_unchanged(self, builder):
        edges = builder.edges
        with pytest.raises(GraphStructureError):
            builder.connect(NodeRole.NOISE, "noise", "missing", "x")
        assert builder.edges == edges

    def test_views_are_read_only(self, builder):
        assert isinstance(builder.nodes, MappingProxyType)
        with pytest.raises(TypeError):
            builder.nodes["x"] = IterateNode("x")
        assert isinstance(builder.edges, tuple)

    def test_contains_and_len(self, builder):
        assert NodeRole.NOISE in builder
        assert "rand_int" not in builder
        assert len(builder) == 4

    def test_build(self, builder):
        graph = builder.build()
        assert list(graph.nodes) == ["range_of_size", "iterate", "noise", "text_to_latents"]
        assert len(graph.edges) == 3

    def test_build_is_a_snapshot(self, builder):
        graph = builder.build()
        builder.add_node(IterateNode("extra"))
        assert "extra" not in graph
        assert len(graph) == 4


class TestGraph:
    def test_validate_ok(self, builder):
        assert builder.build().validate() == []

    def test_validate_dangling_edge(self):
        graph = Graph({"noise": NoiseNode("noise")}, [Edge.connect("rand_int", "a", "noise", "seed")])
        errors = graph.validate()
        assert len(errors) == 1
        assert "non-existent source node 'rand_int'" in errors[0]
        with pytest.raises(GraphStructureError, match="validation failed"):
            graph.validate(strict=True)

    def test_validate_key_mismatch(self):
        graph = Graph({"noise": IterateNode("iterate")}, [])
        assert "has id 'iterate'" in graph.validate()[0]

    def test_cycle(self):
        graph = Graph(
            {"a": IterateNode("a"), "b": IterateNode("b")},
            [Edge.connect("a", "item", "b", "collection"), Edge.connect("b", "item", "a", "collection")],
        )
        with pytest.raises(GraphStructureError, match="cycle"):
            graph.topological_sort()
        assert graph.validate()

    def test_topological_sort(self, builder):
        order = builder.build().topological_sort()
        assert order.index("range_of_size") < order.index("iterate") < order.index("noise") < order.index("text_to_latents")

    def test_queries(self, builder):
        graph = builder.build()
        assert [repr(e) for e in graph.get_edges_from("iterate")] == ["iterate.item -> noise.seed"]
        assert [repr(e) for e in graph.get_edges_to("noise")] == ["iterate.item -> noise.seed"]
        assert graph.get_node_dependencies("text_to_latents") == {"noise", "iterate", "range_of_size"}

    def test_immutable(self, builder):
        graph = builder.build()
        with pytest.raises(TypeError):
            graph.nodes["x"] = IterateNode("x")
        with pytest.raises(AttributeError):
            graph.edges.append(Edge.connect("noise", "noise", "iterate", "collection"))

    def test_getitem_and_contains(self, builder):
        graph = builder.build()
        assert graph[NodeRole.NOISE].width == 64
        assert "iterate" in graph
        assert NodeRole.RANDOM_INT not in graph

    def test_equality(self, builder):
        assert builder.build() == builder.build()
        other = GraphBuilder().add_node(IterateNode("iterate")).build()
        assert builder.build() != other


class TestSerialization:
    def test_to_dict_wire_form(self, builder):
        data = builder.build().to_dict()
        assert data["nodes"]["range_of_size"] == {"id": "range_of_size", "type": "range_of_size", "start": 3, "size": 2}
        assert data["nodes"]["noise"] == {"id": "noise", "type": "noise", "width": 64, "height": 64}
        assert data["edges"][1] == {
            "source": {"node_id": "iterate", "field": "item"},
            "destination": {"node_id": "noise", "field": "seed"},
        }

    def test_to_json(self, builder):
        graph = builder.build()
        assert json.loads(graph.to_json()) == graph.to_dict()

    def test_to_yaml_file(self, builder, tmp_path):
        graph = builder.build()
        path = tmp_path / "out" / "graph.yaml"
        text = graph.to_yaml(path)
        assert path.exists()
        assert "range_of_size" in text
        assert OmegaConf.to_container(OmegaConf.load(path)) == graph.to_dict()

    def test_from_dict(self, builder):
        graph = builder.build()
        assert Graph.from_dict(graph.to_dict()) == graph

    def test_from_dict_rejects_dangling_edge(self):
        data = {
            "nodes": {"noise": {"id": "noise", "type": "noise"}},
            "edges": [{"source": {"node_id": "iterate", "field": "item"},
                       "destination": {"node_id": "noise", "field": "seed"}}],
        }
        with pytest.raises(GraphStructureError):
            Graph.from_dict(data)

    def test_from_dict_rejects_key_mismatch(self):
        with pytest.raises(GraphStructureError, match="has id"):
            Graph.from_dict({"nodes": {"noise": {"id": "other", "type": "noise"}}, "edges": []})

    def test_visualize(self, builder):
        text = builder.build().visualize()
        assert text.startswith("graph LR")
        assert 'iterate -->|"item -> seed"| noise' in text
