"""Tests for the core data model."""

from plate_mcp.models import Bounds, Dimension, Edge, GraphModel, Node, NodeType, Point


def test_node_type_keywords() -> None:
    assert NodeType.from_keyword("Observed") == NodeType.OBSERVED
    assert NodeType.from_keyword(" fixed ") == NodeType.FIXED
    assert NodeType.from_keyword("node") is None


def test_dimension_defaults() -> None:
    dim = Dimension("n")
    assert (dim.label, dim.description) == ("n", "n")
    assert Dimension("n", "N", "samples").to_dict() == {"id": "n", "label": "N", "description": "samples"}


def test_node_defaults_and_key() -> None:
    node = Node(id="x", name="x", dims=("k", "n"))
    assert node.dims == ("k", "n")
    assert Node(id="y", name="y", dims=("n", "k")).dims == ("k", "n")
    assert node.key == "x[k,n]"
    assert node.symbol == "x"
    assert node.description == "x"
    assert node.type == NodeType.LATENT
    d = node.to_dict()
    assert d["autoSymbol"] is True
    assert d["type"] == "latent"
    assert d["dims"] == ["k", "n"]


def test_graph_model_lookup() -> None:
    model = GraphModel(
        dims={"n": Dimension("n", "N")},
        nodes=[Node(id="mu", name="mu")],
        edges=[Edge("mu", "mu")],
    )
    assert model.node("mu").name == "mu"
    assert model.node("zz") is None
    assert model.dim_label("n") == "N"
    assert model.dim_label("q") == "q"
    assert model.to_dict()["edges"] == [{"source": "mu", "target": "mu"}]


class TestBounds:
    def test_edges_and_centre(self) -> None:
        b = Bounds(10, 20, 100, 50)
        assert (b.right, b.bottom) == (110, 70)
        assert (b.cx, b.cy) == (60, 45)

    def test_contains_and_union(self) -> None:
        a = Bounds(0, 0, 10, 10)
        assert a.contains_point(10, 10)
        assert not a.contains_point(11, 0)
        assert a.union(Bounds(20, -5, 5, 5)) == Bounds(0, -5, 25, 15)


def test_point_to_dict() -> None:
    assert Point(1, 2).to_dict() == {"x": 1, "y": 2}
