"""Tests for the DSL line grammars."""

import pytest

from plate_mcp.models import Dimension, NodeType
from plate_mcp.parser import (
    NodeRef,
    ParseError,
    is_dim_line,
    is_edge_line,
    is_node_line,
    parse_dim_decl,
    parse_edge_chain,
    parse_node_decl,
    parse_node_ref,
    strip_quotes,
)


class TestNodeRef:
    def test_bare(self) -> None:
        assert parse_node_ref("mu") == NodeRef("mu", ())

    def test_with_dims(self) -> None:
        assert parse_node_ref("x[n, k]") == NodeRef("x", ("n", "k"))

    def test_invalid(self) -> None:
        with pytest.raises(ParseError):
            parse_node_ref("1x")
        with pytest.raises(ParseError):
            parse_node_ref("x[]")
        with pytest.raises(ParseError):
            parse_node_ref("x[n")

    def test_empty_dim_list(self) -> None:
        with pytest.raises(ParseError, match="empty dimension list"):
            parse_node_ref("x[ , ]")


class TestDimDecl:
    def test_full(self) -> None:
        assert parse_dim_decl('dim n(N) "samples"') == Dimension("n", "N", "samples")

    def test_defaults(self) -> None:
        dim = parse_dim_decl("dim k")
        assert dim.label == "k"
        assert dim.description == "k"

    def test_label_with_space(self) -> None:
        dim = parse_dim_decl("dim i (k)")
        assert dim.label == "k"
        assert dim.description == "i"

    def test_unquoted_description(self) -> None:
        assert parse_dim_decl("dim g (G) groups").description == "groups"

    def test_invalid(self) -> None:
        with pytest.raises(ParseError):
            parse_dim_decl("dim 3")


class TestNodeDecl:
    def test_description_and_distribution(self) -> None:
        decl = parse_node_decl('latent mu "mean" ~ Normal(0,1)')
        assert decl.ref == NodeRef("mu", ())
        assert decl.type == NodeType.LATENT
        assert decl.symbol is None
        assert decl.distribution == "Normal(0,1)"
        assert decl.description == "mean"

    def test_symbol(self) -> None:
        decl = parse_node_decl("observed x[n, k] (x_{nk}) ~ Normal(mu, 1)")
        assert decl.ref.dims == ("n", "k")
        assert decl.type == NodeType.OBSERVED
        assert decl.symbol == "x_{nk}"
        assert decl.distribution == "Normal(mu, 1)"
        assert decl.description is None

    def test_distribution_is_after_first_tilde(self) -> None:
        decl = parse_node_decl("latent z ~ Mix(a ~ b)")
        assert decl.distribution == "Mix(a ~ b)"

    def test_keyword_case_insensitive(self) -> None:
        assert parse_node_decl("Deterministic eta").type == NodeType.DETERMINISTIC

    def test_fields_not_written_are_none(self) -> None:
        decl = parse_node_decl("fixed alpha")
        assert decl.type == NodeType.FIXED
        assert (decl.symbol, decl.distribution, decl.description) == (None, None, None)

    def test_unknown_type(self) -> None:
        with pytest.raises(ParseError, match='Unknown node type "node"'):
            parse_node_decl("node X")


class TestEdgeChain:
    def test_forward_chain(self) -> None:
        pairs = parse_edge_chain("a -> b -> c")
        assert [(s.name, t.name) for s, t in pairs] == [("a", "b"), ("b", "c")]

    def test_mixed_directions(self) -> None:
        pairs = parse_edge_chain("a -> b <- c")
        assert [(s.name, t.name) for s, t in pairs] == [("a", "b"), ("c", "b")]

    def test_dims_in_chain(self) -> None:
        (src, tgt), = parse_edge_chain("mu[k] -> x[n, k]")
        assert src == NodeRef("mu", ("k",))
        assert tgt == NodeRef("x", ("n", "k"))

    def test_incomplete(self) -> None:
        with pytest.raises(ParseError):
            parse_edge_chain("a ->")
        with pytest.raises(ParseError):
            parse_edge_chain("-> b")

    def test_bad_reference(self) -> None:
        with pytest.raises(ParseError):
            parse_edge_chain("a -> b c -> d")


def test_line_classification() -> None:
    assert is_dim_line("dim n")
    assert not is_dim_line("dimension -> x")
    assert is_node_line("latent x")
    assert not is_node_line("latent -> x")
    assert is_edge_line("latent -> x")
    assert not is_edge_line("latent x")


def test_strip_quotes() -> None:
    assert strip_quotes('"a b"') == "a b"
    assert strip_quotes("'a'") == "a"
    assert strip_quotes("\"a'") == "\"a'"


def test_parse_error_line() -> None:
    err = ParseError("boom")
    assert str(err) == "boom"
    located = err.with_line(3)
    assert located.line == 3
    assert str(located) == "Line 3: boom"
