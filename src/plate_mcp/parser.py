"""
Grammars for the three kinds of DSL line.

    dim n(N) "samples"
    latent x[n] (x_n) ~ Normal(mu, 1) "observation"
    mu -> x <- sigma

Each parser works on a single, already-trimmed line and raises
:class:`ParseError` when the text does not match its grammar.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from plate_mcp.models import NODE_TYPE_KEYWORDS, Dimension, NodeType
from plate_mcp.tokenizer import split_top_level


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ParseError(Exception):
    """Raised when DSL text cannot be turned into a model.

    ``line`` is the 1-based source line when the failure is tied to one.
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.message = message
        self.line = line
        super().__init__(self.__str__())

    def with_line(self, line: int) -> 'ParseError':
        """Return a copy of this error attached to *line*."""
        return type(self)(self.message, line)

    def __str__(self) -> str:
        if self.line is not None:
            return f"Line {self.line}: {self.message}"
        return self.message


# ---------------------------------------------------------------------------
# Parsed shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeRef:
    """A node mention: ``x`` or ``x[i, j]`` (dims as written)."""
    name: str
    dims: tuple[str, ...] = ()


@dataclass(frozen=True)
class NodeDecl:
    """A typed node declaration. ``None`` fields were not written."""
    ref: NodeRef
    type: NodeType
    symbol: Optional[str] = None
    distribution: Optional[str] = None
    description: Optional[str] = None


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_IDENT = r"[A-Za-z_]\w*"
_REF_RE = re.compile(rf"^({_IDENT})(?:\[([^\]]+)\])?$")
_REF_PREFIX_RE = re.compile(rf"^{_IDENT}(?:\[[^\]]+\])?")
_DIM_RE = re.compile(rf"^dim\s+({_IDENT})\s*(?:\(([^)]*)\))?(?:\s*(.+))?$")
_SYMBOL_RE = re.compile(r"^\(([^)]*)\)")
_OPERATOR_RE = re.compile(r"(->|<-)")
_KEYWORD_RE = re.compile(rf"^({_IDENT})\s+(.*)$", re.DOTALL)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def strip_quotes(text: str) -> str:
    """Remove one pair of matching surrounding quotes."""
    t = text.strip()
    if len(t) >= 2 and t[0] == t[-1] and t[0] in "\"'":
        return t[1:-1]
    return t


def is_dim_line(line: str) -> bool:
    return re.match(r"^dim\s", line) is not None


def is_node_line(line: str) -> bool:
    m = _KEYWORD_RE.match(line)
    if not m or m.group(1).lower() not in NODE_TYPE_KEYWORDS:
        return False
    return not _OPERATOR_RE.match(m.group(2).strip())


def is_edge_line(line: str) -> bool:
    return _OPERATOR_RE.search(line) is not None


def leading_keyword(line: str) -> Optional[str]:
    """The first word of *line* when more text follows it, else None."""
    m = _KEYWORD_RE.match(line)
    return m.group(1) if m else None


# ---------------------------------------------------------------------------
# Grammars
# ---------------------------------------------------------------------------

def parse_node_ref(raw: str) -> NodeRef:
    """Parse ``name`` or ``name[dim, dim, ...]``."""
    m = _REF_RE.match(raw.strip())
    if not m:
        raise ParseError(f'Invalid node reference: "{raw.strip()}"')
    name, dims_raw = m.groups()
    dims = tuple(split_top_level(dims_raw, ",")) if dims_raw else ()
    if dims_raw and not dims:
        raise ParseError(f'Invalid node reference: "{raw.strip()}" has an empty dimension list')
    return NodeRef(name=name, dims=dims)


def parse_dim_decl(line: str) -> Dimension:
    """Parse ``dim <symbol> [(<label>)] [<description>]``."""
    m = _DIM_RE.match(line.strip())
    if not m:
        raise ParseError(f'Invalid dim declaration: "{line.strip()}"')
    symbol, label_raw, desc_raw = m.groups()
    label = (label_raw or "").strip()
    description = strip_quotes(desc_raw or "")
    return Dimension(id=symbol, label=label or symbol, description=description or symbol)


def parse_node_decl(line: str) -> NodeDecl:
    """Parse ``<type> <ref> [(<symbol>)] [~ <distribution>] [<description>]``.

    Distribution is everything after the first ``~``; what is left between
    the reference (or symbol) and the ``~`` is the description.
    """
    m = _KEYWORD_RE.match(line.strip())
    if not m:
        raise ParseError(f'Invalid node declaration: "{line.strip()}"')
    keyword, body = m.groups()
    node_type = NodeType.from_keyword(keyword)
    if node_type is None:
        choices = ", ".join(t.value for t in NodeType)
        raise ParseError(f'Unknown node type "{keyword}" (expected one of: {choices})')

    body = body.strip()
    ref_match = _REF_PREFIX_RE.match(body)
    if not ref_match:
        raise ParseError(f'Invalid node declaration: "{line.strip()}"')
    ref = parse_node_ref(ref_match.group(0))
    rest = body[ref_match.end():].strip()

    symbol: Optional[str] = None
    sym_match = _SYMBOL_RE.match(rest)
    if sym_match:
        symbol = sym_match.group(1).strip() or None
        rest = rest[sym_match.end():].strip()

    distribution: Optional[str] = None
    tilde = rest.find("~")
    if tilde >= 0:
        distribution = rest[tilde + 1:].strip() or None
        rest = rest[:tilde].strip()

    description = strip_quotes(rest) or None
    return NodeDecl(
        ref=ref,
        type=node_type,
        symbol=symbol,
        distribution=distribution,
        description=description,
    )


def parse_edge_chain(line: str) -> list[tuple[NodeRef, NodeRef]]:
    """Parse ``A -> B <- C ...`` into (source, target) pairs, left to right."""
    tokens = [t.strip() for t in _OPERATOR_RE.split(line.strip())]
    tokens = [t for t in tokens if t]
    if len(tokens) < 3 or len(tokens) % 2 == 0:
        raise ParseError(f'Incomplete edge chain: "{line.strip()}"')

    for i, tok in enumerate(tokens):
        is_op = tok in ("->", "<-")
        if is_op != (i % 2 == 1):
            raise ParseError(f'Malformed edge chain: "{line.strip()}"')

    pairs: list[tuple[NodeRef, NodeRef]] = []
    current = parse_node_ref(tokens[0])
    for i in range(1, len(tokens), 2):
        op = tokens[i]
        nxt = parse_node_ref(tokens[i + 1])
        if op == "->":
            pairs.append((current, nxt))
        else:
            pairs.append((nxt, current))
        current = nxt
    return pairs
