"""
Template node model (Handlebars/Glimmer dialect, as far as scoping needs it).

Every node parsed from source carries its ``span`` (start, end offsets).
Printing splices container nodes from the original source and renders leaf
nodes from their fields, so a tree that was not modified prints back to the
exact input. Nodes are swapped with :func:`replace_node`; a replacement is a
leaf that only needs its kind, its value and the span it takes over.

Block statements (``{{#if}}`` ... ``{{/if}}``) are kept flat: the opening,
``{{else}}`` and closing mustaches are ordinary ``MustacheStatement`` nodes
with a ``sigil``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

Span = Tuple[int, int]


# --------------------------------------------------------------------------
# leaves
# --------------------------------------------------------------------------

@dataclass
class TextNode:
    chars: str
    span: Optional[Span] = None

    def render(self) -> str:
        return self.chars


@dataclass
class CommentStatement:
    value: str
    span: Optional[Span] = None

    def render(self) -> str:
        return f"<!--{self.value}-->"


@dataclass
class MustacheCommentStatement:
    value: str
    span: Optional[Span] = None

    def render(self) -> str:
        return "{{" + self.value + "}}"


@dataclass
class PathExpression:
    original: str
    span: Optional[Span] = None

    def render(self) -> str:
        return self.original


@dataclass
class StringLiteral:
    value: str
    quote: str = '"'
    span: Optional[Span] = None

    def render(self) -> str:
        return f"{self.quote}{self.value}{self.quote}"


@dataclass
class Literal:
    # numbers, booleans, null / undefined
    original: str
    span: Optional[Span] = None

    def render(self) -> str:
        return self.original


# --------------------------------------------------------------------------
# containers
# --------------------------------------------------------------------------

@dataclass
class HashPair:
    key: str
    value: "Expression"
    span: Optional[Span] = None

    def child_nodes(self) -> List["Node"]:
        return [self.value]


@dataclass
class Hash:
    pairs: List[HashPair] = field(default_factory=list)
    span: Optional[Span] = None

    def child_nodes(self) -> List["Node"]:
        return list(self.pairs)


@dataclass
class SubExpression:
    path: "Expression"
    params: List["Expression"] = field(default_factory=list)
    hash: Optional[Hash] = None
    span: Optional[Span] = None

    def child_nodes(self) -> List["Node"]:
        kids: List[Node] = [self.path, *self.params]
        if self.hash is not None:
            kids.append(self.hash)
        return kids


@dataclass
class MustacheStatement:
    path: "Expression"
    params: List["Expression"] = field(default_factory=list)
    hash: Optional[Hash] = None
    sigil: str = ""          # "", "#", "/", "^", ">", "&"
    trusting: bool = False   # {{{ }}}
    block_params: str = ""
    span: Optional[Span] = None

    def child_nodes(self) -> List["Node"]:
        kids: List[Node] = [self.path, *self.params]
        if self.hash is not None:
            kids.append(self.hash)
        return kids


@dataclass
class ConcatStatement:
    parts: List[Union[TextNode, MustacheStatement]] = field(default_factory=list)
    span: Optional[Span] = None

    def child_nodes(self) -> List["Node"]:
        return list(self.parts)


@dataclass
class AttrNode:
    name: str
    value: Optional[Union[TextNode, MustacheStatement, ConcatStatement]] = None
    quote: str = ""
    span: Optional[Span] = None

    def child_nodes(self) -> List["Node"]:
        return [self.value] if self.value is not None else []


@dataclass
class ElementNode:
    tag: str
    attributes: List[AttrNode] = field(default_factory=list)
    modifiers: List[MustacheStatement] = field(default_factory=list)
    children: List["Node"] = field(default_factory=list)
    self_closing: bool = False
    span: Optional[Span] = None

    def attribute(self, name: str) -> Optional[AttrNode]:
        for a in self.attributes:
            if a.name == name:
                return a
        return None

    def child_nodes(self) -> List["Node"]:
        return [*self.attributes, *self.modifiers, *self.children]


@dataclass
class Template:
    source: str
    path: str = "<template>"
    body: List["Node"] = field(default_factory=list)

    @property
    def span(self) -> Span:
        return (0, len(self.source))

    def child_nodes(self) -> List["Node"]:
        return list(self.body)


Expression = Union[PathExpression, StringLiteral, Literal, SubExpression]

Node = Union[
    Template,
    ElementNode,
    AttrNode,
    ConcatStatement,
    MustacheStatement,
    SubExpression,
    Hash,
    HashPair,
    TextNode,
    CommentStatement,
    MustacheCommentStatement,
    PathExpression,
    StringLiteral,
    Literal,
]

_LIST_FIELDS = ("body", "children", "attributes", "modifiers", "params", "parts", "pairs")
_SINGLE_FIELDS = ("value", "path", "hash")


# --------------------------------------------------------------------------
# builders
# --------------------------------------------------------------------------

class builders:
    @staticmethod
    def text(chars: str) -> TextNode:
        return TextNode(chars=chars)

    @staticmethod
    def comment(value: str) -> CommentStatement:
        return CommentStatement(value=value)

    @staticmethod
    def string(value: str) -> StringLiteral:
        quote = "'" if '"' in value else '"'
        return StringLiteral(value=value, quote=quote)


# --------------------------------------------------------------------------
# traversal / mutation / printing
# --------------------------------------------------------------------------

def walk(node: Node, parent: Optional[Node] = None) -> Iterator[Tuple[Node, Optional[Node]]]:
    """Depth-first, document order. Collect before mutating."""
    yield node, parent
    kids = getattr(node, "child_nodes", None)
    if kids is None:
        return
    for child in kids():
        yield from walk(child, node)


def replace_node(parent: Node, old: Node, new: Node) -> Node:
    """Put ``new`` where ``old`` was under ``parent``; ``new`` takes over the span."""
    new.span = old.span
    for name in _LIST_FIELDS:
        items = getattr(parent, name, None)
        if not isinstance(items, list):
            continue
        for idx, item in enumerate(items):
            if item is old:
                items[idx] = new
                return new
    for name in _SINGLE_FIELDS:
        if getattr(parent, name, None) is old:
            setattr(parent, name, new)
            return new
    raise ValueError(f"{type(old).__name__} is not a child of {type(parent).__name__}")


def print_template(template: Template) -> str:
    return _print(template, template.source)


def _print(node: Node, source: str) -> str:
    kids_fn = getattr(node, "child_nodes", None)
    if kids_fn is None or node.span is None:
        return node.render()  # type: ignore[union-attr]

    start, end = node.span
    kids = sorted((k for k in kids_fn() if k.span is not None), key=lambda k: k.span[0])
    out: List[str] = []
    pos = start
    for k in kids:
        out.append(source[pos:k.span[0]])
        out.append(_print(k, source))
        pos = k.span[1]
    out.append(source[pos:end])
    return "".join(out)
