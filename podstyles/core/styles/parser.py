"""
SCSS-tolerant rule tree for scoped style modules.

Only enough structure is recovered to find rule selectors: rules, at-rules,
declarations and comments, each with its source span. Everything that is not
a selector is kept as raw text, so ``Stylesheet.render()`` reproduces the
input byte for byte unless a selector was changed.

Handled: ``/* */`` and ``//`` comments, quoted strings, ``#{...}``
interpolation, parentheses (``url(//cdn/x.png)`` is not a comment), nesting
at any depth, at-rules with and without blocks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from podstyles.core.errors import StyleParseError
from podstyles.core.models import SourceLocation


@dataclass
class Comment:
    start: int
    end: int
    text: str


@dataclass
class Declaration:
    start: int
    end: int
    text: str


@dataclass
class Rule:
    start: int
    end: int
    raw_selector: str
    selector_start: int
    selector_end: int
    nodes: List["StyleNode"] = field(default_factory=list)
    selector: str = ""

    def __post_init__(self) -> None:
        if not self.selector:
            self.selector = self.raw_selector

    @property
    def changed(self) -> bool:
        return self.selector != self.raw_selector


@dataclass
class AtRule:
    start: int
    end: int
    name: str
    params: str
    nodes: Optional[List["StyleNode"]] = None


StyleNode = Union[Comment, Declaration, Rule, AtRule]


@dataclass
class Stylesheet:
    source: str
    path: str
    nodes: List[StyleNode] = field(default_factory=list)

    def walk_rules(self, *, deep: bool = True) -> Iterator[Rule]:
        """Rules in document order; ``deep=False`` yields top-level rules only."""
        if not deep:
            for node in self.nodes:
                if isinstance(node, Rule):
                    yield node
            return
        yield from _walk_rules(self.nodes)

    def render(self) -> str:
        edits: List[Tuple[int, int, str]] = [
            (r.selector_start, r.selector_end, r.selector) for r in self.walk_rules(deep=True) if r.changed
        ]
        if not edits:
            return self.source
        out: List[str] = []
        pos = 0
        for start, end, text in sorted(edits):
            out.append(self.source[pos:start])
            out.append(text)
            pos = end
        out.append(self.source[pos:])
        return "".join(out)


def _walk_rules(nodes: List[StyleNode]) -> Iterator[Rule]:
    for node in nodes:
        if isinstance(node, Rule):
            yield node
            yield from _walk_rules(node.nodes)
        elif isinstance(node, AtRule) and node.nodes is not None:
            yield from _walk_rules(node.nodes)


def parse_stylesheet(source: str, path: str = "<style>") -> Stylesheet:
    return _StyleParser(source, path).parse()


class _StyleParser:
    def __init__(self, source: str, path: str):
        self.src = source
        self.path = path
        self.n = len(source)

    def _error(self, offset: int, reason: str) -> StyleParseError:
        loc = SourceLocation.from_offset(self.src, min(offset, self.n))
        return StyleParseError(path=self.path, reason=reason, line=loc.line, column=loc.column)

    def parse(self) -> Stylesheet:
        src = self.src
        sheet = Stylesheet(source=src, path=self.path)

        # each frame: (children list, owning node or None for the root)
        stack: List[Tuple[List[StyleNode], Optional[Union[Rule, AtRule]]]] = [(sheet.nodes, None)]
        stmt_start: Optional[int] = None
        paren = 0
        i = 0

        while i < self.n:
            ch = src[i]
            nxt = src[i + 1] if i + 1 < self.n else ""
            children = stack[-1][0]

            if stmt_start is None:
                if ch.isspace():
                    i += 1
                    continue
                if ch == "/" and nxt == "*":
                    end = self._block_comment_end(i)
                    children.append(Comment(start=i, end=end, text=src[i:end]))
                    i = end
                    continue
                if ch == "/" and nxt == "/":
                    end = src.find("\n", i)
                    end = self.n if end == -1 else end
                    children.append(Comment(start=i, end=end, text=src[i:end]))
                    i = end
                    continue
                if ch == "}":
                    i = self._close_block(stack, i)
                    continue
                if ch == ";":
                    i += 1
                    continue
                stmt_start = i
                paren = 0

            if ch in ("'", '"'):
                i = self._string_end(i)
                continue
            if ch == "/" and nxt == "*":
                i = self._block_comment_end(i)
                continue
            if ch == "/" and nxt == "/" and paren == 0:
                end = src.find("\n", i)
                i = self.n if end == -1 else end
                continue
            if ch == "#" and nxt == "{":
                i = self._interpolation_end(i)
                continue
            if ch == "(":
                paren += 1
            elif ch == ")":
                paren = max(0, paren - 1)
            elif ch == ";" and paren == 0:
                children.append(self._statement(stmt_start, i, i + 1))
                stmt_start = None
            elif ch == "{" and paren == 0:
                node = self._block_node(stmt_start, i)
                children.append(node)
                stack.append((node.nodes, node))  # type: ignore[arg-type]
                stmt_start = None
            elif ch == "}" and paren == 0:
                # last declaration of a block may omit its semicolon
                children.append(self._statement(stmt_start, i, i))
                stmt_start = None
                continue
            i += 1

        if stmt_start is not None:
            stack[-1][0].append(self._statement(stmt_start, self.n, self.n))

        if len(stack) > 1:
            owner = stack[-1][1]
            raise self._error(owner.start if owner else self.n, "unclosed block")

        return sheet

    # --- statements -------------------------------------------------

    def _statement(self, start: int, text_end: int, end: int) -> StyleNode:
        raw = self.src[start:text_end].rstrip()
        if raw.startswith("@"):
            name, params = _split_at_rule(raw)
            return AtRule(start=start, end=end, name=name, params=params, nodes=None)
        return Declaration(start=start, end=end, text=raw)

    def _block_node(self, start: int, brace: int) -> Union[Rule, AtRule]:
        prelude = self.src[start:brace]
        stripped = prelude.rstrip()
        if stripped.startswith("@"):
            name, params = _split_at_rule(stripped)
            return AtRule(start=start, end=-1, name=name, params=params, nodes=[])
        return Rule(
            start=start,
            end=-1,
            raw_selector=stripped,
            selector_start=start,
            selector_end=start + len(stripped),
            nodes=[],
        )

    def _close_block(self, stack, i: int) -> int:
        if len(stack) == 1:
            raise self._error(i, "unexpected '}'")
        _, owner = stack.pop()
        owner.end = i + 1
        return i + 1

    # --- lexical helpers ----------------------------------------------

    def _block_comment_end(self, i: int) -> int:
        end = self.src.find("*/", i + 2)
        if end == -1:
            raise self._error(i, "unterminated comment")
        return end + 2

    def _string_end(self, i: int) -> int:
        quote = self.src[i]
        j = i + 1
        while j < self.n:
            c = self.src[j]
            if c == "\\":
                j += 2
                continue
            if c == quote:
                return j + 1
            if c == "\n":
                break
            j += 1
        raise self._error(i, "unterminated string")

    def _interpolation_end(self, i: int) -> int:
        depth = 0
        j = i + 1
        while j < self.n:
            c = self.src[j]
            if c in ("'", '"'):
                j = self._string_end(j)
                continue
            if c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    return j + 1
            j += 1
        raise self._error(i, "unterminated interpolation")


def _split_at_rule(raw: str) -> Tuple[str, str]:
    body = raw[1:]
    k = 0
    while k < len(body) and (body[k].isalnum() or body[k] in "-_"):
        k += 1
    return body[:k], body[k:].strip()
