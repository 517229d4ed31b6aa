"""Template AST provider: parses mustache-flavoured HTML into ``podstyles.core.templates.ast`` nodes."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple, Union

from podstyles.core.errors import TemplateParseError
from podstyles.core.models import SourceLocation

from .ast import (
    AttrNode,
    CommentStatement,
    ConcatStatement,
    ElementNode,
    Expression,
    Hash,
    HashPair,
    Literal,
    MustacheCommentStatement,
    MustacheStatement,
    Node,
    PathExpression,
    StringLiteral,
    SubExpression,
    Template,
    TextNode,
)

VOID_ELEMENTS = frozenset(
    {
        "area", "base", "br", "col", "embed", "hr", "img", "input",
        "link", "meta", "param", "source", "track", "wbr",
    }
)
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

_TAG_NAME_RE = re.compile(r"[^\s/>]+")
_ATTR_NAME_RE = re.compile(r"[^\s=/>]+")
_WORD_RE = re.compile(r"[^\s()=|'\"]+")
_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?$")
_LITERAL_WORDS = frozenset({"true", "false", "null", "undefined"})


def parse_template(source: str, path: str = "<template>") -> Template:
    return _TemplateParser(source, path).parse()


class _TemplateParser:
    def __init__(self, source: str, path: str):
        self.src = source
        self.path = path
        self.n = len(source)

    def _error(self, offset: int, reason: str) -> TemplateParseError:
        loc = SourceLocation.from_offset(self.src, min(offset, self.n))
        return TemplateParseError(path=self.path, reason=reason, line=loc.line, column=loc.column)

    # ------------------------------------------------------------------
    # content
    # ------------------------------------------------------------------

    def parse(self) -> Template:
        template = Template(source=self.src, path=self.path)
        stack: List[Tuple[List[Node], Optional[ElementNode]]] = [(template.body, None)]
        src = self.src
        text_start = 0
        i = 0

        def flush(upto: int) -> None:
            if upto > text_start:
                stack[-1][0].append(TextNode(chars=src[text_start:upto], span=(text_start, upto)))

        while i < self.n:
            if src.startswith("{{", i):
                flush(i)
                node, i = self._mustache(i)
                stack[-1][0].append(node)
                text_start = i
            elif src.startswith("<!--", i):
                flush(i)
                end = src.find("-->", i + 4)
                if end == -1:
                    raise self._error(i, "unterminated HTML comment")
                stack[-1][0].append(CommentStatement(value=src[i + 4:end], span=(i, end + 3)))
                i = end + 3
                text_start = i
            elif src.startswith("</", i) and i + 2 < self.n and _is_tag_start(src[i + 2]):
                flush(i)
                i = self._close_tag(stack, i)
                text_start = i
            elif src[i] == "<" and i + 1 < self.n and _is_tag_start(src[i + 1]):
                flush(i)
                element, i = self._start_tag(i)
                stack[-1][0].append(element)
                if element.self_closing or element.tag.lower() in VOID_ELEMENTS:
                    element.span = (element.span[0], i)
                elif element.tag.lower() in RAW_TEXT_ELEMENTS:
                    i = self._raw_text(element, i)
                else:
                    stack.append((element.children, element))
                text_start = i
            else:
                i += 1

        flush(self.n)

        if len(stack) > 1:
            open_el = stack[-1][1]
            raise self._error(open_el.span[0] if open_el else self.n, f"unclosed element <{open_el.tag if open_el else '?'}>")
        return template

    def _close_tag(self, stack, i: int) -> int:
        m = _TAG_NAME_RE.match(self.src, i + 2)
        name = m.group(0) if m else ""
        end = self.src.find(">", i)
        if end == -1:
            raise self._error(i, f"unterminated closing tag </{name}")
        if len(stack) == 1:
            raise self._error(i, f"closing tag </{name}> without an open element")
        _, element = stack[-1]
        if element.tag != name:
            raise self._error(i, f"closing tag </{name}> does not match <{element.tag}>")
        stack.pop()
        element.span = (element.span[0], end + 1)
        return end + 1

    def _raw_text(self, element: ElementNode, i: int) -> int:
        close = f"</{element.tag}"
        end = self.src.lower().find(close.lower(), i)
        if end == -1:
            raise self._error(element.span[0], f"unclosed element <{element.tag}>")
        if end > i:
            element.children.append(TextNode(chars=self.src[i:end], span=(i, end)))
        gt = self.src.find(">", end)
        if gt == -1:
            raise self._error(end, f"unterminated closing tag </{element.tag}")
        element.span = (element.span[0], gt + 1)
        return gt + 1

    # ------------------------------------------------------------------
    # elements and attributes
    # ------------------------------------------------------------------

    def _start_tag(self, i: int) -> Tuple[ElementNode, int]:
        src = self.src
        m = _TAG_NAME_RE.match(src, i + 1)
        element = ElementNode(tag=m.group(0), span=(i, -1))
        j = m.end()

        while True:
            while j < self.n and src[j].isspace():
                j += 1
            if j >= self.n:
                raise self._error(i, f"unterminated start tag <{element.tag}")
            if src.startswith("/>", j):
                element.self_closing = True
                return element, j + 2
            if src[j] == ">":
                return element, j + 1
            if src.startswith("{{", j):
                modifier, j = self._mustache(j)
                if isinstance(modifier, MustacheStatement):
                    element.modifiers.append(modifier)
                continue
            attr, j = self._attribute(j)
            element.attributes.append(attr)

    def _attribute(self, j: int) -> Tuple[AttrNode, int]:
        src = self.src
        m = _ATTR_NAME_RE.match(src, j)
        if not m:
            raise self._error(j, "invalid attribute")
        attr = AttrNode(name=m.group(0))
        start = j
        j = m.end()

        k = j
        while k < self.n and src[k].isspace():
            k += 1
        if k >= self.n or src[k] != "=":
            attr.span = (start, j)
            return attr, j

        k += 1
        while k < self.n and src[k].isspace():
            k += 1
        if k >= self.n:
            raise self._error(start, f"missing value for attribute {attr.name}")

        c = src[k]
        if c in ("'", '"'):
            attr.quote = c
            attr.value, k = self._quoted_value(k, c)
        elif src.startswith("{{", k):
            value, k = self._mustache(k)
            if not isinstance(value, MustacheStatement):
                raise self._error(k, f"comment is not a valid value for attribute {attr.name}")
            attr.value = value
        else:
            v_start = k
            while k < self.n and not src[k].isspace() and src[k] != ">" and not src.startswith("/>", k):
                k += 1
            attr.value = TextNode(chars=src[v_start:k], span=(v_start, k))

        attr.span = (start, k)
        return attr, k

    def _quoted_value(self, k: int, quote: str) -> Tuple[Union[TextNode, ConcatStatement], int]:
        src = self.src
        inner_start = k + 1
        parts: List[Union[TextNode, MustacheStatement]] = []
        text_start = inner_start
        j = inner_start
        while True:
            if j >= self.n:
                raise self._error(k, "unterminated attribute value")
            if src.startswith("{{", j):
                if j > text_start:
                    parts.append(TextNode(chars=src[text_start:j], span=(text_start, j)))
                node, j = self._mustache(j)
                if isinstance(node, MustacheStatement):
                    parts.append(node)
                text_start = j
                continue
            if src[j] == quote:
                break
            j += 1
        if j > text_start:
            parts.append(TextNode(chars=src[text_start:j], span=(text_start, j)))

        span = (inner_start, j)
        if not any(isinstance(p, MustacheStatement) for p in parts):
            return TextNode(chars=src[inner_start:j], span=span), j + 1
        return ConcatStatement(parts=parts, span=span), j + 1

    # ------------------------------------------------------------------
    # mustaches
    # ------------------------------------------------------------------

    def _mustache(self, i: int) -> Tuple[Union[MustacheStatement, MustacheCommentStatement], int]:
        src = self.src
        if src.startswith("{{!--", i):
            end = src.find("--}}", i + 5)
            if end == -1:
                raise self._error(i, "unterminated mustache comment")
            return MustacheCommentStatement(value=src[i + 2:end + 2], span=(i, end + 4)), end + 4
        if src.startswith("{{!", i):
            end = src.find("}}", i + 3)
            if end == -1:
                raise self._error(i, "unterminated mustache comment")
            return MustacheCommentStatement(value=src[i + 2:end], span=(i, end + 2)), end + 2

        trusting = src.startswith("{{{", i)
        open_len = 3 if trusting else 2
        closer = "}}}" if trusting else "}}"
        inner_start = i + open_len
        inner_end = self._find_mustache_close(inner_start, closer, i)
        end = inner_end + len(closer)

        lo, hi = inner_start, inner_end
        if lo < hi and src[lo] == "~":
            lo += 1
        if hi > lo and src[hi - 1] == "~":
            hi -= 1
        while lo < hi and src[lo].isspace():
            lo += 1

        sigil = ""
        if lo < hi and src[lo] in "#/^>&":
            sigil = src[lo]
            lo += 1

        tokens = _tokenize(src, lo, hi, self)
        if not tokens:
            raise self._error(i, "empty mustache")
        reader = _TokenReader(tokens, self, i)
        path, params, hash_, block_params = reader.call_body(top_level=True)

        node = MustacheStatement(
            path=path,
            params=params,
            hash=hash_,
            sigil=sigil,
            trusting=trusting,
            block_params=block_params,
            span=(i, end),
        )
        return node, end

    def _find_mustache_close(self, j: int, closer: str, opened_at: int) -> int:
        src = self.src
        while j < self.n:
            c = src[j]
            if c in ("'", '"'):
                close = src.find(c, j + 1)
                if close == -1:
                    raise self._error(j, "unterminated string in mustache")
                j = close + 1
                continue
            if src.startswith(closer, j):
                return j
            j += 1
        raise self._error(opened_at, "unterminated mustache")


def _is_tag_start(c: str) -> bool:
    return c.isalpha() or c in "@:"


# --------------------------------------------------------------------------
# expression tokens
# --------------------------------------------------------------------------

# (kind, text, start, end); kinds: word, string, open, close, key, bparams
_Token = Tuple[str, str, int, int]


def _tokenize(src: str, lo: int, hi: int, parser: _TemplateParser) -> List[_Token]:
    tokens: List[_Token] = []
    j = lo
    while j < hi:
        c = src[j]
        if c.isspace():
            j += 1
            continue
        if c in ("'", '"'):
            close = src.find(c, j + 1)
            if close == -1 or close >= hi:
                raise parser._error(j, "unterminated string in mustache")
            tokens.append(("string", src[j + 1:close], j, close + 1))
            j = close + 1
            continue
        if c == "(":
            tokens.append(("open", c, j, j + 1))
            j += 1
            continue
        if c == ")":
            tokens.append(("close", c, j, j + 1))
            j += 1
            continue
        if c == "|":
            close = src.find("|", j + 1)
            if close == -1 or close >= hi:
                raise parser._error(j, "unterminated block params")
            tokens.append(("bparams", src[j:close + 1], j, close + 1))
            j = close + 1
            continue
        m = _WORD_RE.match(src, j, hi)
        if not m:
            raise parser._error(j, f"unexpected character {c!r} in mustache")
        word_end = m.end()
        if word_end < hi and src[word_end] == "=":
            tokens.append(("key", m.group(0), j, word_end + 1))
            j = word_end + 1
            continue
        tokens.append(("word", m.group(0), j, word_end))
        j = word_end
    return tokens


class _TokenReader:
    def __init__(self, tokens: List[_Token], parser: _TemplateParser, opened_at: int):
        self.tokens = tokens
        self.pos = 0
        self.parser = parser
        self.opened_at = opened_at

    def _peek(self) -> Optional[_Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _next(self) -> _Token:
        tok = self._peek()
        if tok is None:
            raise self.parser._error(self.opened_at, "unexpected end of mustache")
        self.pos += 1
        return tok

    def call_body(self, *, top_level: bool) -> Tuple[Expression, List[Expression], Optional[Hash], str]:
        path = self.expression()
        params: List[Expression] = []
        pairs: List[HashPair] = []
        block_params = ""

        while True:
            tok = self._peek()
            if tok is None:
                break
            kind, text, start, end = tok
            if kind == "close":
                if top_level:
                    raise self.parser._error(start, "unbalanced ')' in mustache")
                break
            if kind == "key":
                self.pos += 1
                value = self.expression()
                pairs.append(HashPair(key=text, value=value, span=(start, value.span[1])))
                continue
            if kind == "word" and text == "as" and self._lookahead_kind(1) == "bparams":
                self.pos += 1
                block_params = self._next()[1]
                continue
            if kind == "bparams":
                raise self.parser._error(start, "block params must follow 'as'")
            if pairs:
                raise self.parser._error(start, "positional parameter after hash argument")
            params.append(self.expression())

        hash_ = Hash(pairs=pairs, span=(pairs[0].span[0], pairs[-1].span[1])) if pairs else None
        return path, params, hash_, block_params

    def _lookahead_kind(self, k: int) -> Optional[str]:
        idx = self.pos + k
        return self.tokens[idx][0] if idx < len(self.tokens) else None

    def expression(self) -> Expression:
        kind, text, start, end = self._next()
        if kind == "string":
            return StringLiteral(value=text, quote=self.parser.src[start], span=(start, end))
        if kind == "open":
            path, params, hash_, _ = self.call_body(top_level=False)
            close = self._next()
            if close[0] != "close":
                raise self.parser._error(close[2], "expected ')'")
            return SubExpression(path=path, params=params, hash=hash_, span=(start, close[3]))
        if kind == "word":
            if text in _LITERAL_WORDS or _NUMBER_RE.match(text):
                return Literal(original=text, span=(start, end))
            return PathExpression(original=text, span=(start, end))
        raise self.parser._error(start, f"unexpected {text!r} in mustache")
