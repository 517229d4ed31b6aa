from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Tuple

from podstyles.core.ledger import UsageLedger
from podstyles.core.models import ClassUsage, SourceLocation
from podstyles.core.observability.metrics import inc_classes_used

from .ast import (
    ElementNode,
    HashPair,
    MustacheStatement,
    Node,
    PathExpression,
    SubExpression,
    Template,
    builders,
    replace_node,
    walk,
)
from .imports import ImportTable, sub_code

_log = logging.getLogger("podstyles.templates")

# {{ ... }} and {{{ ... }}}; comments are stepped over by sub_code
TEXT_MUSTACHE_RE = re.compile(r"\{\{(?P<t>\{)?(?!!)(?P<inner>.*?)(?(t)\}\}\}|\}\})", re.DOTALL)

_TEXT_TOKEN_RE = re.compile(
    r"(?P<str>\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*')"
    r"|(?P<open>\()"
    r"|(?<![\w.@$\-])(?P<word>[\w.@$\-]+)(?![\w.\-])"
)

Reference = Tuple[str, str, str]  # (local name, member name, import path)


def split_reference(expr: str, imports: ImportTable) -> Optional[Reference]:
    """``s.primary`` -> (``s``, ``primary``, resolved import path) when ``s`` is an imported alias."""
    if "." not in expr:
        return None
    root, member = expr.rsplit(".", 1)
    if not root or not member:
        return None
    import_path = imports.lookup(root)
    if import_path is None:
        return None
    return root, member, import_path


class ClassUsageRewriter:
    """
    Replaces ``alias.member`` references with the member's scoped class name.

    A mustache that is nothing but the reference becomes static text; a
    reference used as an argument inside a larger expression becomes a string
    literal. References whose root is not an imported alias are left alone.
    """

    def __init__(self, generator: Callable[[str, str], str], ledger: Optional[UsageLedger] = None):
        self.generator = generator
        self.ledger = ledger

    def rewrite_ast(self, template: Template, imports: ImportTable, template_module: str) -> List[ClassUsage]:
        usages: List[ClassUsage] = []
        if not len(imports):
            return usages

        for node, parent in list(walk(template)):
            if parent is None:
                continue

            if isinstance(node, MustacheStatement):
                if not _is_plain_reference(node) or _is_modifier(node, parent):
                    continue
                ref = split_reference(node.path.original, imports)  # type: ignore[union-attr]
                if ref is None:
                    continue
                scoped = self._scoped(ref)
                replace_node(parent, node, builders.text(scoped))
                usages.append(self._usage(ref, template_module, _locate(template.source, node.span)))

            elif isinstance(node, PathExpression) and _is_argument(node, parent):
                ref = split_reference(node.original, imports)
                if ref is None:
                    continue
                scoped = self._scoped(ref)
                replace_node(parent, node, builders.string(scoped))
                usages.append(self._usage(ref, template_module, _locate(template.source, node.span)))

        self._record(usages, template_module)
        return usages

    def rewrite_text(
        self,
        source: str,
        imports: ImportTable,
        template_module: str,
        original_source: Optional[str] = None,
    ) -> Tuple[str, List[ClassUsage]]:
        """
        ``original_source`` is the template before ``resolve_text`` replaced its
        directives; when given, usage locations point into it.
        """
        usages: List[ClassUsage] = []
        if not len(imports):
            return source, usages

        def locate(start: int) -> SourceLocation:
            if original_source is None:
                return SourceLocation.from_offset(source, start)
            return SourceLocation.from_offset(original_source, imports.source_offset(start))

        def on_mustache(m: re.Match) -> str:
            inner = m.group("inner")
            body = inner.strip().strip("~").strip()

            ref = split_reference(body, imports) if _is_single_word(body) else None
            if ref is not None:
                usages.append(self._usage(ref, template_module, locate(m.start())))
                return self._scoped(ref)

            rewritten = self._rewrite_expression(inner, imports, template_module, locate, m.start("inner"), usages)
            if rewritten == inner:
                return m.group(0)
            return m.group(0)[: m.start("inner") - m.start()] + rewritten + m.group(0)[m.end("inner") - m.start():]

        text = sub_code(TEXT_MUSTACHE_RE, on_mustache, source)
        self._record(usages, template_module)
        return text, usages

    # --- internals ---

    def _rewrite_expression(
        self,
        inner: str,
        imports: ImportTable,
        template_module: str,
        locate: Callable[[int], SourceLocation],
        base: int,
        usages: List[ClassUsage],
    ) -> str:
        out: List[str] = []
        pos = 0
        expect_callee = True
        for tok in _TEXT_TOKEN_RE.finditer(inner):
            if tok.group("open"):
                expect_callee = True
                continue
            word = tok.group("word")
            if word is None:
                expect_callee = False
                continue
            if expect_callee:
                expect_callee = False
                continue
            ref = split_reference(word, imports)
            if ref is None:
                continue
            out.append(inner[pos:tok.start()])
            out.append(builders.string(self._scoped(ref)).render())
            pos = tok.end()
            usages.append(self._usage(ref, template_module, locate(base + tok.start())))
        out.append(inner[pos:])
        return "".join(out)

    def _scoped(self, ref: Reference) -> str:
        _, member, import_path = ref
        return self.generator(member, import_path)

    def _usage(self, ref: Reference, template_module: str, location: Optional[SourceLocation]) -> ClassUsage:
        local_name, member, import_path = ref
        return ClassUsage(
            local_name=local_name,
            member_name=member,
            import_path=import_path,
            template_path=template_module,
            location=location,
        )

    def _record(self, usages: List[ClassUsage], template_module: str) -> None:
        if self.ledger is not None:
            for u in usages:
                self.ledger.register_used(u)
        inc_classes_used(len(usages))
        if usages:
            _log.debug("templates.usages template=%s rewritten=%s", template_module, len(usages))


def _locate(source: str, span) -> Optional[SourceLocation]:
    return SourceLocation.from_offset(source, span[0]) if span else None


def _is_single_word(body: str) -> bool:
    return bool(body) and re.fullmatch(r"[\w.@$\-]+", body) is not None


def _is_plain_reference(node: MustacheStatement) -> bool:
    return (
        node.sigil == ""
        and not node.params
        and node.hash is None
        and isinstance(node.path, PathExpression)
    )


def _is_modifier(node: MustacheStatement, parent: Node) -> bool:
    return isinstance(parent, ElementNode) and any(m is node for m in parent.modifiers)


def _is_argument(node: PathExpression, parent: Node) -> bool:
    if isinstance(parent, HashPair):
        return parent.value is node
    if isinstance(parent, (MustacheStatement, SubExpression)):
        return any(p is node for p in parent.params)
    return False
