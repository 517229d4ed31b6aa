from __future__ import annotations

import fnmatch
import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from podstyles.core.errors import InvalidIdentifierError, TemplateParseError
from podstyles.core.models import ImportDirective, SourceLocation
from podstyles.core.naming import normalize_module_path

from .ast import (
    MustacheStatement,
    PathExpression,
    StringLiteral,
    Template,
    builders,
    replace_node,
    walk,
)

_log = logging.getLogger("podstyles.templates")

ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9.\-]+$")
IMPORT_KEYWORD = "import"
IMPORT_PLACEHOLDER = "imported styles"

# {{import <alias> from '<path>'}} ; keyword is case-insensitive
TEXT_IMPORT_RE = re.compile(
    r"\{\{~?\s*import\s+(?P<alias>.+?)\s+from\s+(?P<q>['\"])(?P<path>.*?)(?P=q)\s*~?\}\}",
    re.IGNORECASE | re.DOTALL,
)

# {{!-- --}}, {{! }} and <!-- -->; nothing inside them is scanned
TEXT_COMMENT_RE = re.compile(r"\{\{!--.*?--\}\}|\{\{!.*?\}\}|<!--.*?-->", re.DOTALL)


@dataclass
class ImportTable:
    """File-local alias table. Later directives with the same alias win."""

    template_path: str
    directives: List[ImportDirective] = field(default_factory=list)
    _aliases: Dict[str, str] = field(default_factory=dict, repr=False)
    # (offset in substituted text, source minus substituted length) per text-mode directive
    _shifts: List[Tuple[int, int]] = field(default_factory=list, repr=False)

    def add(self, directive: ImportDirective) -> None:
        previous = self._aliases.get(directive.local_name)
        if previous is not None:
            _log.debug(
                "templates.import duplicate alias=%s template=%s previous=%s now=%s",
                directive.local_name,
                self.template_path,
                previous,
                directive.import_path,
            )
        self.directives.append(directive)
        self._aliases[directive.local_name] = directive.import_path

    def lookup(self, local_name: str) -> Optional[str]:
        return self._aliases.get(local_name)

    @property
    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)

    def source_offset(self, offset: int) -> int:
        """Maps an offset in the text-mode output back onto the template source."""
        shift = 0
        for start, delta in self._shifts:
            if offset < start:
                break
            shift = delta
        return offset + shift

    def __len__(self) -> int:
        return len(self._aliases)


def code_matches(pattern: re.Pattern, source: str) -> Iterator[re.Match]:
    """Like ``pattern.finditer(source)``, but never inside a template comment."""
    pos = 0
    for comment in TEXT_COMMENT_RE.finditer(source):
        yield from pattern.finditer(source, pos, comment.start())
        pos = comment.end()
    yield from pattern.finditer(source, pos)


def sub_code(pattern: re.Pattern, repl: Callable[[re.Match], str], source: str) -> str:
    out: List[str] = []
    pos = 0
    for m in code_matches(pattern, source):
        out.append(source[pos:m.start()])
        out.append(repl(m))
        pos = m.end()
    out.append(source[pos:])
    return "".join(out)


def resolve_import_path(raw_path: str, template_module: str) -> str:
    """
    Rooted paths (``/my-app/components/x.scoped.scss``) are taken as-is minus the
    leading slash; relative ones are resolved against the template's directory.
    Both come out relative to the styles root, like every module path.
    """
    raw = (raw_path or "").strip().replace("\\", "/")
    if not raw:
        raise TemplateParseError(path=template_module, reason="empty style import path")
    if raw.startswith("/"):
        return normalize_module_path(raw)

    base = posixpath.dirname(normalize_module_path(template_module))
    joined = posixpath.normpath(posixpath.join(base, raw)) if base else posixpath.normpath(raw)
    if joined == ".." or joined.startswith("../"):
        raise TemplateParseError(
            path=template_module,
            reason=f"style import {raw_path!r} resolves outside the styles root",
        )
    return normalize_module_path(joined)


class TemplateImportResolver:
    """
    Finds style import directives in one template, validates aliases,
    resolves paths and neutralizes the directives in place.
    """

    def __init__(self, *, alias_validation_exempt: Sequence[str] = ()):
        self.alias_validation_exempt = tuple(alias_validation_exempt or ())

    def validate_alias(self, alias: str, template_module: str) -> None:
        if ALIAS_PATTERN.match(alias or ""):
            return
        if any(fnmatch.fnmatch(template_module, pat) for pat in self.alias_validation_exempt):
            _log.warning(
                "templates.import alias=%r template=%s accepted via alias_validation_exempt",
                alias,
                template_module,
            )
            return
        raise InvalidIdentifierError(path=template_module, alias=alias)

    def resolve_ast(self, template: Template, template_module: str) -> ImportTable:
        table = ImportTable(template_path=template_module)

        found = [
            (node, parent)
            for node, parent in walk(template)
            if isinstance(node, MustacheStatement) and _is_import_statement(node)
        ]

        for node, parent in found:
            directive = self._directive_from_node(node, template, template_module)
            table.add(directive)
            replace_node(parent, node, builders.comment(IMPORT_PLACEHOLDER))

        return table

    def resolve_text(self, source: str, template_module: str) -> Tuple[str, ImportTable]:
        table = ImportTable(template_path=template_module)
        placeholder = f"<!--{IMPORT_PLACEHOLDER}-->"
        delta = 0

        def on_directive(m: re.Match) -> str:
            nonlocal delta
            alias = m.group("alias").strip()
            self.validate_alias(alias, template_module)
            table.add(
                ImportDirective(
                    local_name=alias,
                    import_path=resolve_import_path(m.group("path"), template_module),
                    raw_path=m.group("path"),
                    location=SourceLocation.from_offset(source, m.start()),
                )
            )
            delta += (m.end() - m.start()) - len(placeholder)
            table._shifts.append((m.end() - delta, delta))
            return placeholder

        text = sub_code(TEXT_IMPORT_RE, on_directive, source)
        return text, table

    def _directive_from_node(self, node: MustacheStatement, template: Template, template_module: str) -> ImportDirective:
        loc = SourceLocation.from_offset(template.source, node.span[0]) if node.span else None
        params = node.params

        def malformed() -> TemplateParseError:
            return TemplateParseError(
                path=template_module,
                reason="style import must read: import <name> from '<path>'",
                line=loc.line if loc else None,
                column=loc.column if loc else None,
            )

        from_at = next((k for k, p in enumerate(params) if _is_from_keyword(p)), None)
        if not from_at:
            raise malformed()

        # an unquoted alias may span several words: {{import My Name from '...'}}
        if from_at == 1 and isinstance(params[0], StringLiteral):
            alias = params[0].value
        else:
            alias = template.source[params[0].span[0]:params[from_at - 1].span[1]]
        self.validate_alias(alias, template_module)

        if from_at != len(params) - 2 or not isinstance(params[-1], StringLiteral):
            raise malformed()

        raw_path = params[-1].value
        return ImportDirective(
            local_name=alias,
            import_path=resolve_import_path(raw_path, template_module),
            raw_path=raw_path,
            location=loc,
        )


def _is_from_keyword(node) -> bool:
    return isinstance(node, PathExpression) and node.original.lower() == "from"


def _is_import_statement(node: MustacheStatement) -> bool:
    return (
        node.sigil == ""
        and isinstance(node.path, PathExpression)
        and node.path.original.lower() == IMPORT_KEYWORD
    )
