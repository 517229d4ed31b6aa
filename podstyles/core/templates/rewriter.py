from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from podstyles.core.ledger import UsageLedger
from podstyles.core.models import ClassUsage, ImportDirective

from .ast import print_template
from .imports import TemplateImportResolver
from .parser import parse_template
from .usages import ClassUsageRewriter

_log = logging.getLogger("podstyles.templates")


class TemplateMode(str, Enum):
    AST = "ast"
    TEXT = "text"


@dataclass
class TemplateRewriteResult:
    template_path: str
    text: str
    output_path: str = ""
    imports: List[ImportDirective] = field(default_factory=list)
    usages: List[ClassUsage] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "template_path": self.template_path,
            "output_path": self.output_path,
            "text": self.text,
            "imports": [d.to_dict() for d in self.imports],
            "usages": [u.to_dict() for u in self.usages],
        }


class TemplateRewriter:
    """
    Two-phase, single-file pass: every import directive of the template is
    resolved before any class usage is rewritten.
    """

    def __init__(
        self,
        generator: Callable[[str, str], str],
        ledger: Optional[UsageLedger] = None,
        *,
        mode: TemplateMode = TemplateMode.AST,
        alias_validation_exempt: Sequence[str] = (),
    ):
        self.mode = TemplateMode(mode)
        self.resolver = TemplateImportResolver(alias_validation_exempt=alias_validation_exempt)
        self.usages = ClassUsageRewriter(generator, ledger)

    def rewrite(self, source: str, *, template_module: str) -> TemplateRewriteResult:
        if self.mode is TemplateMode.TEXT:
            text, table = self.resolver.resolve_text(source, template_module)
            text, usages = self.usages.rewrite_text(text, table, template_module, original_source=source)
        else:
            template = parse_template(source, path=template_module)
            table = self.resolver.resolve_ast(template, template_module)
            usages = self.usages.rewrite_ast(template, table, template_module)
            text = print_template(template)

        _log.debug(
            "templates.rewrite template=%s mode=%s imports=%s usages=%s",
            template_module,
            self.mode.value,
            len(table.directives),
            len(usages),
        )
        return TemplateRewriteResult(
            template_path=template_module,
            text=text,
            imports=list(table.directives),
            usages=usages,
        )

