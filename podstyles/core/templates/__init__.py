from .ast import builders, print_template, replace_node, walk
from .imports import (
    ALIAS_PATTERN,
    IMPORT_PLACEHOLDER,
    ImportTable,
    TemplateImportResolver,
    resolve_import_path,
)
from .parser import parse_template
from .rewriter import TemplateMode, TemplateRewriteResult, TemplateRewriter
from .usages import ClassUsageRewriter, split_reference

__all__ = [
    "builders",
    "print_template",
    "replace_node",
    "walk",
    "ALIAS_PATTERN",
    "IMPORT_PLACEHOLDER",
    "ImportTable",
    "TemplateImportResolver",
    "resolve_import_path",
    "parse_template",
    "TemplateMode",
    "TemplateRewriteResult",
    "TemplateRewriter",
    "ClassUsageRewriter",
    "split_reference",
]
