from .parser import AtRule, Comment, Declaration, Rule, Stylesheet, parse_stylesheet
from .rewriter import (
    DEFAULT_SOURCE_EXTENSION,
    DEFAULT_TARGET_EXTENSION,
    StyleRewriteResult,
    StyleSelectorRewriter,
    TraversalMode,
    split_selector_list,
    target_path,
)

__all__ = [
    "AtRule",
    "Comment",
    "Declaration",
    "Rule",
    "Stylesheet",
    "parse_stylesheet",
    "DEFAULT_SOURCE_EXTENSION",
    "DEFAULT_TARGET_EXTENSION",
    "StyleRewriteResult",
    "StyleSelectorRewriter",
    "TraversalMode",
    "split_selector_list",
    "target_path",
]
