from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from podstyles.core.ledger import UsageLedger
from podstyles.core.models import ClassDefinition, SourceLocation, StyleModule
from podstyles.core.observability.metrics import inc_classes_defined

from .parser import Rule, parse_stylesheet

_log = logging.getLogger("podstyles.styles")

DEFAULT_SOURCE_EXTENSION = "scoped.scss"
DEFAULT_TARGET_EXTENSION = "rewritten.scss"

# one class, optionally followed by pseudo-classes / pseudo-elements; no combinators
_SINGLE_CLASS_RE = re.compile(
    r"^\.(?P<name>-?-?[_a-zA-Z][_a-zA-Z0-9-]*)"
    r"(?P<pseudo>(?:::?[-_a-zA-Z0-9]+(?:\([^()]*\))?)*)$"
)

# whitespace and comments around a selector-list member
_EDGES_RE = re.compile(
    r"^(?P<lead>(?:\s|/\*.*?\*/|//[^\n]*(?:\n|$))*)"
    r"(?P<core>.*?)"
    r"(?P<trail>(?:\s|/\*.*?\*/|//[^\n]*(?:\n|$))*)$",
    re.DOTALL,
)


class TraversalMode(str, Enum):
    SHALLOW = "shallow"
    DEEP = "deep"


@dataclass
class StyleRewriteResult:
    module: StyleModule
    output_path: str
    text: str
    definitions: List[ClassDefinition] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "module_path": self.module.module_path,
            "output_path": self.output_path,
            "text": self.text,
            "definitions": [d.to_dict() for d in self.definitions],
        }


def target_path(
    relative_path: str,
    source_extension: str = DEFAULT_SOURCE_EXTENSION,
    target_extension: str = DEFAULT_TARGET_EXTENSION,
) -> str:
    """``components/x/styles.scoped.scss`` -> ``components/x/styles.rewritten.scss``."""
    suffix = "." + source_extension.lstrip(".")
    if relative_path.endswith(suffix):
        return relative_path[: -len(suffix)] + "." + target_extension.lstrip(".")
    return relative_path + "." + target_extension.lstrip(".")


def split_selector_list(selector: str) -> List[Tuple[int, str]]:
    """Split on top-level commas; returns (offset, piece) pairs with whitespace kept."""
    pieces: List[Tuple[int, str]] = []
    depth = 0
    quote = ""
    start = 0
    i = 0
    while i < len(selector):
        c = selector[i]
        if quote:
            if c == "\\":
                i += 2
                continue
            if c == quote:
                quote = ""
        elif c in ("'", '"'):
            quote = c
        elif selector.startswith("/*", i):
            end = selector.find("*/", i + 2)
            i = len(selector) if end == -1 else end + 2
            continue
        elif selector.startswith("//", i) and depth == 0:
            end = selector.find("\n", i)
            i = len(selector) if end == -1 else end
            continue
        elif c in "([{":
            depth += 1
        elif c in ")]}":
            depth = max(0, depth - 1)
        elif c == "," and depth == 0:
            pieces.append((start, selector[start:i]))
            start = i + 1
        i += 1
    pieces.append((start, selector[start:]))
    return pieces


class StyleSelectorRewriter:
    """
    Rewrites single-class selectors of one style module to scoped names and
    reports every defined class to the usage ledger.
    """

    def __init__(
        self,
        generator: Callable[[str, str], str],
        ledger: Optional[UsageLedger] = None,
        *,
        mode: TraversalMode = TraversalMode.SHALLOW,
        source_extension: str = DEFAULT_SOURCE_EXTENSION,
        target_extension: str = DEFAULT_TARGET_EXTENSION,
    ):
        self.generator = generator
        self.ledger = ledger
        self.mode = TraversalMode(mode)
        self.source_extension = source_extension
        self.target_extension = target_extension

    def rewrite(self, source: str, *, namespace: str, relative_path: str) -> StyleRewriteResult:
        module = StyleModule(namespace=namespace, relative_path=relative_path)
        module_path = module.module_path

        sheet = parse_stylesheet(source, path=module_path)

        for rule in sheet.walk_rules(deep=self.mode is TraversalMode.DEEP):
            module.definitions.extend(self._rewrite_rule(rule, source, module_path))

        text = sheet.render()

        # ledger facts only once the whole module went through
        if self.ledger is not None:
            for d in module.definitions:
                self.ledger.register_defined(d)
        inc_classes_defined(len(module.definitions))

        _log.debug(
            "styles.rewrite module=%s mode=%s classes=%s",
            module_path,
            self.mode.value,
            len(module.definitions),
        )

        return StyleRewriteResult(
            module=module,
            output_path=target_path(relative_path, self.source_extension, self.target_extension),
            text=text,
            definitions=list(module.definitions),
        )

    def _rewrite_rule(self, rule: Rule, source: str, module_path: str) -> List[ClassDefinition]:
        definitions: List[ClassDefinition] = []
        changed = False
        out: List[str] = []

        for offset, piece in split_selector_list(rule.raw_selector):
            edges = _EDGES_RE.match(piece)
            m = _SINGLE_CLASS_RE.match(edges.group("core"))
            if not m:
                out.append(piece)
                continue

            name = m.group("name")
            lead, trail = edges.group("lead"), edges.group("trail")
            out.append(f"{lead}.{self.generator(name, module_path)}{m.group('pseudo')}{trail}")
            changed = True

            loc = SourceLocation.from_offset(source, rule.selector_start + offset + len(lead))
            definitions.append(ClassDefinition(class_name=name, module_path=module_path, location=loc))

        if changed:
            rule.selector = ",".join(out)
        return definitions
