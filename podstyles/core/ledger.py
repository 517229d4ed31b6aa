from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import LedgerNotSealedError, LedgerSealedError
from .models import ClassDefinition, ClassUsage
from .observability.metrics import inc_diagnostic

_log = logging.getLogger("podstyles.ledger")


class DiagnosticKind(str, Enum):
    UNUSED_STYLE_MODULE = "unused_style_module"
    UNUSED_CLASS = "unused_class"
    MISSING_CLASS = "missing_class"
    MISSING_STYLE_MODULE = "missing_style_module"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    module_path: str
    message: str
    class_name: Optional[str] = None
    severity: str = "warn"
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity,
            "module_path": self.module_path,
            "class_name": self.class_name,
            "message": self.message,
            "data": dict(self.data),
        }


class UsageLedger:
    """
    Cross-file bookkeeping of defined vs. referenced classes for one build.

    Writers (style and template rewriters, possibly on worker threads) only
    append. ``seal()`` is the completion barrier; ``reconcile()`` reads the
    sealed state on a single thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sealed = False
        # module path -> class name -> definitions (insertion ordered)
        self._defined: Dict[str, Dict[str, List[ClassDefinition]]] = {}
        # module path -> class name -> usages
        self._used: Dict[str, Dict[str, List[ClassUsage]]] = {}

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register_defined(self, definition: ClassDefinition) -> None:
        with self._lock:
            if self._sealed:
                raise LedgerSealedError()
            per_module = self._defined.setdefault(definition.module_path, {})
            per_module.setdefault(definition.class_name, []).append(definition)

    def register_used(self, usage: ClassUsage) -> None:
        with self._lock:
            if self._sealed:
                raise LedgerSealedError()
            per_module = self._used.setdefault(usage.import_path, {})
            per_module.setdefault(usage.member_name, []).append(usage)

    def seal(self) -> None:
        with self._lock:
            self._sealed = True

    def defined_classes(self, module_path: str) -> List[str]:
        with self._lock:
            return list(self._defined.get(module_path, {}))

    def used_classes(self, module_path: str) -> List[str]:
        with self._lock:
            return list(self._used.get(module_path, {}))

    def modules(self) -> List[str]:
        with self._lock:
            return sorted(set(self._defined) | set(self._used))

    def reconcile(self) -> List[Diagnostic]:
        if not self._sealed:
            raise LedgerNotSealedError()

        diagnostics: List[Diagnostic] = []

        for module_path in sorted(self._defined):
            defined = self._defined[module_path]
            used = self._used.get(module_path)
            if not used:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.UNUSED_STYLE_MODULE,
                        module_path=module_path,
                        message=(
                            f"Unused CSS. Scoped styles are defined in {module_path} "
                            "but no template imports them."
                        ),
                        data={"classes": list(defined)},
                    )
                )
                continue

            for class_name in defined:
                if class_name not in used:
                    diagnostics.append(
                        Diagnostic(
                            kind=DiagnosticKind.UNUSED_CLASS,
                            module_path=module_path,
                            class_name=class_name,
                            message=(
                                f'Unused CSS. Class "{class_name}" is defined in {module_path} '
                                "but never used."
                            ),
                        )
                    )

            for class_name, usages in used.items():
                if class_name not in defined:
                    diagnostics.append(
                        Diagnostic(
                            kind=DiagnosticKind.MISSING_CLASS,
                            module_path=module_path,
                            class_name=class_name,
                            message=(
                                f'Missing CSS. Class "{class_name}" is used from {module_path} '
                                "but that module does not define it."
                            ),
                            data={"templates": sorted({u.template_path for u in usages if u.template_path})},
                        )
                    )

        for module_path in sorted(self._used):
            if module_path in self._defined:
                continue
            usages = [u for us in self._used[module_path].values() for u in us]
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.MISSING_STYLE_MODULE,
                    module_path=module_path,
                    message=(
                        f"Missing CSS. Styles are imported from {module_path}, "
                        "but no such scoped style module exists."
                    ),
                    data={
                        "classes": list(self._used[module_path]),
                        "templates": sorted({u.template_path for u in usages if u.template_path}),
                    },
                )
            )

        for d in diagnostics:
            _log.warning("%s: %s", d.kind.value, d.message)
            inc_diagnostic(d.kind.value)

        return diagnostics
