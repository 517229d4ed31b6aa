from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .naming import normalize_module_path


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    offset: int = 0

    @staticmethod
    def from_offset(text: str, offset: int) -> "SourceLocation":
        line = text.count("\n", 0, offset) + 1
        last_nl = text.rfind("\n", 0, offset)
        return SourceLocation(line=line, column=offset - last_nl, offset=offset)

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "column": self.column, "offset": self.offset}


@dataclass(frozen=True)
class ClassDefinition:
    class_name: str
    module_path: str
    location: Optional[SourceLocation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_name": self.class_name,
            "module_path": self.module_path,
            "location": self.location.to_dict() if self.location else None,
        }


@dataclass
class StyleModule:
    namespace: str
    relative_path: str
    definitions: List[ClassDefinition] = field(default_factory=list)

    @property
    def module_path(self) -> str:
        return module_path_for(self.namespace, self.relative_path)

    @property
    def class_names(self) -> List[str]:
        seen: Dict[str, None] = {}
        for d in self.definitions:
            seen.setdefault(d.class_name, None)
        return list(seen)


@dataclass(frozen=True)
class ImportDirective:
    # raw_path is what the author wrote, import_path the resolved module path
    local_name: str
    import_path: str
    raw_path: str
    location: Optional[SourceLocation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_name": self.local_name,
            "import_path": self.import_path,
            "raw_path": self.raw_path,
            "location": self.location.to_dict() if self.location else None,
        }


@dataclass(frozen=True)
class ClassUsage:
    local_name: str
    member_name: str
    import_path: str
    template_path: str = ""
    location: Optional[SourceLocation] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "local_name": self.local_name,
            "member_name": self.member_name,
            "import_path": self.import_path,
            "template_path": self.template_path,
            "location": self.location.to_dict() if self.location else None,
        }


def module_path_for(namespace: str, relative_path: str) -> str:
    """``<namespace>/<relative path>``, normalized the way the name generator expects."""
    ns = (namespace or "").strip().strip("/\\")
    rel = normalize_module_path(relative_path)
    return normalize_module_path(f"{ns}/{rel}") if ns else rel
