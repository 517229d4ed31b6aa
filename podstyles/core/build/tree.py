"""
File tree providers.

Paths are POSIX-style and relative to the tree root. Patterns use ``fnmatch``
semantics, where ``*`` also crosses directory separators, so
``*.scoped.scss`` selects every style module at any depth.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Sequence


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str


class FileTreeProvider(Protocol):
    def list_files(self, patterns: Sequence[str]) -> List[SourceFile]:
        ...

    def write(self, path: str, content: str) -> None:
        ...


def _matches(path: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatchcase(path, pat) for pat in patterns)


class InMemoryFileTree:
    def __init__(self, files: Optional[Mapping[str, str]] = None):
        self.files: Dict[str, str] = {k.replace("\\", "/"): v for k, v in (files or {}).items()}
        self.outputs: Dict[str, str] = {}

    def list_files(self, patterns: Sequence[str]) -> List[SourceFile]:
        return [SourceFile(path=p, content=self.files[p]) for p in sorted(self.files) if _matches(p, patterns)]

    def write(self, path: str, content: str) -> None:
        self.outputs[path] = content


class DiskFileTree:
    """Reads below ``root``; writes below ``out_dir`` (defaults to ``root``)."""

    def __init__(self, root: Path, out_dir: Optional[Path] = None):
        self.root = Path(root)
        self.out_dir = Path(out_dir) if out_dir is not None else self.root

    def list_files(self, patterns: Sequence[str]) -> List[SourceFile]:
        out: List[SourceFile] = []
        if not self.root.exists():
            return out
        skip_out = self.out_dir.resolve() != self.root.resolve()
        out_resolved = self.out_dir.resolve()
        for p in sorted(self.root.rglob("*")):
            if not p.is_file():
                continue
            # outputs written into a subdirectory of root are not inputs
            if skip_out and out_resolved in p.resolve().parents:
                continue
            rel = p.relative_to(self.root).as_posix()
            if _matches(rel, patterns):
                out.append(SourceFile(path=rel, content=p.read_text(encoding="utf-8")))
        return out

    def write(self, path: str, content: str) -> None:
        target = self.out_dir / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
