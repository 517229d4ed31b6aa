"""
Two-phase build over one namespace.

Phase 1 (parallel): every style module and every template is rewritten on
its own; each reports facts to the shared usage ledger.
Barrier: the worker pool is drained, then the ledger is sealed.
Phase 2 (single thread): ledger reconciliation, then outputs are written
and the rewritten style modules are concatenated into one aggregate sheet.
"""

from __future__ import annotations

import concurrent.futures
import logging
import posixpath
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from podstyles.core.config import ScopingConfig
from podstyles.core.errors import InvalidIdentifierError, ParseError, PodStylesError
from podstyles.core.ledger import Diagnostic, UsageLedger
from podstyles.core.models import module_path_for
from podstyles.core.observability.metrics import (
    BUILD_DURATION_SECONDS,
    inc_file_failure,
    inc_file_rewritten,
)
from podstyles.core.styles.rewriter import StyleRewriteResult, StyleSelectorRewriter
from podstyles.core.templates.rewriter import TemplateRewriteResult, TemplateRewriter

from .tree import FileTreeProvider, SourceFile

_log = logging.getLogger("podstyles.build")

STYLE = "style"
TEMPLATE = "template"


@dataclass
class FileFailure:
    path: str
    kind: str
    error_type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[PodStylesError] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind,
            "error_type": self.error_type,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass
class BuildResult:
    namespace: str
    styles: List[StyleRewriteResult] = field(default_factory=list)
    templates: List[TemplateRewriteResult] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)
    aggregate_path: Optional[str] = None
    aggregate_text: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.namespace,
            "ok": self.ok,
            "styles": [s.to_dict() for s in self.styles],
            "templates": [t.to_dict() for t in self.templates],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "failures": [f.to_dict() for f in self.failures],
            "aggregate_path": self.aggregate_path,
            "aggregate_text": self.aggregate_text,
            "duration_ms": self.duration_ms,
        }


class BuildPipeline:
    def __init__(self, config: ScopingConfig, tree: FileTreeProvider):
        self.config = config
        self.tree = tree

    # --- path helpers ---

    def _styles_root(self) -> str:
        root = (self.config.styles_root or "").replace("\\", "/").strip("/")
        return "" if root in ("", ".") else posixpath.normpath(root)

    def _relative(self, path: str) -> Optional[str]:
        """Path relative to the styles root, or None when the file lies outside it."""
        root = self._styles_root()
        if not root:
            return path
        if path.startswith(root + "/"):
            return path[len(root) + 1:]
        return None

    def _output_path(self, relative: str) -> str:
        root = self._styles_root()
        return f"{root}/{relative}" if root else relative

    # --- run ---

    def run(self, *, ledger: Optional[UsageLedger] = None, raise_on_error: bool = False) -> BuildResult:
        cfg = self.config
        t0 = time.perf_counter()

        ledger = ledger if ledger is not None else UsageLedger()
        generator = cfg.generator()
        style_rewriter = StyleSelectorRewriter(
            generator,
            ledger,
            mode=cfg.traversal,
            source_extension=cfg.style_extension,
            target_extension=cfg.target_extension,
        )
        template_rewriter = TemplateRewriter(
            generator,
            ledger,
            mode=cfg.template_mode,
            alias_validation_exempt=cfg.alias_validation_exempt,
        )

        jobs: List[Tuple[str, SourceFile, str]] = []
        for f in self.tree.list_files([f"*.{cfg.style_extension.lstrip('.')}"]):
            rel = self._relative(f.path)
            if rel is not None:
                jobs.append((STYLE, f, rel))
        for f in self.tree.list_files([f"*.{ext.lstrip('.')}" for ext in cfg.template_extensions]):
            rel = self._relative(f.path)
            if rel is not None:
                jobs.append((TEMPLATE, f, rel))

        result = BuildResult(namespace=cfg.namespace)

        def work(kind: str, f: SourceFile, rel: str) -> Union[StyleRewriteResult, TemplateRewriteResult]:
            if kind == STYLE:
                return style_rewriter.rewrite(f.content, namespace=cfg.namespace, relative_path=rel)
            return template_rewriter.rewrite(f.content, template_module=module_path_for(cfg.namespace, rel))

        # phase 1
        with concurrent.futures.ThreadPoolExecutor(max_workers=cfg.max_workers) as pool:
            rels = {f.path: rel for _, f, rel in jobs}
            futures = {pool.submit(work, kind, f, rel): (kind, f) for kind, f, rel in jobs}
            for fut in concurrent.futures.as_completed(futures):
                kind, f = futures[fut]
                try:
                    out = fut.result()
                except (ParseError, InvalidIdentifierError) as e:
                    result.failures.append(_failure(kind, f.path, e))
                    inc_file_failure(kind, type(e).__name__)
                    _log.error("build.file_failed kind=%s path=%s error=%s", kind, f.path, e)
                    continue
                inc_file_rewritten(kind)
                if kind == STYLE:
                    result.styles.append(out)  # type: ignore[arg-type]
                else:
                    out.output_path = self._output_path(rels[f.path])  # type: ignore[union-attr]
                    result.templates.append(out)  # type: ignore[arg-type]

        # barrier passed: every worker has reported
        ledger.seal()

        # phase 2
        result.diagnostics = ledger.reconcile()

        result.styles.sort(key=lambda s: s.module.relative_path)
        result.templates.sort(key=lambda t: t.template_path)
        result.failures.sort(key=lambda x: x.path)

        self._write_outputs(result)

        elapsed = time.perf_counter() - t0
        BUILD_DURATION_SECONDS.observe(elapsed)
        result.duration_ms = int(round(elapsed * 1000))

        _log.info(
            "build.done namespace=%s styles=%s templates=%s diagnostics=%s failures=%s ms=%s",
            cfg.namespace,
            len(result.styles),
            len(result.templates),
            len(result.diagnostics),
            len(result.failures),
            result.duration_ms,
        )

        if raise_on_error and result.failures and result.failures[0].error is not None:
            raise result.failures[0].error
        return result

    def _write_outputs(self, result: BuildResult) -> None:
        cfg = self.config
        for s in result.styles:
            self.tree.write(self._output_path(s.output_path), s.text)
        for t in result.templates:
            self.tree.write(t.output_path, t.text)

        if cfg.aggregate_output:
            result.aggregate_path = cfg.aggregate_output
            result.aggregate_text = "\n".join(s.text for s in result.styles)
            self.tree.write(cfg.aggregate_output, result.aggregate_text)


def _failure(kind: str, path: str, error: PodStylesError) -> FileFailure:
    details = error.to_dict() if hasattr(error, "to_dict") else {}
    return FileFailure(
        path=path,
        kind=kind,
        error_type=type(error).__name__,
        message=str(error),
        details=details,
        error=error,
    )
