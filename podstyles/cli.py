"""Command line entry point: run one scoping build over a project directory.

Exit codes:
  0  build finished without file failures
  1  one or more files failed (or, with --strict, diagnostics were emitted)
  2  configuration error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from podstyles.core.build.pipeline import BuildPipeline, BuildResult
from podstyles.core.build.tree import DiskFileTree
from podstyles.core.config import load_config
from podstyles.core.errors import ConfigError
from podstyles.core.observability.metrics import snapshot_named

_log = logging.getLogger("podstyles.cli")

DEFAULT_OUT_DIR = "podstyles-out"


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="podstyles-build", description="Scope pod style modules and their templates")
    ap.add_argument("--root", default=None, help="Project root (default: config project_root or cwd)")
    ap.add_argument("--config", default=None, help="YAML/JSON config file")
    ap.add_argument("--namespace", default=None, help="Project namespace used in module paths")
    ap.add_argument("--styles-root", default=None, help="Directory below root holding pods (default app)")
    ap.add_argument("--out", default=None, help=f"Output directory (default: <root>/{DEFAULT_OUT_DIR})")
    ap.add_argument("--scheme", choices=["flat", "prefixed"], default=None, help="Scoped name scheme")
    ap.add_argument("--deep", action="store_true", help="Rewrite selectors in nested rules too")
    ap.add_argument("--text-mode", action="store_true", help="Rewrite templates textually instead of via the AST")
    ap.add_argument("--strict", action="store_true", help="Exit 1 when any diagnostic is emitted")
    ap.add_argument("--json", action="store_true", help="Print the build report as JSON")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "project_root": args.root,
        "namespace": args.namespace,
        "styles_root": args.styles_root,
        "naming_scheme": args.scheme,
    }
    if args.deep:
        out["traversal"] = "deep"
    if args.text_mode:
        out["template_mode"] = "text"
    return out


def _summary_lines(result: BuildResult) -> List[str]:
    lines = [
        f"namespace={result.namespace} styles={len(result.styles)} templates={len(result.templates)} "
        f"diagnostics={len(result.diagnostics)} failures={len(result.failures)} ms={result.duration_ms}"
    ]
    for f in result.failures:
        lines.append(f"FAIL {f.kind} {f.path}: {f.message}")
    for d in result.diagnostics:
        lines.append(f"WARN {d.kind.value} {d.message}")
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        cfg = load_config(Path(args.config) if args.config else None, overrides=_overrides(args))
    except ConfigError as e:
        _log.error("config.invalid %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2

    root = Path(cfg.project_root)
    out_dir = Path(args.out) if args.out else root / DEFAULT_OUT_DIR
    tree = DiskFileTree(root, out_dir=out_dir)
    result = BuildPipeline(cfg, tree).run()

    if args.json:
        report = result.to_dict()
        report["counters"] = snapshot_named()
        print(json.dumps(report, indent=2, sort_keys=True))
    else:
        for line in _summary_lines(result):
            print(line)

    if result.failures:
        return 1
    if args.strict and result.diagnostics:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
