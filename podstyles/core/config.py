"""
Scoping configuration.

Resolution order (later wins):
  1) model defaults
  2) optional YAML/JSON file: explicit path, else PODSTYLES_CONFIG_FILE,
     else ./podstyles.yaml when present
  3) PODSTYLES_* environment variables

File format (YAML or JSON), any subset of the fields:
    namespace: my-app
    styles_root: app
    naming_scheme: prefixed
    traversal: deep
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from podstyles.core.errors import ConfigError
from podstyles.core.naming import DEFAULT_DIGEST_LENGTH, NamingScheme, ScopedNameGenerator
from podstyles.core.styles.rewriter import (
    DEFAULT_SOURCE_EXTENSION,
    DEFAULT_TARGET_EXTENSION,
    TraversalMode,
)
from podstyles.core.templates.rewriter import TemplateMode

_log = logging.getLogger("podstyles.config")

DEFAULT_CONFIG_FILE = "podstyles.yaml"

# env var -> field
ENV_OVERRIDES: Dict[str, str] = {
    "PODSTYLES_PROJECT_ROOT": "project_root",
    "PODSTYLES_STYLES_ROOT": "styles_root",
    "PODSTYLES_NAMESPACE": "namespace",
    "PODSTYLES_NAMING_SCHEME": "naming_scheme",
    "PODSTYLES_DIGEST_LENGTH": "digest_length",
    "PODSTYLES_TRAVERSAL": "traversal",
    "PODSTYLES_TEMPLATE_MODE": "template_mode",
    "PODSTYLES_MAX_WORKERS": "max_workers",
}


class ScopingConfig(BaseModel):
    project_root: Path = Path(".")
    styles_root: str = "app"
    namespace: str = "app"

    naming_scheme: NamingScheme = NamingScheme.FLAT
    digest_length: int = Field(default=DEFAULT_DIGEST_LENGTH, ge=1, le=32)
    traversal: TraversalMode = TraversalMode.SHALLOW
    template_mode: TemplateMode = TemplateMode.AST

    style_extension: str = DEFAULT_SOURCE_EXTENSION
    target_extension: str = DEFAULT_TARGET_EXTENSION
    template_extensions: List[str] = Field(default_factory=lambda: ["hbs"])
    aggregate_output: str = "pod-styles.scss"

    # glob patterns of template module names whose import aliases are not validated
    alias_validation_exempt: List[str] = Field(default_factory=list)

    max_workers: int = Field(default=4, ge=1)

    @model_validator(mode="after")
    def _check_extensions(self) -> "ScopingConfig":
        src = self.style_extension.lstrip(".")
        dst = self.target_extension.lstrip(".")
        if not src or not dst:
            raise ValueError("style_extension and target_extension must be non-empty")
        if src == dst or dst.endswith("." + src) or src.endswith("." + dst):
            raise ValueError(
                f"target_extension {dst!r} must be distinct from style_extension {src!r}"
            )
        if not self.namespace.strip().strip("/"):
            raise ValueError("namespace must be non-empty")
        return self

    def generator(self) -> ScopedNameGenerator:
        return ScopedNameGenerator(scheme=self.naming_scheme, digest_length=self.digest_length)


def load_config(
    path: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ScopingConfig:
    env = os.environ if env is None else env
    data: Dict[str, Any] = {}

    resolved = _resolve_path(path, env)
    if resolved is not None:
        data.update(_read_config_file(resolved))

    for key, field_name in ENV_OVERRIDES.items():
        raw = (env.get(key) or "").strip()
        if raw:
            data[field_name] = raw

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ScopingConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"invalid podstyles configuration: {exc}") from exc


def _resolve_path(path: Optional[Path], env: Mapping[str, str]) -> Optional[Path]:
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"config file not found: {p}")
        return p
    env_path = (env.get("PODSTYLES_CONFIG_FILE") or "").strip()
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(f"PODSTYLES_CONFIG_FILE points to a missing file: {p}")
        return p
    default = Path.cwd() / DEFAULT_CONFIG_FILE
    return default if default.exists() else None


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"config file {path} is neither JSON nor YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping, got {type(data).__name__}")

    _log.info("Loaded podstyles config from %s (%d keys)", path, len(data))
    return data
