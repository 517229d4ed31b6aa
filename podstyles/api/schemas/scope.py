from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from podstyles.core.naming import DEFAULT_DIGEST_LENGTH, NamingScheme
from podstyles.core.styles.rewriter import TraversalMode
from podstyles.core.templates.rewriter import TemplateMode


class ScopedNameRequest(BaseModel):
    class_name: str = Field(min_length=1)
    module_path: str = Field(min_length=1)
    naming_scheme: NamingScheme = NamingScheme.FLAT
    digest_length: int = Field(default=DEFAULT_DIGEST_LENGTH, ge=1, le=32)


class ScopedNameResponse(BaseModel):
    class_name: str
    module_path: str
    scoped_name: str


class StyleScopeRequest(BaseModel):
    source: str
    namespace: str = Field(min_length=1)
    relative_path: str = Field(min_length=1)
    naming_scheme: NamingScheme = NamingScheme.FLAT
    digest_length: int = Field(default=DEFAULT_DIGEST_LENGTH, ge=1, le=32)
    traversal: TraversalMode = TraversalMode.SHALLOW


class TemplateScopeRequest(BaseModel):
    source: str
    namespace: str = Field(min_length=1)
    relative_path: str = Field(min_length=1)
    naming_scheme: NamingScheme = NamingScheme.FLAT
    digest_length: int = Field(default=DEFAULT_DIGEST_LENGTH, ge=1, le=32)
    template_mode: TemplateMode = TemplateMode.AST
    alias_validation_exempt: List[str] = Field(default_factory=list)


class BuildRequest(BaseModel):
    files: Dict[str, str] = Field(default_factory=dict, description="path -> content, relative to the project root")
    config: Dict[str, Any] = Field(default_factory=dict, description="ScopingConfig fields")


class BuildResponse(BaseModel):
    namespace: str
    ok: bool
    outputs: Dict[str, str]
    diagnostics: List[Dict[str, Any]]
    failures: List[Dict[str, Any]]
    aggregate_path: Optional[str] = None
    duration_ms: int
