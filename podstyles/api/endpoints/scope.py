from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from podstyles.api.schemas.scope import (
    BuildRequest,
    BuildResponse,
    ScopedNameRequest,
    ScopedNameResponse,
    StyleScopeRequest,
    TemplateScopeRequest,
)
from podstyles.core.build.pipeline import BuildPipeline
from podstyles.core.build.tree import InMemoryFileTree
from podstyles.core.config import ScopingConfig
from podstyles.core.errors import InvalidIdentifierError, ParseError
from podstyles.core.models import module_path_for
from podstyles.core.naming import ScopedNameGenerator
from podstyles.core.styles.rewriter import StyleSelectorRewriter
from podstyles.core.templates.rewriter import TemplateRewriter

router = APIRouter(prefix="/api/v1/scope", tags=["scope"])


def _unprocessable(error_type: str, payload: dict) -> HTTPException:
    return HTTPException(status_code=422, detail={"error": error_type, **payload})


@router.post("/name", response_model=ScopedNameResponse)
def scope_name(req: ScopedNameRequest):
    gen = ScopedNameGenerator(scheme=req.naming_scheme, digest_length=req.digest_length)
    return ScopedNameResponse(
        class_name=req.class_name,
        module_path=req.module_path,
        scoped_name=gen(req.class_name, req.module_path),
    )


@router.post("/style")
def scope_style(req: StyleScopeRequest):
    gen = ScopedNameGenerator(scheme=req.naming_scheme, digest_length=req.digest_length)
    rewriter = StyleSelectorRewriter(gen, mode=req.traversal)
    try:
        out = rewriter.rewrite(req.source, namespace=req.namespace, relative_path=req.relative_path)
    except ParseError as e:
        raise _unprocessable("parse_error", e.to_dict())
    return out.to_dict()


@router.post("/template")
def scope_template(req: TemplateScopeRequest):
    gen = ScopedNameGenerator(scheme=req.naming_scheme, digest_length=req.digest_length)
    rewriter = TemplateRewriter(
        gen,
        mode=req.template_mode,
        alias_validation_exempt=req.alias_validation_exempt,
    )
    try:
        out = rewriter.rewrite(req.source, template_module=module_path_for(req.namespace, req.relative_path))
    except ParseError as e:
        raise _unprocessable("parse_error", e.to_dict())
    except InvalidIdentifierError as e:
        raise _unprocessable("invalid_identifier", e.to_dict())
    return out.to_dict()


@router.post("/build", response_model=BuildResponse)
def scope_build(req: BuildRequest):
    # request config only; no file or env lookups on the server side
    try:
        cfg = ScopingConfig(**req.config)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"invalid podstyles configuration: {e}")

    tree = InMemoryFileTree(req.files)
    result = BuildPipeline(cfg, tree).run()
    return BuildResponse(
        namespace=result.namespace,
        ok=result.ok,
        outputs=dict(sorted(tree.outputs.items())),
        diagnostics=[d.to_dict() for d in result.diagnostics],
        failures=[f.to_dict() for f in result.failures],
        aggregate_path=result.aggregate_path,
        duration_ms=result.duration_ms,
    )
