"""Scoped class name generation.

The style rewriter and the template rewriter never talk to each other; they
agree on identifiers only because both call :func:`scoped_name` with the same
(class name, module path) pair. Keep this module free of state.
"""

from __future__ import annotations

import hashlib
import posixpath
from dataclasses import dataclass
from enum import Enum

DEFAULT_DIGEST_LENGTH = 5


class NamingScheme(str, Enum):
    FLAT = "flat"
    PREFIXED = "prefixed"


def normalize_module_path(path: str) -> str:
    p = (path or "").replace("\\", "/").strip()
    if not p:
        return ""
    p = posixpath.normpath(p)
    if p == ".":
        return ""
    return p.lstrip("/")


def class_digest(class_name: str, module_path: str, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    # md5 is only a short, stable fingerprint here; collisions are tolerated
    key = f"{class_name}--{normalize_module_path(module_path)}"
    digest = hashlib.md5(key.encode("utf-8"), usedforsecurity=False).hexdigest()
    return digest[:length]


def module_prefix(module_path: str) -> str:
    """Parent directory name of the module, e.g. ``card`` for ``app/components/card/pod-styles.scoped.scss``."""
    parent = posixpath.dirname(normalize_module_path(module_path))
    return posixpath.basename(parent)


def scoped_name(
    class_name: str,
    module_path: str,
    scheme: NamingScheme = NamingScheme.FLAT,
    digest_length: int = DEFAULT_DIGEST_LENGTH,
) -> str:
    digest = class_digest(class_name, module_path, digest_length)
    if NamingScheme(scheme) is NamingScheme.PREFIXED:
        prefix = module_prefix(module_path)
        if prefix:
            return f"{prefix}_{class_name}_{digest}"
    return f"{class_name}_{digest}"


@dataclass(frozen=True)
class ScopedNameGenerator:
    scheme: NamingScheme = NamingScheme.FLAT
    digest_length: int = DEFAULT_DIGEST_LENGTH

    def __call__(self, class_name: str, module_path: str) -> str:
        return scoped_name(class_name, module_path, self.scheme, self.digest_length)
