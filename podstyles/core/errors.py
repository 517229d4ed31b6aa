"""Error taxonomy for scoping.

Fatal errors abort processing of one file only; the build pipeline collects
them per file and the caller decides whether the whole build fails.
Advisory diagnostics are not exceptions, see ``podstyles.core.ledger``.
"""

from __future__ import annotations

from typing import Optional


class PodStylesError(Exception):
    pass


class ConfigError(PodStylesError):
    pass


class ParseError(PodStylesError):
    def __init__(
        self,
        *,
        path: str,
        reason: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.path = path
        self.reason = reason
        self.line = line
        self.column = column
        where = path
        if line is not None:
            where = f"{path}:{line}:{column or 1}"
        super().__init__(f"{where}: {reason}")

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "reason": self.reason,
        }


class StyleParseError(ParseError):
    pass


class TemplateParseError(ParseError):
    pass


class InvalidIdentifierError(PodStylesError):
    def __init__(self, *, path: str, alias: str):
        self.path = path
        self.alias = alias
        super().__init__(
            f"{path}: invalid style import alias {alias!r} "
            "(only letters, digits, '.' and '-' are allowed)"
        )

    def to_dict(self) -> dict:
        return {"path": self.path, "alias": self.alias}


class LedgerError(PodStylesError, RuntimeError):
    pass


class LedgerSealedError(LedgerError):
    def __init__(self, message: str = "usage ledger is sealed; no further registrations accepted"):
        super().__init__(message)


class LedgerNotSealedError(LedgerError):
    def __init__(self, message: str = "usage ledger must be sealed before reconciliation"):
        super().__init__(message)
