"""
Syntax — Parsed source and diagnostics.

SyntaxTree.parse_text never raises on malformed source: the syntax error is
kept as a diagnostic and reported when the compilation is emitted.
"""

import ast
from dataclasses import dataclass, field

from kiln.vocabulary import DiagnosticSeverity


# Diagnostic identifiers
UNRESOLVED_REFERENCE = "KL0006"
MISSING_TYPE = "KL0103"
UNRESOLVED_NAMESPACE = "KL0246"
SYNTAX_ERROR = "KL1001"
COMPILE_ERROR = "KL1002"
RUNTIME_ERROR = "KL2001"
WARNING = "KL4001"


@dataclass(frozen=True)
class Location:
    """Position in a source file. Line and column are 0-based."""
    path: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def from_one_based(
        cls, path: str, lineno: int | None, offset: int | None
    ) -> "Location":
        """Build from Python's 1-based line and offset, clamping missing values."""
        return cls(
            path=path,
            line=max((lineno or 1) - 1, 0),
            column=max((offset or 1) - 1, 0),
        )


NO_LOCATION = Location()


@dataclass(frozen=True)
class Diagnostic:
    """Single message reported by the backend."""
    id: str
    severity: DiagnosticSeverity
    message: str
    location: Location = NO_LOCATION

    @property
    def is_error(self) -> bool:
        return self.severity == DiagnosticSeverity.ERROR


@dataclass
class SyntaxTree:
    """
    Source text under a virtual path, parsed on first use.

    The path need not exist; it is what diagnostics and tracebacks report.
    Parsing is deferred so parser warnings are raised inside emit, where
    they are collected as diagnostics.
    """
    source: str
    path: str
    _root: ast.Module | None = field(default=None, init=False, repr=False)
    _diagnostics: list[Diagnostic] | None = field(default=None, init=False, repr=False)

    @classmethod
    def parse_text(cls, source: str, path: str = "") -> "SyntaxTree":
        return cls(source=source, path=path)

    def get_root(self) -> ast.Module | None:
        """Parsed module, or None if the source has syntax errors."""
        self._parse()
        return self._root

    @property
    def diagnostics(self) -> list[Diagnostic]:
        self._parse()
        return list(self._diagnostics)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def _parse(self) -> None:
        if self._diagnostics is not None:
            return
        self._diagnostics = []
        try:
            self._root = ast.parse(self.source, filename=self.path or "<unknown>")
        except SyntaxError as exc:
            self._diagnostics.append(Diagnostic(
                id=SYNTAX_ERROR,
                severity=DiagnosticSeverity.ERROR,
                message=f"{type(exc).__name__}: {exc.msg}",
                location=Location.from_one_based(self.path, exc.lineno, exc.offset),
            ))
        except ValueError as exc:
            # Null bytes in source
            self._diagnostics.append(Diagnostic(
                id=SYNTAX_ERROR,
                severity=DiagnosticSeverity.ERROR,
                message=str(exc),
                location=Location(path=self.path),
            ))
