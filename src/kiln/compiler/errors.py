"""
Compiler Errors — Structured error model for template compilation.

Every backend diagnostic becomes a CompilerError. A failed compile raises
TemplateCompilationException carrying the errors, the generated source and
the original template so the three can be read side by side.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# EXCEPTIONS
# =============================================================================

class KilnError(Exception):
    """Base class of every error raised by the compiler."""


class InvalidArgumentError(KilnError, ValueError):
    """A required input was missing or invalid."""


class UnsupportedReferenceKindError(KilnError, NotImplementedError):
    """A reference descriptor variant the resolver cannot turn into a reference."""


class IllegalStateError(KilnError, RuntimeError):
    """
    The engine reached a state that indicates a defect, not a user error.

    Raised when a successful emit produced a module that cannot be reclaimed.
    """


# =============================================================================
# ERROR RECORDS
# =============================================================================

class CompilerError(BaseModel):
    """
    One diagnostic reported while compiling a template.

    Line and column are 0-based.
    """
    model_config = ConfigDict(frozen=True)

    error_text: str = Field(..., description="Diagnostic message")
    file_name: str = Field("", description="Source file the diagnostic points at")
    line: int = Field(0, ge=0, description="0-based line")
    column: int = Field(0, ge=0, description="0-based column")
    error_number: str = Field(..., description="Diagnostic identifier, e.g. KL1001")
    is_warning: bool = Field(False, description="True for any non-error severity")

    def __str__(self) -> str:
        kind = "warning" if self.is_warning else "error"
        where = f"{self.file_name}({self.line + 1},{self.column + 1}): " if self.file_name else ""
        return f"{where}{kind} {self.error_number}: {self.error_text}"


@dataclass
class CompilationData:
    """
    Artifacts of one compile call, kept on success and failure alike.

    The scratch directory is not removed by the compiler. Whoever owns this
    object calls delete_all() (or uses it as a context manager) when done.
    """
    source_code: str | None
    tmp_folder: str | None
    warnings: list[CompilerError] = field(default_factory=list)

    def delete_all(self) -> None:
        """Remove the scratch directory and everything in it."""
        if self.tmp_folder and Path(self.tmp_folder).exists():
            shutil.rmtree(self.tmp_folder, ignore_errors=True)
        self.tmp_folder = None

    def __enter__(self) -> "CompilationData":
        return self

    def __exit__(self, *args) -> None:
        self.delete_all()


class TemplateCompilationException(KilnError):
    """
    Raised when the backend reports errors for a template.

    Attributes:
        compiler_errors: Every diagnostic in emission order, warnings included
        compilation_data: Generated source and scratch directory
        template: Original template content, before generation
    """

    def __init__(
        self,
        errors: list[CompilerError],
        compilation_data: CompilationData,
        template: Any = None,
    ):
        self.compiler_errors = list(errors)
        self.compilation_data = compilation_data
        self.template = template
        super().__init__(self._build_message())

    @property
    def errors(self) -> list[CompilerError]:
        return [e for e in self.compiler_errors if not e.is_warning]

    @property
    def warnings(self) -> list[CompilerError]:
        return [e for e in self.compiler_errors if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def _build_message(self) -> str:
        lines = ["Errors while compiling a template."]
        source_lines = (self.compilation_data.source_code or "").splitlines()

        for error in self.compiler_errors:
            lines.append(f" - {error}")
            if error.file_name and error.line < len(source_lines):
                lines.append(f"     | {source_lines[error.line].rstrip()}")

        if self.compilation_data.tmp_folder:
            lines.append(
                f"Temporary files of the compilation are in "
                f"{self.compilation_data.tmp_folder} (delete when done)."
            )
        if self.template is not None:
            lines.append(f"The template we tried to compile is:\n{self.template}")

        return "\n".join(lines)
