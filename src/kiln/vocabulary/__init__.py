"""
Vocabulary — Enumerated types forming the shared language of the compiler.
"""

from kiln.vocabulary.enums import (
    DiagnosticSeverity,
    OutputKind,
    ModuleAccess,
    ReferenceKind,
)

__all__ = [
    "DiagnosticSeverity",
    "OutputKind",
    "ModuleAccess",
    "ReferenceKind",
]
