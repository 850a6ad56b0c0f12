"""
Vocabulary enums — the shared language of the compiler pipeline.

All enumerated types referenced by diagnostics, options and references.
"""

from enum import Enum


# =============================================================================
# DIAGNOSTICS
# =============================================================================

class DiagnosticSeverity(str, Enum):
    """
    Severity reported by the backend for a diagnostic.
    
    Only ERROR fails a compilation; everything else is surfaced as a warning.
    """
    HIDDEN = "HIDDEN"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


# =============================================================================
# COMPILATION
# =============================================================================

class OutputKind(str, Enum):
    """
    Kind of module a compilation produces.
    
    A library runs its body with ``__name__`` set to the template namespace,
    so ``if __name__ == "__main__"`` guards stay inert.
    """
    DYNAMICALLY_LINKED_LIBRARY = "DYNAMICALLY_LINKED_LIBRARY"
    CONSOLE_APPLICATION = "CONSOLE_APPLICATION"


class ModuleAccess(str, Enum):
    """
    Lifetime of a dynamically defined module.
    
    RUN registers the module in ``sys.modules`` and pins it for the process
    lifetime. RUN_AND_COLLECT keeps it private so it can be reclaimed.
    """
    RUN = "RUN"
    RUN_AND_COLLECT = "RUN_AND_COLLECT"


# =============================================================================
# REFERENCES
# =============================================================================

class ReferenceKind(str, Enum):
    """Physical form a compiler reference is supplied in."""
    MODULE = "MODULE"      # Loaded module object
    FILE = "FILE"          # Path to a .py file or package directory
    STREAM = "STREAM"      # Binary stream (unsupported)
    BYTES = "BYTES"        # Raw byte buffer (unsupported)
