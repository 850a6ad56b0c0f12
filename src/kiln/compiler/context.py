"""
Compilation Context — Per-call input for compiling one template.

The source generator produces the source text and the class name; the
context bundles them with namespace imports and references. Contexts are
immutable and live for a single compile call.
"""

import os
import tempfile
from dataclasses import dataclass
from typing import Any, Iterable
from uuid import uuid4

from kiln.compiler.references import CompilerReference


@dataclass
class CompilerConfig:
    """Configuration for the compiler service."""
    temp_root: str | None = None  # Falls back to KILN_TEMP_DIR, then the system temp dir
    tmp_prefix: str = "kiln_"
    default_namespaces: tuple[str, ...] = ("kiln.templates",)

    def resolve_temp_root(self) -> str:
        return self.temp_root or os.environ.get("KILN_TEMP_DIR") or tempfile.gettempdir()


@dataclass(frozen=True)
class TypeContext:
    """
    Everything needed to compile one template class.

    ``template_content`` is the original markup, kept only for error
    reports. ``template_type`` and ``model_type`` describe what the
    generated class derives from and are not used by the compile itself.
    """
    source_code: str
    class_name: str
    namespaces: frozenset[str] = frozenset()
    template_content: Any = None
    references: tuple[CompilerReference, ...] = ()
    template_type: type | None = None
    model_type: Any = None

    def with_source_code(self, source_code: str) -> "TypeContext":
        """Return copy with new source code."""
        return TypeContext(
            source_code=source_code,
            class_name=self.class_name,
            namespaces=self.namespaces,
            template_content=self.template_content,
            references=self.references,
            template_type=self.template_type,
            model_type=self.model_type,
        )


def generate_class_name() -> str:
    """Unique name for a generated template class."""
    return f"Template_{uuid4().hex}"


def create_context(
    source_code: str,
    class_name: str | None = None,
    namespaces: Iterable[str] | None = None,
    references: Iterable[Any] = (),
    config: CompilerConfig | None = None,
    **kwargs,
) -> TypeContext:
    """
    Factory for compile contexts.

    Omitted namespaces default to the configured ones; references may be
    given as modules, paths or CompilerReference instances.
    """
    config = config or CompilerConfig()
    return TypeContext(
        source_code=source_code,
        class_name=class_name or generate_class_name(),
        namespaces=frozenset(config.default_namespaces if namespaces is None else namespaces),
        references=tuple(CompilerReference.from_(r) for r in references),
        **kwargs,
    )
