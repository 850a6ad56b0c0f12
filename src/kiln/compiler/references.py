"""
References — External modules a compiled template depends on.

A CompilerReference describes how a dependency is supplied (module object,
path, stream or bytes). resolve() maps it onto a MetadataReference, the form
the backend consumes. Loading happens later, during emit, so a reference that
cannot be loaded is reported as a diagnostic rather than an exception.
"""

from abc import ABC, abstractmethod
import importlib
import importlib.util
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, BinaryIO, Iterable, Protocol, runtime_checkable

from kiln.vocabulary import ReferenceKind
from kiln.compiler.errors import UnsupportedReferenceKindError


# =============================================================================
# REFERENCE DESCRIPTORS
# =============================================================================

@dataclass(frozen=True)
class CompilerReference(ABC):
    """Tagged description of one dependency. Use a concrete variant."""

    @property
    @abstractmethod
    def kind(self) -> ReferenceKind:
        ...

    @staticmethod
    def from_(value: Any) -> "CompilerReference":
        """Pick the variant matching ``value``."""
        if isinstance(value, CompilerReference):
            return value
        if isinstance(value, ModuleType):
            return ModuleReference(value)
        if isinstance(value, (str, os.PathLike)):
            return FileReference(os.fspath(value))
        if isinstance(value, (bytes, bytearray, memoryview)):
            return BytesReference(bytes(value))
        if hasattr(value, "read"):
            return StreamReference(value)
        raise TypeError(f"Cannot build a compiler reference from {type(value).__name__}")


@dataclass(frozen=True)
class ModuleReference(CompilerReference):
    module: ModuleType

    @property
    def kind(self) -> ReferenceKind:
        return ReferenceKind.MODULE


@dataclass(frozen=True)
class FileReference(CompilerReference):
    path: str

    @property
    def kind(self) -> ReferenceKind:
        return ReferenceKind.FILE


@dataclass(frozen=True)
class StreamReference(CompilerReference):
    stream: BinaryIO

    @property
    def kind(self) -> ReferenceKind:
        return ReferenceKind.STREAM


@dataclass(frozen=True)
class BytesReference(CompilerReference):
    data: bytes

    @property
    def kind(self) -> ReferenceKind:
        return ReferenceKind.BYTES


# =============================================================================
# BACKEND REFERENCE
# =============================================================================

@dataclass(frozen=True)
class MetadataReference:
    """
    Backend-native reference: a live module, a module location, or an
    importable name.

    ``module`` is set for modules handed over in memory and wins over the
    other fields. ``location`` may point at a ``.py`` file or at a package
    directory.
    """
    name: str | None = None
    location: str | None = None
    module: ModuleType | None = None

    @classmethod
    def from_file(cls, location: str, name: str | None = None) -> "MetadataReference":
        return cls(name=name, location=location)

    @classmethod
    def from_name(cls, name: str) -> "MetadataReference":
        return cls(name=name)

    @classmethod
    def from_module(cls, module: ModuleType) -> "MetadataReference":
        return cls(
            name=module.__name__,
            location=getattr(module, "__file__", None),
            module=module,
        )

    @property
    def display(self) -> str:
        return self.location or self.name or "<unnamed>"

    def load(self) -> ModuleType:
        """
        Return the referenced module.

        A carried module is returned as is. An imported module with the same
        name and location is reused. A file nobody imported yet is executed
        into a fresh module that is not registered in ``sys.modules``.
        """
        if self.module is not None:
            return self.module
        if self.location is None:
            return sys.modules.get(self.name) or importlib.import_module(self.name)

        path = Path(self.location)
        search_locations = None
        if path.is_dir():
            search_locations = [str(path)]
            path = path / "__init__.py"
        if not path.is_file():
            raise FileNotFoundError(f"Metadata file '{self.location}' could not be found")

        name = self.name or _module_name_for(path)
        existing = sys.modules.get(name)
        if existing is not None and _same_file(getattr(existing, "__file__", None), path):
            return existing

        spec = importlib.util.spec_from_file_location(
            name, path, submodule_search_locations=search_locations
        )
        if spec is None or spec.loader is None:
            raise ImportError(f"No loader for metadata file '{self.location}'")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module


def binding_for(module: ModuleType) -> tuple[str, ModuleType]:
    """
    Name under which a loaded reference is visible to compiled code.

    Imported modules bind their top-level package, as ``import a.b`` does,
    so fully qualified names resolve. Private modules bind their last segment.
    """
    name = module.__name__
    if sys.modules.get(name) is module:
        top = name.partition(".")[0]
        return top, sys.modules[top]
    return name.rpartition(".")[2], module


def _module_name_for(path: Path) -> str:
    if path.name == "__init__.py":
        return path.parent.name
    return path.stem


def _same_file(left: str | None, right: Path) -> bool:
    if not left:
        return False
    try:
        return Path(left).resolve() == right.resolve()
    except OSError:
        return False


# =============================================================================
# RESOLUTION
# =============================================================================

def resolve(reference: CompilerReference) -> MetadataReference:
    """
    Map a descriptor onto a backend reference.

    Streams and raw bytes are not supported; callers supply modules or paths.
    """
    if isinstance(reference, ModuleReference):
        return MetadataReference.from_module(reference.module)
    if isinstance(reference, FileReference):
        return MetadataReference.from_file(reference.path)
    if isinstance(reference, StreamReference):
        raise UnsupportedReferenceKindError("Stream references are not supported")
    if isinstance(reference, BytesReference):
        raise UnsupportedReferenceKindError("Byte buffer references are not supported")
    raise TypeError(f"Unknown reference descriptor: {reference!r}")


@runtime_checkable
class ReferenceResolver(Protocol):
    """
    Decides which references a compilation gets.

    Receives the backend's include references and returns the full set.
    """

    def get_references(
        self,
        context: Any,
        include_references: Iterable[CompilerReference],
    ) -> Iterable[CompilerReference]:
        ...


class DefaultReferenceResolver:
    """Include references first, then the context's own, without duplicates."""

    def get_references(
        self,
        context: Any,
        include_references: Iterable[CompilerReference],
    ) -> list[CompilerReference]:
        references: list[CompilerReference] = []
        for reference in [*include_references, *context.references]:
            if reference not in references:
                references.append(reference)
        return references
