"""
Compilation — Immutable compilation units and in-memory emission.

A Compilation gathers syntax trees, references and options. emit() runs it
into a ModuleBuilder: references are bound, namespace imports applied, the
trees compiled to bytecode and executed in the fresh module. Every problem
along the way is a Diagnostic; emit() itself does not raise for bad source.
"""

import importlib
import os
import sys
import threading
import traceback
import types
import warnings
from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from kiln.vocabulary import DiagnosticSeverity, ModuleAccess, OutputKind
from kiln.compiler.references import MetadataReference, binding_for
from kiln.compiler.syntax import (
    COMPILE_ERROR,
    NO_LOCATION,
    RUNTIME_ERROR,
    UNRESOLVED_NAMESPACE,
    UNRESOLVED_REFERENCE,
    WARNING,
    Diagnostic,
    Location,
    SyntaxTree,
)

# Warning filters are process-wide; emits take turns capturing them.
_EMIT_LOCK = threading.RLock()


# =============================================================================
# OPTIONS
# =============================================================================

@dataclass(frozen=True)
class CompilationOptions:
    """Backend settings for one compilation."""
    output_kind: OutputKind = OutputKind.DYNAMICALLY_LINKED_LIBRARY
    usings: tuple[str, ...] = ()
    optimize: int = -1  # As for compile(): -1 follows the interpreter

    def with_output_kind(self, output_kind: OutputKind) -> "CompilationOptions":
        return replace(self, output_kind=output_kind)

    def with_usings(self, usings: Iterable[str]) -> "CompilationOptions":
        return replace(self, usings=tuple(usings))


# =============================================================================
# DYNAMIC MODULES
# =============================================================================

class ModuleBuilder:
    """
    A module defined at runtime for one emit.

    With RUN_AND_COLLECT the module is referenced only by what it defines and
    is reclaimed with them. RUN registers it in ``sys.modules`` under its name,
    which pins it for the life of the process.
    """

    def __init__(self, name: str, namespace: str, access: ModuleAccess):
        self.name = name
        self.namespace = namespace
        self.access = access
        self.module = types.ModuleType(namespace)
        if access == ModuleAccess.RUN:
            sys.modules[name] = self.module

    @property
    def is_collectible(self) -> bool:
        return sys.modules.get(self.name) is not self.module

    def get_type(self, qualified_name: str) -> type | None:
        """Find a class by ``<namespace>.<qualname>``, or None."""
        prefix = f"{self.namespace}."
        if not qualified_name.startswith(prefix):
            return None

        obj: Any = self.module
        for part in qualified_name[len(prefix):].split("."):
            obj = vars(obj).get(part)
            if obj is None:
                return None
        return obj if isinstance(obj, type) else None


def define_dynamic_module(
    name: str,
    namespace: str,
    access: ModuleAccess = ModuleAccess.RUN_AND_COLLECT,
) -> ModuleBuilder:
    """Create a new, empty dynamic module."""
    return ModuleBuilder(name, namespace, access)


# =============================================================================
# COMPILATION
# =============================================================================

@dataclass(frozen=True)
class EmitResult:
    """Outcome of an emit."""
    success: bool
    diagnostics: tuple[Diagnostic, ...] = ()
    is_uncollectible: bool = False


@dataclass(frozen=True)
class Compilation:
    """
    Immutable compilation unit.

    Usage:
        compilation = (
            Compilation.create("kiln.dynamic.Template_1")
            .add_syntax_trees(SyntaxTree.parse_text(source, path))
            .add_references([MetadataReference.from_name("typing")])
            .with_options(CompilationOptions(usings=("kiln.templates",)))
        )
        result = compilation.emit(define_dynamic_module(name, namespace))
    """
    assembly_name: str
    syntax_trees: tuple[SyntaxTree, ...] = ()
    references: tuple[MetadataReference, ...] = ()
    options: CompilationOptions = field(default_factory=CompilationOptions)

    @classmethod
    def create(cls, assembly_name: str) -> "Compilation":
        return cls(assembly_name=assembly_name)

    def add_syntax_trees(self, *trees: SyntaxTree) -> "Compilation":
        return replace(self, syntax_trees=self.syntax_trees + tuple(trees))

    def add_references(self, references: Iterable[MetadataReference]) -> "Compilation":
        return replace(self, references=self.references + tuple(references))

    def with_options(self, options: CompilationOptions) -> "Compilation":
        return replace(self, options=options)

    def emit(self, builder: ModuleBuilder) -> EmitResult:
        """
        Run the compilation into ``builder``.

        Stages run in order and each appends its diagnostics, so the list
        keeps emission order. Code runs only if no earlier stage failed.

        Only warnings attributed to this compilation's sources or reference
        files become diagnostics. Anything else caught meanwhile (from other
        threads, or from deep inside an imported library) is re-issued to the
        host's warning machinery once the capture ends.
        """
        diagnostics: list[Diagnostic] = []
        foreign: list[warnings.WarningMessage] = []
        own_files = self._own_files()
        module = builder.module
        if self.options.output_kind == OutputKind.CONSOLE_APPLICATION:
            module.__name__ = "__main__"
        if self.syntax_trees:
            module.__file__ = self.syntax_trees[0].path

        def drain():
            _drain(caught, own_files, diagnostics, foreign)

        with _EMIT_LOCK, warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")

            loaded = self._bind_references(module, diagnostics)
            drain()
            self._import_usings(module, loaded, diagnostics)
            drain()
            code_objects = self._compile_trees(diagnostics)
            drain()

            if not any(d.is_error for d in diagnostics):
                self._execute(module, code_objects, diagnostics)
                drain()

        for message in foreign:
            warnings.warn_explicit(
                message.message, message.category, message.filename, message.lineno
            )

        success = not any(d.is_error for d in diagnostics)
        return EmitResult(
            success=success,
            diagnostics=tuple(diagnostics),
            is_uncollectible=success and not builder.is_collectible,
        )

    def _own_files(self) -> set[str]:
        files = {tree.path or "<unknown>" for tree in self.syntax_trees}
        for reference in self.references:
            if reference.location:
                files.add(reference.location)
                files.add(os.path.join(reference.location, "__init__.py"))
        return files

    def _bind_references(
        self, module: types.ModuleType, diagnostics: list[Diagnostic]
    ) -> list[types.ModuleType]:
        loaded = []
        for reference in self.references:
            try:
                referenced = reference.load()
            except (Exception, SystemExit) as exc:
                diagnostics.append(Diagnostic(
                    id=UNRESOLVED_REFERENCE,
                    severity=DiagnosticSeverity.ERROR,
                    message=(
                        f"Metadata reference '{reference.display}' could not be "
                        f"loaded: {type(exc).__name__}: {exc}"
                    ),
                ))
                continue
            name, bound = binding_for(referenced)
            vars(module)[name] = bound
            loaded.append(referenced)
        return loaded

    def _import_usings(
        self,
        module: types.ModuleType,
        loaded: list[types.ModuleType],
        diagnostics: list[Diagnostic],
    ) -> None:
        for namespace in self.options.usings:
            imported = _find_namespace(namespace, loaded)
            if imported is None:
                diagnostics.append(Diagnostic(
                    id=UNRESOLVED_NAMESPACE,
                    severity=DiagnosticSeverity.ERROR,
                    message=(
                        f"The namespace '{namespace}' could not be found "
                        f"(are you missing a reference?)"
                    ),
                ))
                continue
            vars(module).update(_public_names(imported))

    def _compile_trees(
        self, diagnostics: list[Diagnostic]
    ) -> list[types.CodeType]:
        code_objects = []
        for tree in self.syntax_trees:
            root = tree.get_root()
            diagnostics.extend(tree.diagnostics)
            if root is None:
                continue
            try:
                code_objects.append(compile(
                    root,
                    tree.path or "<unknown>",
                    "exec",
                    dont_inherit=True,
                    optimize=self.options.optimize,
                ))
            except SyntaxError as exc:
                diagnostics.append(Diagnostic(
                    id=COMPILE_ERROR,
                    severity=DiagnosticSeverity.ERROR,
                    message=f"{type(exc).__name__}: {exc.msg}",
                    location=Location.from_one_based(tree.path, exc.lineno, exc.offset),
                ))
        return code_objects

    def _execute(
        self,
        module: types.ModuleType,
        code_objects: list[types.CodeType],
        diagnostics: list[Diagnostic],
    ) -> None:
        sources = {tree.path or "<unknown>": tree.source for tree in self.syntax_trees}
        for code in code_objects:
            try:
                exec(code, vars(module))
            except (Exception, SystemExit) as exc:
                diagnostics.append(Diagnostic(
                    id=RUNTIME_ERROR,
                    severity=DiagnosticSeverity.ERROR,
                    message=f"{type(exc).__name__}: {exc}",
                    location=_traceback_location(exc, sources),
                ))
                return


def _find_namespace(
    namespace: str, loaded: list[types.ModuleType]
) -> types.ModuleType | None:
    """A namespace resolves if a reference is that module or shares its package."""
    for referenced in loaded:
        if referenced.__name__ == namespace:
            return referenced

    top = namespace.partition(".")[0]
    if any(m.__name__.partition(".")[0] == top for m in loaded):
        try:
            return importlib.import_module(namespace)
        except ImportError:
            return None
    return None


def _public_names(module: types.ModuleType) -> dict[str, Any]:
    """What ``from module import *`` would bind."""
    names = getattr(module, "__all__", None)
    if names is None:
        names = [n for n in vars(module) if not n.startswith("_")]
    return {name: getattr(module, name) for name in names if hasattr(module, name)}


def _traceback_location(exc: BaseException, sources: dict[str, str]) -> Location:
    """Innermost traceback frame that lies in compiled source."""
    frames = [f for f in traceback.extract_tb(exc.__traceback__) if f.filename in sources]
    if not frames:
        return NO_LOCATION
    frame = frames[-1]
    line = max((frame.lineno or 1) - 1, 0)
    colno = getattr(frame, "colno", None) or 0
    return Location(
        path=frame.filename,
        line=line,
        column=_char_column(sources[frame.filename], line, colno),
    )


def _char_column(source: str, line: int, byte_offset: int) -> int:
    """Convert a UTF-8 byte offset on ``line`` into a character offset."""
    lines = source.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if line >= len(lines):
        return byte_offset
    prefix = lines[line].encode("utf-8")[:byte_offset]
    return len(prefix.decode("utf-8", errors="ignore"))


def _drain(
    caught: list[warnings.WarningMessage],
    own_files: set[str],
    diagnostics: list[Diagnostic],
    foreign: list[warnings.WarningMessage],
) -> None:
    """Move recorded warnings into diagnostics, setting aside unrelated ones."""
    for message in caught:
        if str(message.filename) not in own_files:
            foreign.append(message)
            continue
        diagnostics.append(Diagnostic(
            id=WARNING,
            severity=DiagnosticSeverity.WARNING,
            message=f"{message.category.__name__}: {message.message}",
            location=Location.from_one_based(str(message.filename), message.lineno, None),
        ))
    caught.clear()
