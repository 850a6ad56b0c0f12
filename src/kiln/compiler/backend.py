"""
Compiler Backend — Language-specific capabilities used by the compiler.

The compiler drives any object satisfying CompilerBackend. PythonBackend
compiles Python source with the interpreter's own parser and compiler.
"""

import typing
from typing import Any, Protocol, runtime_checkable

import kiln.templates
from kiln.vocabulary import OutputKind
from kiln.compiler.compilation import Compilation, CompilationOptions
from kiln.compiler.context import TypeContext
from kiln.compiler.references import CompilerReference, ModuleReference
from kiln.compiler.syntax import SyntaxTree
from kiln.compiler.type_names import build_type_name


@runtime_checkable
class CompilerBackend(Protocol):
    """
    Protocol for compiler backends.

    Backends must provide:
    - source_file_extension: extension of the scratch source file
    - get_syntax_tree(): parse source under a virtual path
    - get_empty_compilation(): a compilation with nothing in it
    - create_options(): options for a context
    - build_type_name(): source name of a template base for a model
    - include_references(): references every compilation gets
    """

    source_file_extension: str

    def get_syntax_tree(self, source_code: str, source_code_path: str) -> SyntaxTree:
        ...

    def get_empty_compilation(self, assembly_name: str) -> Compilation:
        ...

    def create_options(self, context: TypeContext) -> CompilationOptions:
        ...

    def build_type_name(self, template_type: Any, model_type: Any) -> str:
        ...

    def include_references(self) -> list[CompilerReference]:
        ...


class PythonBackend:
    """Backend compiling Python source in-process."""

    source_file_extension = "py"

    def get_syntax_tree(self, source_code: str, source_code_path: str) -> SyntaxTree:
        return SyntaxTree.parse_text(source_code, path=source_code_path)

    def get_empty_compilation(self, assembly_name: str) -> Compilation:
        return Compilation.create(assembly_name)

    def create_options(self, context: TypeContext) -> CompilationOptions:
        return (
            CompilationOptions(OutputKind.DYNAMICALLY_LINKED_LIBRARY)
            .with_usings(sorted(context.namespaces))
        )

    def build_type_name(self, template_type: Any, model_type: Any) -> str:
        return build_type_name(template_type, model_type)

    def include_references(self) -> list[CompilerReference]:
        # Template base classes, and typing for untyped (typing.Any) models
        return [ModuleReference(kiln.templates), ModuleReference(typing)]
