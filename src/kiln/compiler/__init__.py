"""
Compiler — Generated template source to live classes.

Turns a TypeContext into a class defined in a fresh, collectible module,
or a TemplateCompilationException describing why it could not.
"""

from kiln.compiler.context import (
    CompilerConfig,
    TypeContext,
    create_context,
    generate_class_name,
)
from kiln.compiler.errors import (
    KilnError,
    InvalidArgumentError,
    UnsupportedReferenceKindError,
    IllegalStateError,
    CompilerError,
    CompilationData,
    TemplateCompilationException,
)
from kiln.compiler.references import (
    CompilerReference,
    ModuleReference,
    FileReference,
    StreamReference,
    BytesReference,
    MetadataReference,
    ReferenceResolver,
    DefaultReferenceResolver,
    resolve,
)
from kiln.compiler.type_names import (
    DYNAMIC_MODEL_TYPE,
    build_type_name,
    resolve_type_name,
)
from kiln.compiler.syntax import (
    Diagnostic,
    Location,
    SyntaxTree,
)
from kiln.compiler.compilation import (
    Compilation,
    CompilationOptions,
    EmitResult,
    ModuleBuilder,
    define_dynamic_module,
)
from kiln.compiler.backend import (
    CompilerBackend,
    PythonBackend,
)
from kiln.compiler.compiler import (
    DYNAMIC_TEMPLATE_NAMESPACE,
    TemplateCompiler,
    create_compiler,
    to_compiler_error,
)

__all__ = [
    # Context
    "CompilerConfig",
    "TypeContext",
    "create_context",
    "generate_class_name",
    # Errors
    "KilnError",
    "InvalidArgumentError",
    "UnsupportedReferenceKindError",
    "IllegalStateError",
    "CompilerError",
    "CompilationData",
    "TemplateCompilationException",
    # References
    "CompilerReference",
    "ModuleReference",
    "FileReference",
    "StreamReference",
    "BytesReference",
    "MetadataReference",
    "ReferenceResolver",
    "DefaultReferenceResolver",
    "resolve",
    # Type names
    "DYNAMIC_MODEL_TYPE",
    "build_type_name",
    "resolve_type_name",
    # Syntax and compilation
    "Diagnostic",
    "Location",
    "SyntaxTree",
    "Compilation",
    "CompilationOptions",
    "EmitResult",
    "ModuleBuilder",
    "define_dynamic_module",
    # Backend
    "CompilerBackend",
    "PythonBackend",
    # Compiler
    "DYNAMIC_TEMPLATE_NAMESPACE",
    "TemplateCompiler",
    "create_compiler",
    "to_compiler_error",
]
