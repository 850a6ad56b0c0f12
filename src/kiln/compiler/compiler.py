"""
Template Compiler — Compiles generated template source into a live class.

Pipeline per call:
1. Write the source to a fresh scratch directory (for diagnostics)
2. Resolve references
3. Parse, build options, assemble the compilation
4. Emit into a new collectible in-memory module
5. Translate diagnostics on failure, or resolve the class on success
"""

import shutil
import tempfile
import time
from pathlib import Path
from typing import Any

from kiln.vocabulary import DiagnosticSeverity, ModuleAccess, OutputKind
from kiln.observability import LogContext, compile_fields, get_logger, get_metrics
from kiln.compiler.backend import CompilerBackend, PythonBackend
from kiln.compiler.compilation import ModuleBuilder, define_dynamic_module
from kiln.compiler.context import CompilerConfig, TypeContext
from kiln.compiler.errors import (
    CompilationData,
    CompilerError,
    IllegalStateError,
    KilnError,
    TemplateCompilationException,
)
from kiln.compiler.references import (
    CompilerReference,
    DefaultReferenceResolver,
    MetadataReference,
    ReferenceResolver,
    resolve,
)
from kiln.compiler.syntax import MISSING_TYPE, Diagnostic

logger = get_logger("compiler")

# Namespace every compiled template class lives in
DYNAMIC_TEMPLATE_NAMESPACE = "kiln.dynamic"


def to_compiler_error(diagnostic: Diagnostic) -> CompilerError:
    """Translate a backend diagnostic. Anything but ERROR is a warning."""
    return CompilerError(
        error_text=diagnostic.message,
        file_name=diagnostic.location.path,
        line=diagnostic.location.line,
        column=diagnostic.location.column,
        error_number=diagnostic.id,
        is_warning=diagnostic.severity != DiagnosticSeverity.ERROR,
    )


class TemplateCompiler:
    """
    Compiles template source into classes loaded in this process.

    Holds no per-call state; concurrent compile() calls are independent as
    long as their contexts carry distinct class names.
    """

    dynamic_template_namespace = DYNAMIC_TEMPLATE_NAMESPACE

    def __init__(
        self,
        backend: CompilerBackend | None = None,
        config: CompilerConfig | None = None,
        reference_resolver: ReferenceResolver | None = None,
    ):
        self.backend = backend or PythonBackend()
        self.config = config or CompilerConfig()
        self.reference_resolver = reference_resolver or DefaultReferenceResolver()

    def build_type_name(self, template_type: Any, model_type: Any = None) -> str:
        """Source name of ``template_type`` instantiated for ``model_type``."""
        return self.backend.build_type_name(template_type, model_type)

    def get_module_name(self, context: TypeContext) -> str:
        return f"{self.dynamic_template_namespace}.{context.class_name}"

    def get_temporary_directory(self) -> str:
        """Create a new scratch directory. Callers own its removal."""
        return tempfile.mkdtemp(
            prefix=self.config.tmp_prefix,
            dir=self.config.resolve_temp_root(),
        )

    def get_all_references(self, context: TypeContext) -> list[CompilerReference]:
        return list(self.reference_resolver.get_references(
            context, self.backend.include_references()
        ))

    def define_module(self, module_name: str) -> ModuleBuilder:
        return define_dynamic_module(
            module_name,
            self.dynamic_template_namespace,
            ModuleAccess.RUN_AND_COLLECT,
        )

    def compile(self, context: TypeContext) -> tuple[type, CompilationData]:
        """
        Compile a context into its template class.

        Returns the class and the compilation data. Raises
        TemplateCompilationException when the source does not compile and
        IllegalStateError when the emitted module could not be reclaimed.
        """
        metrics = get_metrics()
        module_name = self.get_module_name(context)

        metrics.compilations_total.inc()
        metrics.active_compilations.inc()
        started = time.perf_counter()
        try:
            with LogContext(module_name):
                template_type, compilation_data = self._compile(context, module_name)
        except KilnError:
            metrics.compilations_failed.inc()
            raise
        finally:
            metrics.active_compilations.dec()
            metrics.compile_duration_seconds.observe(time.perf_counter() - started)

        metrics.compilations_success.inc()
        return template_type, compilation_data

    compile_type = compile

    def _compile(
        self, context: TypeContext, module_name: str
    ) -> tuple[type, CompilationData]:
        source_code = context.source_code

        tmp_dir = self.get_temporary_directory()
        source_file = Path(tmp_dir) / f"{module_name}.{self.backend.source_file_extension}"
        source_file.write_text(source_code, encoding="utf-8")
        logger.debug(
            "Wrote generated source",
            extra=compile_fields(class_name=context.class_name, tmp_folder=tmp_dir),
        )

        try:
            references: list[MetadataReference] = [
                resolve(reference) for reference in self.get_all_references(context)
            ]
        except KilnError:
            # No CompilationData owns the folder yet
            shutil.rmtree(tmp_dir, ignore_errors=True)
            raise
        logger.debug(
            f"Resolved {len(references)} references",
            extra=compile_fields(references=[r.display for r in references]),
        )

        syntax_tree = self.backend.get_syntax_tree(source_code, str(source_file))
        options = (
            self.backend.create_options(context)
            .with_output_kind(OutputKind.DYNAMICALLY_LINKED_LIBRARY)
        )
        compilation = (
            self.backend.get_empty_compilation(module_name)
            .add_syntax_trees(syntax_tree)
            .add_references(references)
            .with_options(options)
        )

        builder = self.define_module(module_name)
        result = compilation.emit(builder)
        compilation_data = CompilationData(source_code, tmp_dir)

        errors = [to_compiler_error(d) for d in result.diagnostics]
        self._record_diagnostics(errors)
        error_count = sum(not e.is_warning for e in errors)
        fields = compile_fields(
            class_name=context.class_name,
            tmp_folder=tmp_dir,
            errors=error_count,
            warnings=len(errors) - error_count,
        )

        if not result.success:
            logger.warning(f"Compilation failed with {error_count} error(s)", extra=fields)
            raise TemplateCompilationException(
                errors, compilation_data, context.template_content
            )
        if result.is_uncollectible:
            logger.error(f"Module {module_name} was emitted uncollectible", extra=fields)
            raise IllegalStateError("expected collectible module!")

        compilation_data.warnings = errors
        template_type = builder.get_type(
            f"{self.dynamic_template_namespace}.{context.class_name}"
        )
        if template_type is None:
            missing = CompilerError(
                error_text=(
                    f"The compiled source does not define class "
                    f"'{context.class_name}'"
                ),
                file_name=str(source_file),
                error_number=MISSING_TYPE,
            )
            raise TemplateCompilationException(
                [*errors, missing], compilation_data, context.template_content
            )

        logger.info(f"Compiled {template_type.__qualname__}", extra=fields)
        return template_type, compilation_data

    def _record_diagnostics(self, errors: list[CompilerError]) -> None:
        metrics = get_metrics()
        metrics.diagnostics_total.inc(len(errors))
        metrics.warnings_total.inc(sum(e.is_warning for e in errors))
        for error in errors:
            if error.is_warning:
                logger.debug(
                    f"Compiler warning: {error}",
                    extra=compile_fields(error_number=error.error_number, line=error.line),
                )


def create_compiler(
    config: CompilerConfig | None = None,
    reference_resolver: ReferenceResolver | None = None,
    backend: CompilerBackend | None = None,
) -> TemplateCompiler:
    """Factory for template compiler."""
    return TemplateCompiler(
        backend=backend,
        config=config,
        reference_resolver=reference_resolver,
    )
