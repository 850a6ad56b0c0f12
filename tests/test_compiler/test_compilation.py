"""Tests for syntax trees, options and in-memory emission."""

import sys

import pytest

from kiln.vocabulary import DiagnosticSeverity, ModuleAccess, OutputKind
from kiln.compiler import (
    Compilation,
    CompilationOptions,
    MetadataReference,
    PythonBackend,
    SyntaxTree,
    create_context,
    define_dynamic_module,
)


NAMESPACE = "kiln.test"


def emit(source: str, path: str = "unit.py", usings=(), references=(), **kwargs):
    """Emit source into a fresh collectible module."""
    builder = define_dynamic_module("kiln.test.Unit", NAMESPACE)
    compilation = (
        Compilation.create("kiln.test.Unit")
        .add_syntax_trees(SyntaxTree.parse_text(source, path))
        .add_references(references)
        .with_options(CompilationOptions(usings=tuple(usings), **kwargs))
    )
    return compilation.emit(builder), builder


class TestSyntaxTree:
    """Parsing never raises; problems become diagnostics."""

    def test_valid_source(self):
        tree = SyntaxTree.parse_text("x = 1\n", "a.py")
        assert tree.get_root() is not None
        assert tree.diagnostics == []

    def test_malformed_source_does_not_raise(self):
        tree = SyntaxTree.parse_text("def broken(:\n", "a.py")
        assert tree.get_root() is None
        assert tree.has_errors
        assert tree.diagnostics[0].id == "KL1001"
        assert tree.diagnostics[0].location.path == "a.py"
        assert tree.diagnostics[0].location.line == 0

    def test_path_need_not_exist(self, tmp_path):
        tree = PythonBackend().get_syntax_tree("x = 1\n", str(tmp_path / "nowhere.py"))
        assert tree.path == str(tmp_path / "nowhere.py")
        assert not tree.has_errors


class TestCompilationOptions:
    """Tests for options and the options builder."""

    def test_builder_produces_library(self):
        context = create_context("", namespaces=["b", "a"])
        options = PythonBackend().create_options(context)
        assert options.output_kind == OutputKind.DYNAMICALLY_LINKED_LIBRARY
        assert options.usings == ("a", "b")

    def test_options_are_immutable(self):
        options = CompilationOptions()
        changed = options.with_output_kind(OutputKind.CONSOLE_APPLICATION)
        assert options.output_kind == OutputKind.DYNAMICALLY_LINKED_LIBRARY
        assert changed.output_kind == OutputKind.CONSOLE_APPLICATION


class TestCompilation:
    """Tests for the compilation unit."""

    def test_builders_return_new_units(self):
        empty = Compilation.create("m")
        full = empty.add_syntax_trees(SyntaxTree.parse_text("", "m.py"))
        assert empty.syntax_trees == ()
        assert len(full.syntax_trees) == 1

    def test_emit_defines_types(self):
        result, builder = emit("class Widget:\n    pass\n")
        assert result.success
        assert result.diagnostics == ()
        widget = builder.get_type("kiln.test.Widget")
        assert widget is not None
        assert widget.__module__ == NAMESPACE

    def test_get_type_outside_namespace(self):
        _, builder = emit("class Widget:\n    pass\n")
        assert builder.get_type("other.Widget") is None
        assert builder.get_type("kiln.test.Missing") is None

    def test_get_type_nested(self):
        _, builder = emit("class Outer:\n    class Inner:\n        pass\n")
        assert builder.get_type("kiln.test.Outer.Inner").__qualname__ == "Outer.Inner"

    def test_get_type_ignores_non_types(self):
        _, builder = emit("value = 3\n")
        assert builder.get_type("kiln.test.value") is None

    def test_library_does_not_run_main_block(self):
        result, builder = emit(
            "ran = False\n"
            "if __name__ == '__main__':\n"
            "    ran = True\n"
        )
        assert result.success
        assert builder.module.ran is False

    def test_syntax_error_is_diagnostic(self):
        result, _ = emit("x = (\n")
        assert not result.success
        assert result.diagnostics[0].severity == DiagnosticSeverity.ERROR

    def test_compile_stage_error(self):
        """'return' outside a function parses but does not compile."""
        result, _ = emit("x = 1\nreturn x\n")
        assert not result.success
        assert result.diagnostics[0].id == "KL1002"
        assert result.diagnostics[0].location.line == 1

    def test_runtime_error_location(self):
        result, _ = emit("a = 1\nb = 2\nmissing()\n", path="unit.py")
        assert not result.success
        (diag,) = result.diagnostics
        assert diag.id == "KL2001"
        assert "NameError" in diag.message
        assert (diag.location.path, diag.location.line, diag.location.column) == ("unit.py", 2, 0)

    def test_warning_does_not_fail(self):
        result, _ = emit("x = 1\nif x is 1:\n    pass\n")
        assert result.success
        (diag,) = result.diagnostics
        assert diag.severity == DiagnosticSeverity.WARNING
        assert diag.location.line == 1

    def test_unrelated_warning_is_not_a_diagnostic(self):
        """Warnings attributed to other files pass through to the host."""
        with pytest.warns(UserWarning, match="elsewhere"):
            result, _ = emit(
                "warnings.warn_explicit('elsewhere', UserWarning, 'other.py', 1)\n",
                references=[MetadataReference.from_name("warnings")],
            )
        assert result.success
        assert result.diagnostics == ()

    def test_module_level_exit_is_a_diagnostic(self):
        result, _ = emit("raise SystemExit(0)\n")
        assert not result.success
        (diag,) = result.diagnostics
        assert diag.id == "KL2001"
        assert diag.message.startswith("SystemExit")

    def test_reference_bound_by_top_level_package(self):
        result, builder = emit(
            "import_free = json.dumps([1])\n",
            references=[MetadataReference.from_name("json")],
        )
        assert result.success
        assert builder.module.import_free == "[1]"

    def test_unresolvable_reference(self):
        result, _ = emit("", references=[MetadataReference.from_name("kiln_no_such_module")])
        assert not result.success
        assert result.diagnostics[0].id == "KL0006"

    def test_using_imports_public_names(self):
        result, builder = emit(
            "out = dumps({})\n",
            usings=["json"],
            references=[MetadataReference.from_name("json")],
        )
        assert result.success
        assert builder.module.out == "{}"

    def test_using_requires_reference(self):
        result, _ = emit("", usings=["json"])
        assert not result.success
        assert result.diagnostics[0].id == "KL0246"

    def test_using_submodule_of_reference(self):
        result, _ = emit(
            "out = JSONDecoder\n",
            usings=["json.decoder"],
            references=[MetadataReference.from_name("json")],
        )
        assert result.success


class TestModuleAccess:
    """Collectible modules stay out of sys.modules."""

    def test_run_and_collect_is_private(self):
        builder = define_dynamic_module("kiln.test.Private", NAMESPACE)
        assert builder.is_collectible
        assert "kiln.test.Private" not in sys.modules

    def test_run_pins_module(self):
        builder = define_dynamic_module("kiln.test.Pinned", NAMESPACE, ModuleAccess.RUN)
        try:
            assert not builder.is_collectible
            result = Compilation.create("kiln.test.Pinned").emit(builder)
            assert result.success
            assert result.is_uncollectible
        finally:
            sys.modules.pop("kiln.test.Pinned", None)
