"""Tests for the compiler error model."""

import pytest
from pydantic import ValidationError

from kiln.vocabulary import DiagnosticSeverity
from kiln.compiler import (
    CompilationData,
    CompilerError,
    Diagnostic,
    KilnError,
    Location,
    TemplateCompilationException,
    to_compiler_error,
)


class TestCompilerError:
    """Tests for CompilerError records."""
    
    def test_str_is_one_based(self):
        error = CompilerError(
            error_text="NameError: name 'x' is not defined",
            file_name="t.py",
            line=2,
            column=4,
            error_number="KL2001",
        )
        assert str(error) == "t.py(3,5): error KL2001: NameError: name 'x' is not defined"
    
    def test_str_without_file(self):
        error = CompilerError(error_text="bad", error_number="KL0006")
        assert str(error) == "error KL0006: bad"
    
    def test_negative_line_rejected(self):
        with pytest.raises(ValidationError):
            CompilerError(error_text="x", error_number="KL1001", line=-1)
    
    def test_frozen(self):
        error = CompilerError(error_text="x", error_number="KL1001")
        with pytest.raises(ValidationError):
            error.line = 3


class TestToCompilerError:
    """Severity maps onto is_warning."""
    
    @pytest.mark.parametrize("severity, is_warning", [
        (DiagnosticSeverity.ERROR, False),
        (DiagnosticSeverity.WARNING, True),
        (DiagnosticSeverity.INFO, True),
        (DiagnosticSeverity.HIDDEN, True),
    ])
    def test_severity(self, severity, is_warning):
        diagnostic = Diagnostic("KL4001", severity, "msg", Location("a.py", 1, 2))
        error = to_compiler_error(diagnostic)
        assert error.is_warning is is_warning
        assert (error.file_name, error.line, error.column) == ("a.py", 1, 2)
        assert error.error_number == "KL4001"


class TestTemplateCompilationException:
    """Tests for the failure report."""
    
    @pytest.fixture
    def exception(self):
        errors = [
            CompilerError(error_text="careful", error_number="KL4001",
                          file_name="t.py", line=0, is_warning=True),
            CompilerError(error_text="boom", error_number="KL2001",
                          file_name="t.py", line=1),
        ]
        data = CompilationData("first = 1\nsecond()\n", "/tmp/kiln_x")
        return TemplateCompilationException(errors, data, "@second()")
    
    def test_is_kiln_error(self, exception):
        assert isinstance(exception, KilnError)
    
    def test_partitions_errors(self, exception):
        assert [e.error_text for e in exception.errors] == ["boom"]
        assert [e.error_text for e in exception.warnings] == ["careful"]
        assert exception.has_errors
    
    def test_message_shows_source_lines(self, exception):
        message = str(exception)
        assert "| second()" in message
        assert "| first = 1" in message
        assert "/tmp/kiln_x" in message
        assert "@second()" in message
    
    def test_keeps_order(self, exception):
        assert [e.error_number for e in exception.compiler_errors] == ["KL4001", "KL2001"]
