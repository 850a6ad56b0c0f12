"""
Shared fixtures for kiln tests.
"""

import pytest

from kiln.compiler import CompilerConfig, create_compiler, create_context
from kiln.observability import reset_metrics


def template_source(
    class_name: str,
    body: str = "        self.write_literal('hello')\n",
    base: str = "TemplateBase[dict]",
) -> str:
    """Minimal generated source defining one template class."""
    return (
        f"class {class_name}({base}):\n"
        f"    def execute(self):\n"
        f"{body}"
    )


@pytest.fixture(autouse=True)
def clean_metrics():
    """Reset global metrics around each test."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def config(tmp_path):
    """Compiler config writing scratch directories under tmp_path."""
    return CompilerConfig(temp_root=str(tmp_path))


@pytest.fixture
def compiler(config):
    """Template compiler using the Python backend."""
    return create_compiler(config=config)


@pytest.fixture
def make_context(config):
    """Build a context for a class name and template body."""
    def _make(class_name: str = "Greeting", body: str | None = None, **kwargs):
        source = kwargs.pop("source_code", None)
        if source is None:
            source = (
                template_source(class_name) if body is None
                else template_source(class_name, body)
            )
        return create_context(source, class_name=class_name, config=config, **kwargs)
    return _make


@pytest.fixture
def source_for():
    """The template_source helper, for tests that build source by hand."""
    return template_source
