"""
Template Base — Runtime base class for compiled templates.

Generated source subclasses ``TemplateBase[Model]`` and implements
``execute``, writing output through ``write`` and ``write_literal``.
"""

import html
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

TModel = TypeVar("TModel")


class TemplateBase(ABC, Generic[TModel]):
    """
    Base class of every compiled template.
    
    Usage:
        class Greeting(TemplateBase[dict]):
            def execute(self):
                self.write_literal("Hello, ")
                self.write(self.model["name"])
        
        Greeting().run({"name": "<world>"})  # 'Hello, &lt;world&gt;'
    """
    
    def __init__(self) -> None:
        self.model: TModel | None = None
        self._buffer: list[str] = []
    
    @abstractmethod
    def execute(self) -> None:
        """Render the template body into the output buffer."""
    
    def write(self, value: Any) -> None:
        """Write a value, HTML-escaped. None writes nothing."""
        if value is None:
            return
        self._buffer.append(html.escape(str(value)))
    
    def write_literal(self, text: str) -> None:
        """Write markup verbatim."""
        self._buffer.append(text)
    
    def run(self, model: TModel | None = None) -> str:
        """Execute against ``model`` and return the rendered text."""
        self.model = model
        self._buffer = []
        self.execute()
        return "".join(self._buffer)
