"""
Templates — Base classes compiled templates derive from.

Referenced by default in every compilation so generated source can name
``kiln.templates.TemplateBase`` fully qualified.
"""

from kiln.templates.base import (
    TModel,
    TemplateBase,
)

__all__ = [
    "TModel",
    "TemplateBase",
]
