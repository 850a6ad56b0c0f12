"""
Type Names — Source-level names for template base types.

The generated source instantiates the template base with the model type,
e.g. ``kiln.templates.base.TemplateBase[int]``. Untyped templates get
``typing.Any`` as the model.
"""

import builtins
import types
import typing
from typing import Any

from kiln.compiler.errors import InvalidArgumentError

DYNAMIC_MODEL_TYPE = "typing.Any"


def resolve_type_name(tp: Any) -> str:
    """
    Canonical source name of a type.

    Builtins use their bare alias, everything else is qualified by module.
    Generic aliases and unions are rendered recursively.
    """
    if tp is None or tp is type(None):
        return "None"
    if tp is Ellipsis:
        return "..."
    if tp is typing.Any:
        return DYNAMIC_MODEL_TYPE

    if isinstance(tp, types.UnionType):
        return " | ".join(resolve_type_name(arg) for arg in typing.get_args(tp))

    origin = typing.get_origin(tp)
    if origin is not None:
        args = typing.get_args(tp)
        if origin is typing.Union:
            return " | ".join(resolve_type_name(arg) for arg in args)
        if origin is typing.Literal:
            return f"typing.Literal[{', '.join(repr(a) for a in args)}]"
        origin_name = _qualified_name(origin)
        if not args:
            return origin_name
        return f"{origin_name}[{', '.join(_argument_name(a) for a in args)}]"

    if isinstance(tp, type):
        return _qualified_name(tp)
    if isinstance(tp, typing.TypeVar):
        return tp.__name__

    # typing special forms such as typing.Any or typing.NoReturn
    name = getattr(tp, "_name", None) or getattr(tp, "__name__", None)
    if name and getattr(typing, name, None) is tp:
        return f"typing.{name}"
    raise InvalidArgumentError(f"Cannot name type {tp!r}")


def build_type_name(template_type: Any, model_type: Any = None) -> str:
    """
    Name of ``template_type`` instantiated with ``model_type``.

    Raises InvalidArgumentError if template_type is None. A template type
    without type parameters is returned unparameterized.
    """
    if template_type is None:
        raise InvalidArgumentError("template_type must not be None")

    # A parameterized alias names its generic definition
    template_type = typing.get_origin(template_type) or template_type
    template_name = _qualified_name(template_type)
    if not getattr(template_type, "__parameters__", ()):
        return template_name

    model_name = DYNAMIC_MODEL_TYPE if model_type is None else resolve_type_name(model_type)
    return f"{template_name}[{model_name}]"


def _argument_name(arg: Any) -> str:
    if isinstance(arg, list):
        # Callable[[a, b], r] stores its parameters as a list
        return f"[{', '.join(resolve_type_name(a) for a in arg)}]"
    return resolve_type_name(arg)


def _qualified_name(tp: Any) -> str:
    module = getattr(tp, "__module__", None)
    qualname = getattr(tp, "__qualname__", None) or getattr(tp, "__name__", None)
    if qualname is None:
        raise InvalidArgumentError(f"Type {tp!r} has no name")
    if module == "builtins" and getattr(builtins, qualname, None) is tp:
        return qualname
    if module is None:
        return qualname
    return f"{module}.{qualname}"
