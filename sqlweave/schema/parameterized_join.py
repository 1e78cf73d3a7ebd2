"""Parameter definitions for parameterized joins, and condition rendering."""

import enum
import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from ..errors import UnknownReference

_PARAM_MARKER = re.compile(r"\$param_([A-Za-z_][A-Za-z0-9_]*)")


class ParameterType(str, enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ATOM = "atom"
    """A symbol-like string (interned); strings coerce to it."""


class Parameter(BaseModel):
    """A typed parameter token parsed from ``join:param1:param2.field``."""

    model_config = {"frozen": True}

    type: ParameterType
    value: Any


class ParameterDefinition(BaseModel):
    """Declared parameter of a join, matched positionally against provided tokens."""

    model_config = {"frozen": True}

    name: str
    type: ParameterType = ParameterType.STRING
    required: bool = False
    default: Any = None
    description: Optional[str] = None


class ValidatedParameter(BaseModel):
    """A parameter after positional matching, defaulting and type coercion."""

    model_config = {"frozen": True}

    name: str
    value: Any
    type: ParameterType


def parameter_signature(parameters: Iterable[Parameter]) -> str:
    """Join parameter values with ``:`` (e.g. ``electronics:25.0:true``), for identification."""
    def render(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    return ":".join(render(parameter.value) for parameter in parameters)


def parameterized_condition(template: str, validated: Iterable[ValidatedParameter]):
    """Render a condition template as a fragment, each ``$param_<name>`` becoming a ``Param``.

    Raises:
        UnknownReference: If the template names a parameter that was not validated.
    """
    from ..fragments import Param, Seq
    values = {parameter.name: parameter.value for parameter in validated}
    parts: list[Any] = []
    position = 0
    for match in _PARAM_MARKER.finditer(template):
        name = match.group(1)
        if name not in values:
            raise UnknownReference(
                f"Unknown parameter `$param_{name}` in join condition",
                {"parameter": name, "available": sorted(values)},
            )
        parts.append(template[position:match.start()])
        parts.append(Param(value=values[name]))
        position = match.end()
    parts.append(template[position:])
    return Seq(parts=[part for part in parts if part != ""])
