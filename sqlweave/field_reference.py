"""Field references, with optional join parameters.

Accepted forms:

- ``title``: a field of the base table (simple)
- ``posts.title``: a field reached through the ``posts`` join (qualified)
- ``products:electronics:25.0:true.name``: the same, with typed join parameters (parameterized)
- ``posts[title]``: legacy bracket notation

Parameter tokens are typed by shape, first match wins: ``true``/``false``,
float (``-?\\d+\\.\\d+``), integer (``-?\\d+``), single or double quoted string,
bare identifier (a string). Anything else is rejected.
"""

from __future__ import annotations
import enum
import logging
import re
import sys
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from .errors import MissingParameter, ParameterFormatError, ParameterTypeError, ParseError
from .schema import Parameter, ParameterDefinition, ParameterType, ValidatedParameter

logger = logging.getLogger(__name__)

_BRACKET = re.compile(r"^(.+?)\[([^\]]+)\]$")
_FLOAT = re.compile(r"^-?\d+\.\d+$")
_INTEGER = re.compile(r"^-?\d+$")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


class FieldReferenceKind(str, enum.Enum):
    SIMPLE = "simple"
    QUALIFIED = "qualified"
    PARAMETERIZED = "parameterized"
    BRACKET_LEGACY = "bracket_legacy"


class FieldReference(BaseModel):
    model_config = {"frozen": True}

    kind: FieldReferenceKind
    field: str
    join: Optional[str] = None
    parameters: tuple[Parameter, ...] = ()


def parse_single_parameter(token: str) -> Parameter:
    """Type one ``:``-separated parameter token.

    Raises:
        ParameterFormatError: If the token has none of the accepted shapes.
    """
    if token == "true":
        return Parameter(type=ParameterType.BOOLEAN, value=True)
    if token == "false":
        return Parameter(type=ParameterType.BOOLEAN, value=False)
    if _FLOAT.match(token):
        return Parameter(type=ParameterType.FLOAT, value=float(token))
    if _INTEGER.match(token):
        return Parameter(type=ParameterType.INTEGER, value=int(token))
    for quote in ("'", '"'):
        if len(token) >= 2 and token.startswith(quote) and token.endswith(quote):
            return Parameter(type=ParameterType.STRING, value=token[1:-1].replace("\\" + quote, quote))
    if _IDENTIFIER.match(token):
        return Parameter(type=ParameterType.STRING, value=token)
    raise ParameterFormatError(
        f"Invalid parameter format: '{token}'. Parameters must be boolean literals, "
        "numbers, quoted strings, or valid identifiers.",
        {"parameter": token},
    )


def _split_tokens(join_string: str) -> list[str]:
    """Split on ``:`` outside of quoted strings."""
    tokens, current, quote, escaped = [], [], None, False
    for char in join_string:
        if quote is not None:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
        elif char in "'\"" and not current:
            quote = char
            current.append(char)
        elif char == ":":
            tokens.append("".join(current))
            current = []
        else:
            current.append(char)
    tokens.append("".join(current))
    return tokens


def parse_join_with_parameters(join_string: str) -> tuple[str, list[Parameter]]:
    """Split ``join:param1:param2`` into the join name and its typed parameters."""
    name, *tokens = _split_tokens(join_string)
    return name, [parse_single_parameter(token) for token in tokens]


def _split_join_and_field(reference: str) -> Optional[tuple[str, str]]:
    """Split at the first ``.`` that is neither quoted nor the decimal point of a float parameter."""
    quote, escaped, token_start = None, False, 0
    for index, char in enumerate(reference):
        if quote is not None:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
        elif char in "'\"" and index == token_start:
            quote = char
        elif char == ":":
            token_start = index + 1
        elif char == ".":
            token = reference[token_start:index]
            is_decimal_point = (
                token_start > 0
                and _INTEGER.match(token)
                and index + 1 < len(reference)
                and reference[index + 1].isdigit()
            )
            if not is_decimal_point:
                return reference[:index], reference[index + 1:]
    return None


def parse_field_reference(reference: Any) -> FieldReference:
    """Classify and split a field reference.

    Raises:
        ParseError: If ``reference`` is not a non-empty string or is malformed.
        ParameterFormatError: If a join parameter token is invalid.
    """
    if isinstance(reference, enum.Enum):
        reference = reference.value
    if not isinstance(reference, str) or not reference:
        raise ParseError("Field reference must be a non-empty string", {"reference": reference})
    if "[" in reference and "]" in reference:
        match = _BRACKET.match(reference)
        if match is None:
            raise ParseError(f"Invalid bracket notation format: {reference}", {"reference": reference})
        return FieldReference(kind=FieldReferenceKind.BRACKET_LEGACY, join=match.group(1), field=match.group(2))
    split = _split_join_and_field(reference)
    if split is None:
        return FieldReference(kind=FieldReferenceKind.SIMPLE, field=reference)
    join_string, field = split
    if not join_string or not field:
        raise ParseError(f"Invalid dot notation format: {reference}", {"reference": reference})
    join, parameters = parse_join_with_parameters(join_string)
    if not parameters:
        return FieldReference(kind=FieldReferenceKind.QUALIFIED, join=join, field=field)
    return FieldReference(
        kind=FieldReferenceKind.PARAMETERIZED, join=join, field=field, parameters=tuple(parameters)
    )


def _coerce(parameter: Parameter, expected: ParameterType) -> Any:
    """Coerce ``parameter`` to ``expected``; raise ``ValueError`` with the reason otherwise."""
    provided, value = parameter.type, parameter.value
    if provided is expected:
        return value
    if provided is ParameterType.STRING and expected is ParameterType.ATOM:
        return sys.intern(value)
    if provided is ParameterType.INTEGER and expected is ParameterType.FLOAT:
        return float(value)
    if provided is ParameterType.STRING and expected is ParameterType.INTEGER:
        if _INTEGER.match(value):
            return int(value)
        raise ValueError(f"Cannot parse '{value}' as integer")
    if provided is ParameterType.STRING and expected is ParameterType.FLOAT:
        if _NUMBER.match(value):
            return float(value)
        raise ValueError(f"Cannot parse '{value}' as float")
    if provided is ParameterType.STRING and expected is ParameterType.BOOLEAN:
        lowered = value.lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise ValueError(f"Cannot parse '{value}' as boolean")
    raise ValueError(f"Expected {expected.value}, got {provided.value} '{value}'")


def validate_parameters(
    provided: Iterable[Parameter], definitions: Iterable[ParameterDefinition]
) -> list[ValidatedParameter]:
    """Match ``provided`` parameters positionally against ``definitions``.

    Missing positions take the definition's default. Extra provided parameters
    are ignored.

    Raises:
        MissingParameter: If a required parameter without default is missing.
        ParameterTypeError: If a parameter cannot be coerced to its declared type.
    """
    provided = list(provided)
    definitions = list(definitions)
    if len(provided) > len(definitions):
        logger.debug("Ignoring %d extra join parameter(s)", len(provided) - len(definitions))
    validated = []
    for index, definition in enumerate(definitions):
        position = index + 1
        if index >= len(provided):
            if definition.default is None and definition.required:
                raise MissingParameter(
                    f"Required parameter '{definition.name}' missing at position {position}",
                    {"parameter": definition.name, "position": position},
                )
            validated.append(ValidatedParameter(name=definition.name, value=definition.default, type=definition.type))
            continue
        try:
            value = _coerce(provided[index], definition.type)
        except ValueError as error:
            raise ParameterTypeError(
                f"Parameter '{definition.name}' at position {position}: {error}",
                {"parameter": definition.name, "position": position},
            ) from error
        validated.append(ValidatedParameter(name=definition.name, value=value, type=definition.type))
    return validated
