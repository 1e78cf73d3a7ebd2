"""Domain configuration: columns, joins, associations, join recipes and parameter definitions."""

from .association import Association
from .column import ColumnDef
from .domain import Domain, get_domain, register_domain, unregister_domain
from .join import JoinDef, JoinKind, JoinStep
from .parameterized_join import (
    Parameter,
    ParameterDefinition,
    ParameterType,
    ValidatedParameter,
    parameter_signature,
    parameterized_condition,
)

__all__ = [
    "Association",
    "ColumnDef",
    "Domain",
    "JoinDef",
    "JoinKind",
    "JoinStep",
    "Parameter",
    "ParameterDefinition",
    "ParameterType",
    "ValidatedParameter",
    "get_domain",
    "parameter_signature",
    "parameterized_condition",
    "register_domain",
    "unregister_domain",
]
