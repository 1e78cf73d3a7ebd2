"""Subfilters: predicates over related tables, compiled to EXISTS / IN / aggregation SQL.

A relationship path (``"film.category.name"``) and a filter value (``"Action"``,
``["R", "PG-13"]``, ``(">", 2000)``, ``("count", ">", 5)``...) are parsed into a
:class:`Spec`, resolved into a join chain against a registered domain, collected
in a persistent :class:`Registry` and compiled by :func:`generate`.
"""

from .join_path_resolver import JoinResolution, resolve, validate_path
from .parser import parse, parse_compound, parse_relationship_path
from .registry import Analysis, CompoundOp, JoinComplexity, Registry
from .spec import (
    Aggregation,
    Comparison,
    CompoundSpec,
    CompoundType,
    Equality,
    InList,
    Range,
    RelationshipPath,
    Spec,
    Strategy,
    Temporal,
    TemporalKind,
)
from .sql import compile_subfilter, generate, generate_for_subfilter, generate_fragment

__all__ = [
    "Aggregation",
    "Analysis",
    "Comparison",
    "CompoundOp",
    "CompoundSpec",
    "CompoundType",
    "Equality",
    "InList",
    "JoinComplexity",
    "JoinResolution",
    "Range",
    "Registry",
    "RelationshipPath",
    "Spec",
    "Strategy",
    "Temporal",
    "TemporalKind",
    "compile_subfilter",
    "generate",
    "generate_for_subfilter",
    "generate_fragment",
    "parse",
    "parse_compound",
    "parse_relationship_path",
    "resolve",
    "validate_path",
]
