"""sqlweave: compile declarative selections, filters, joins and subfilters to parameterized SQL."""

from .fragments import Cte, Param, Seq, Text, finalize, finalize_with_ctes
from .query import Query
from .schema import Domain, get_domain, register_domain, unregister_domain
from .subfilter import Registry
from .values_clause import create_values_clause

__all__ = [
    "Cte",
    "Domain",
    "Param",
    "Query",
    "Registry",
    "Seq",
    "Text",
    "create_values_clause",
    "finalize",
    "finalize_with_ctes",
    "get_domain",
    "register_domain",
    "unregister_domain",
]
