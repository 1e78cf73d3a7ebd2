"""Exception types raised while parsing, resolving and compiling queries.

All recoverable errors derive from :class:`SqlweaveError` (a ``ValueError``), grouped
by kind: configuration, parse and resolution errors. :class:`UsageError` is not a
:class:`SqlweaveError`; it signals a calling-sequence defect.
"""

from typing import Any, Optional


class SqlweaveError(ValueError):
    """Base for every recoverable error; carries a message and a details mapping."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# configuration errors

class ConfigurationError(SqlweaveError):
    """The domain configuration cannot satisfy the request."""


class UnknownDomain(ConfigurationError):
    """No domain is registered under the requested key."""


class UnresolvablePath(ConfigurationError):
    """A relationship path does not match any column, association or recipe."""


class UnknownReference(ConfigurationError):
    """A field or join name is not declared in the domain."""


# parse errors

class ParseError(SqlweaveError):
    """Input could not be parsed into a specification."""


class InvalidRelationshipPath(ParseError):
    pass


class UnsupportedFilterSpec(ParseError):
    pass


class InvalidOption(ParseError):
    pass


class ParameterFormatError(ParseError):
    pass


class ValuesValidationError(ParseError):
    pass


# resolution errors

class ResolutionError(SqlweaveError):
    """Parsed input is well-formed but cannot be resolved consistently."""


class DuplicateSubfilterId(ResolutionError):
    pass


class SubfilterNotFound(ResolutionError):
    pass


class JoinCycleError(ResolutionError):
    pass


class MissingParameter(ResolutionError):
    pass


class ParameterTypeError(ResolutionError):
    pass


# usage errors

class UsageError(RuntimeError):
    """Raised when the library is called out of sequence (e.g. un-validated input)."""
