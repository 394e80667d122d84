"""Exceptions raised by the AMP content conversion pipeline."""


class AmpSanitizerError(Exception):
    """Base class for all conversion errors."""

    pass


class ParseError(AmpSanitizerError):
    """Raised when content cannot be parsed into a document."""

    pass


class ConfigurationError(AmpSanitizerError):
    """Raised when configuration is invalid."""

    pass
