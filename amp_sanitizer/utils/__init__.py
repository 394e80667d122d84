"""Utility modules for the converter."""

from .http import HTTPClient, SSRFError, validate_url

__all__ = [
    "HTTPClient",
    "SSRFError",
    "validate_url",
]
