"""AMP Sanitizer - Convert post content into valid AMP markup."""

from .exceptions import AmpSanitizerError, ConfigurationError, ParseError
from .registry import HandlerRegistry
from .sanitizer import ContentSanitizer, SanitizationResult, convert_content, sanitize_document
from .scripts import ScriptDescriptor, ScriptMetadataResolver, ScriptRegistry

__version__ = "1.0.0"

__all__ = [
    "AmpSanitizerError",
    "ConfigurationError",
    "ContentSanitizer",
    "HandlerRegistry",
    "ParseError",
    "SanitizationResult",
    "ScriptDescriptor",
    "ScriptMetadataResolver",
    "ScriptRegistry",
    "convert_content",
    "sanitize_document",
]
