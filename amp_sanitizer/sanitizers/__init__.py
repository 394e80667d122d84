"""Document sanitizers run by the content sanitizer."""

from ..exceptions import ConfigurationError
from .base import BaseSanitizer
from .embed import EmbedSanitizer
from .img import ImgSanitizer
from .style import StyleSanitizer
from .tag_and_attribute import TagAndAttributeSanitizer

SANITIZERS = {
    "embed": EmbedSanitizer,
    "img": ImgSanitizer,
    "style": StyleSanitizer,
    "tag_and_attribute": TagAndAttributeSanitizer,
}


def get_sanitizer(name: str) -> type[BaseSanitizer]:
    """
    Get sanitizer class by name.

    Args:
        name: Sanitizer name (e.g., 'img', 'tag_and_attribute')

    Returns:
        Sanitizer class

    Raises:
        ConfigurationError: If no sanitizer has that name
    """
    sanitizer_class = SANITIZERS.get(name.lower())
    if not sanitizer_class:
        available = ", ".join(SANITIZERS.keys())
        raise ConfigurationError(f"Unknown sanitizer: {name}. Available: {available}")
    return sanitizer_class


def list_sanitizers() -> list[str]:
    """List all available sanitizer names."""
    return list(SANITIZERS.keys())


__all__ = [
    "SANITIZERS",
    "BaseSanitizer",
    "EmbedSanitizer",
    "ImgSanitizer",
    "StyleSanitizer",
    "TagAndAttributeSanitizer",
    "get_sanitizer",
    "list_sanitizers",
]
