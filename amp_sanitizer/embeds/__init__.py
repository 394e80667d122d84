"""Embed handlers converting third-party embeds into AMP components."""

from ..exceptions import ConfigurationError
from .base import BaseEmbedHandler, EmbedMatch
from .twitter import TwitterEmbedHandler
from .vimeo import VimeoEmbedHandler
from .youtube import YouTubeEmbedHandler

EMBED_HANDLERS = {
    "vimeo": VimeoEmbedHandler,
    "youtube": YouTubeEmbedHandler,
    "twitter": TwitterEmbedHandler,
}


def get_embed_handler(name: str) -> type[BaseEmbedHandler]:
    """
    Get embed handler class by name.

    Args:
        name: Handler name (e.g., 'vimeo')

    Returns:
        Embed handler class

    Raises:
        ConfigurationError: If no handler has that name
    """
    handler_class = EMBED_HANDLERS.get(name.lower())
    if not handler_class:
        available = ", ".join(EMBED_HANDLERS.keys())
        raise ConfigurationError(f"Unknown embed handler: {name}. Available: {available}")
    return handler_class


def create_embed_handlers(
    names: list[str], handler_args: dict[str, dict] | None = None
) -> list[BaseEmbedHandler]:
    """
    Instantiate embed handlers in the given order.

    Args:
        names: Handler names
        handler_args: Optional per-handler arguments keyed by name

    Returns:
        List of handler instances

    Raises:
        ConfigurationError: If a name is unknown or its arguments are invalid
    """
    handler_args = handler_args or {}
    handlers = []
    for name in names:
        handler_class = get_embed_handler(name)
        try:
            handlers.append(handler_class(handler_args.get(name)))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid arguments for embed handler '{name}': {e}") from e
    return handlers


def list_embed_handlers() -> list[str]:
    """List all available embed handler names."""
    return list(EMBED_HANDLERS.keys())


__all__ = [
    "EMBED_HANDLERS",
    "BaseEmbedHandler",
    "EmbedMatch",
    "TwitterEmbedHandler",
    "VimeoEmbedHandler",
    "YouTubeEmbedHandler",
    "create_embed_handlers",
    "get_embed_handler",
    "list_embed_handlers",
]
