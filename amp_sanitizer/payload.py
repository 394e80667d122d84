"""Build the ``amp`` field and AMP links served alongside converted content."""

from urllib.parse import urlencode, urlsplit, urlunsplit

from .cache import DEFAULT_CACHE_DOMAIN, get_amp_cache_url
from .config import ConversionConfig
from .sanitizer import SanitizationResult, convert_content
from .scripts import ScriptMetadataResolver, ScriptRegistry

STANDALONE_CONTENT_QUERY_VAR = "amp_standalone_content"


def _add_query_arg(url: str, name: str, value: str = "") -> str:
    parts = urlsplit(url)
    arg = urlencode({name: value})
    query = f"{parts.query}&{arg}" if parts.query else arg
    return urlunsplit(parts._replace(query=query))


def build_amp_links(
    link: str,
    amp_link: str | None = None,
    cache_domain: str = DEFAULT_CACHE_DOMAIN,
) -> dict[str, dict[str, str | None]]:
    """
    Origin and AMP cache URLs for a piece of content.

    ``standalone_content`` points at the bare converted markup,
    ``complete_template`` at the full AMP page (``amp_link``, or ``link``
    when the site serves AMP at the canonical URL).
    """
    standalone = _add_query_arg(link, STANDALONE_CONTENT_QUERY_VAR)
    complete = amp_link or link
    return {
        "standalone_content": {
            "origin": standalone,
            "cache": get_amp_cache_url(standalone, cache_domain),
        },
        "complete_template": {
            "origin": complete,
            "cache": get_amp_cache_url(complete, cache_domain),
        },
    }


def build_amp_field(
    result: SanitizationResult, resolver: ScriptMetadataResolver | None = None
) -> dict:
    """Convert a sanitization result into the ``amp`` payload field."""
    resolver = resolver or ScriptMetadataResolver()
    descriptors = resolver.resolve_all(result.scripts)
    return {
        "markup": result.markup,
        "styles": list(result.stylesheets),
        "scripts": {handle: d.to_dict() for handle, d in descriptors.items()},
    }


def prepare_amp_response(
    content: str | bytes,
    link: str,
    config: ConversionConfig | None = None,
    script_registry: ScriptRegistry | None = None,
    amp_link: str | None = None,
) -> dict:
    """
    Convert content and assemble the response payload.

    Returns:
        ``{"amp_links": {...}, "content": {"amp": {...}}}``
    """
    config = config or ConversionConfig()
    if script_registry is None and config.scripts_file is not None:
        script_registry = ScriptRegistry.from_file(config.scripts_file)

    result = convert_content(content, config)
    return {
        "amp_links": build_amp_links(link, amp_link, config.cache_domain),
        "content": {"amp": build_amp_field(result, ScriptMetadataResolver(script_registry))},
    }
