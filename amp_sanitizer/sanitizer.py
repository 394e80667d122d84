"""
Content sanitizer: runs the ordered sanitizer pipeline over one document.

Typical use, mirroring a content-rendering request:

    result = convert_content(post_content)
    descriptors = ScriptMetadataResolver().resolve_all(result.scripts)
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from .config import ConversionConfig
from .content import ContentFilter
from .dom import Document, decode_content
from .embeds import BaseEmbedHandler, create_embed_handlers
from .exceptions import ConfigurationError
from .logger import get_logger
from .registry import HandlerRegistry
from .sanitizers import TagAndAttributeSanitizer, get_sanitizer
from .sanitizers.base import BaseSanitizer
from .scripts import merge_scripts

logger = get_logger(__name__)

DEFAULT_OPTIONS = {"return_styles": True}


@dataclass
class SanitizationResult:
    """Aggregate output of one conversion run."""

    markup: str
    stylesheets: list[str] = field(default_factory=list)
    scripts: dict[str, bool | str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "markup": self.markup,
            "styles": list(self.stylesheets),
            "scripts": dict(self.scripts),
        }


@dataclass
class _Stage:
    name: str
    sanitizer_class: type[BaseSanitizer]
    args: dict


class ContentSanitizer:
    """
    Run configured sanitizers over a document in a fixed order.

    Stages run exactly in the configured order, except that the
    tag/attribute sanitizer always runs once, last, so that it sees the
    fully expanded tree. Scripts are merged key-wise across stages and
    stylesheets are concatenated in stage order.
    """

    def __init__(self, registry: HandlerRegistry | None = None):
        self.registry = registry or HandlerRegistry()

    def build_stages(self, sanitizer_configs: Mapping[str, dict | None]) -> list[_Stage]:
        """
        Resolve and validate the stage list without touching any document.

        Raises:
            ConfigurationError: On an unknown sanitizer name or invalid arguments
        """
        stages = []
        final_args: dict = {}

        for name, args in sanitizer_configs.items():
            sanitizer_class = get_sanitizer(name)
            args = dict(args or {})
            if sanitizer_class is TagAndAttributeSanitizer:
                final_args = args
                continue
            if sanitizer_class.name == "embed":
                self._validate_embed_handlers(args.get("embed_handlers", []))
            stages.append(_Stage(name, sanitizer_class, args))

        stages.append(_Stage(TagAndAttributeSanitizer.name, TagAndAttributeSanitizer, final_args))
        return stages

    @staticmethod
    def _validate_embed_handlers(handlers) -> None:
        if not isinstance(handlers, (list, tuple)):
            raise ConfigurationError("embed_handlers must be a list of embed handlers")
        for handler in handlers:
            if not isinstance(handler, BaseEmbedHandler):
                raise ConfigurationError(f"Not an embed handler: {handler!r}")

    def sanitize_document(
        self,
        document: Document,
        sanitizer_configs: Mapping[str, dict | None],
        options: dict | None = None,
    ) -> SanitizationResult:
        """
        Sanitize a document in place.

        Args:
            document: Parsed document, mutated by every stage
            sanitizer_configs: Ordered mapping of sanitizer name to arguments,
                e.g. ``{"embed": {"embed_handlers": [...]}, "img": {}}``
            options: ``return_styles`` (default True) controls whether
                collected stylesheets are returned

        Returns:
            SanitizationResult with serialized markup, stylesheets and scripts

        Raises:
            ConfigurationError: Before any mutation, if the configuration is invalid
        """
        options = {**DEFAULT_OPTIONS, **(options or {})}
        stages = self.build_stages(sanitizer_configs)

        scripts: dict[str, bool | str] = {}
        stylesheets: list[str] = []

        # All stages are constructed before the first one mutates the document
        sanitizers = [
            stage.sanitizer_class(document, stage.args, registry=self.registry)
            for stage in stages
        ]

        for sanitizer in sanitizers:
            logger.debug(f"Running sanitizer: {sanitizer.name}")
            sanitizer.sanitize()
            merge_scripts(scripts, sanitizer.get_scripts())
            stylesheets.extend(sanitizer.get_stylesheets())

        return SanitizationResult(
            markup=document.to_content(),
            stylesheets=stylesheets if options["return_styles"] else [],
            scripts=scripts,
        )


def sanitize_document(
    document: Document,
    sanitizer_configs: Mapping[str, dict | None],
    options: dict | None = None,
) -> SanitizationResult:
    """Sanitize a document with a fresh registry. See :meth:`ContentSanitizer.sanitize_document`."""
    return ContentSanitizer().sanitize_document(document, sanitizer_configs, options)


def convert_content(
    content: str | bytes,
    config: ConversionConfig | None = None,
    handlers: list[BaseEmbedHandler] | None = None,
) -> SanitizationResult:
    """
    Convert raw content into AMP markup.

    Embed handlers are registered in a registry scoped to this call, the
    content filter expands URLs and shortcodes, the result is parsed and
    run through the sanitizer pipeline. Handlers are always unregistered,
    even when parsing or sanitizing fails.

    Args:
        content: Raw post content
        config: Conversion configuration; defaults apply when omitted
        handlers: Embed handler instances overriding ``config.embed_handlers``

    Returns:
        SanitizationResult

    Raises:
        ConfigurationError: If the configuration is invalid (nothing is converted)
        ParseError: If the filtered content cannot be parsed
    """
    config = config or ConversionConfig()
    if handlers is None:
        handlers = create_embed_handlers(config.embed_handlers, config.embed_handler_args)

    sanitizer_configs = config.to_sanitizer_configs(handlers)
    registry = HandlerRegistry()
    content_sanitizer = ContentSanitizer(registry)

    # Fail on configuration errors before any content is touched
    content_sanitizer.build_stages(sanitizer_configs)

    content = decode_content(content)

    with registry.scoped(handlers):
        filtered = ContentFilter(registry, wrap_paragraphs=config.wrap_paragraphs).apply(content)
        document = Document.from_content(filtered)
        result = content_sanitizer.sanitize_document(
            document, sanitizer_configs, {"return_styles": config.return_styles}
        )

    logger.info(
        f"Converted content: {len(result.markup)} chars, "
        f"{len(result.scripts)} script(s), {len(result.stylesheets)} stylesheet(s)"
    )
    return result
