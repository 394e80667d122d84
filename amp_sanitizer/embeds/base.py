"""Base class for embed handlers."""

import html
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..logger import get_logger

if TYPE_CHECKING:
    from bs4 import Tag

    from ..dom import Document
    from ..registry import HandlerRegistry

logger = get_logger(__name__)

_DIMENSION_RE = re.compile(r"^\d+$")


@dataclass
class EmbedMatch:
    """A recognized third-party embed, ready to be rendered as an AMP element."""

    provider: str
    content_id: str
    width: int
    height: int


class BaseEmbedHandler(ABC):
    """
    Converts one provider's embeds into its AMP custom element.

    Embeds are recognized in three places:

    - a URL alone on a line (through the registry's URL rules)
    - a shortcode such as ``[vimeo id=123]`` (through registered shortcodes)
    - a raw provider embed already in the document, such as an iframe
      (through :meth:`sanitize_raw_embeds`)

    Subclasses define the provider constants and :meth:`extract_id`.
    """

    # Provider identifier, also used as the URL rule name
    name: str = "unknown"

    # AMP element emitted for this provider and the attribute carrying the id
    amp_tag: str = ""
    id_attribute: str = ""

    # Shortcode names and the argument aliases that carry the embed reference
    shortcode_tags: tuple[str, ...] = ()
    shortcode_id_keys: tuple[str, ...] = ("id", "url")

    # Pattern a standalone URL must match before extract_id() is tried
    url_pattern: re.Pattern = re.compile(r"(?!)")

    default_width: int = 600
    default_height: int = 480

    def __init__(self, args: dict | None = None):
        """
        Initialize the handler.

        Args:
            args: Optional handler arguments; ``width`` and ``height``
                override the provider defaults
        """
        self.args = args or {}
        self.width = int(self.args.get("width", self.default_width))
        self.height = int(self.args.get("height", self.default_height))
        self.did_convert_elements = False

    def register(self, registry: "HandlerRegistry") -> None:
        """Install this handler's URL rule and shortcodes into a registry."""
        self.did_convert_elements = False
        registry.add_url_rule(self.name, self.url_pattern, self.handle_url)
        for tag in self.shortcode_tags:
            registry.add_shortcode(tag, self.handle_shortcode)

    def unregister(self, registry: "HandlerRegistry") -> None:
        """Remove this handler's URL rule and shortcodes. Always safe to call."""
        registry.remove_url_rule(self.name, self.handle_url)
        for tag in self.shortcode_tags:
            registry.remove_shortcode(tag, self.handle_shortcode)

    @abstractmethod
    def extract_id(self, value: str) -> str | None:
        """
        Extract the provider content id from a URL or a bare id.

        Args:
            value: URL or id as written by the author

        Returns:
            The content id, or None if the value is not recognized
        """
        pass

    def match_url(self, url: str) -> EmbedMatch | None:
        """Recognize a standalone URL."""
        if not self.url_pattern.search(url):
            return None
        content_id = self.extract_id(url)
        if content_id is None:
            return None
        return EmbedMatch(self.name, content_id, self.width, self.height)

    def match_shortcode(self, attrs: dict) -> EmbedMatch | None:
        """Recognize shortcode arguments; all aliases identify the same embed."""
        value = None
        for key in self.shortcode_id_keys:
            if attrs.get(key):
                value = attrs[key]
                break
        if value is None:
            value = attrs.get(0)
        if not value:
            return None

        content_id = self.extract_id(value.strip())
        if content_id is None:
            return None

        return EmbedMatch(
            self.name,
            content_id,
            self._dimension(attrs.get("width"), self.width),
            self._dimension(attrs.get("height"), self.height),
        )

    def handle_url(self, url: str) -> str | None:
        """URL rule callback."""
        match = self.match_url(url)
        if match is None:
            return None
        return self.render(match)

    def handle_shortcode(self, attrs: dict, content: str | None, tag: str) -> str | None:
        """Shortcode callback. Returns None to leave the directive untouched."""
        match = self.match_shortcode(attrs)
        if match is None:
            return None
        return self.render(match)

    def render(self, match: EmbedMatch) -> str:
        """Render a match as AMP element markup."""
        self.did_convert_elements = True
        attrs = self.build_attributes(match)
        attr_text = " ".join(
            f'{name}="{html.escape(value, quote=True)}"' for name, value in attrs.items()
        )
        return f"<{self.amp_tag} {attr_text}></{self.amp_tag}>"

    def build_attributes(self, match: EmbedMatch) -> dict[str, str]:
        """Ordered attributes of the AMP element for a match."""
        return {
            self.id_attribute: match.content_id,
            "layout": "responsive",
            "width": str(match.width),
            "height": str(match.height),
        }

    def build_element(self, document: "Document", match: EmbedMatch) -> "Tag":
        """Create the AMP element for a match inside a document."""
        self.did_convert_elements = True
        return document.create_element(self.amp_tag, self.build_attributes(match))

    def detect_and_replace(self, content: str) -> str:
        """
        Replace every embed of this provider in content.

        Runs the content filter with only this handler registered and
        without paragraph wrapping.
        """
        from ..content import ContentFilter
        from ..registry import HandlerRegistry

        registry = HandlerRegistry()
        with registry.scoped([self]):
            return ContentFilter(registry, wrap_paragraphs=False).apply(content)

    def sanitize_raw_embeds(self, document: "Document") -> None:
        """
        Convert raw provider embeds already present in the document.

        The default implementation does nothing.
        """
        pass

    def get_scripts(self) -> dict[str, bool]:
        """Scripts needed by elements emitted since the last registration."""
        if not self.did_convert_elements:
            return {}
        return {self.amp_tag: True}

    @staticmethod
    def _dimension(value: str | None, default: int) -> int:
        if value and _DIMENSION_RE.match(value.strip()):
            return int(value.strip())
        return default

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"

    def _convert_iframes(self, document: "Document", src_pattern: re.Pattern) -> int:
        """
        Replace provider iframes with the AMP element.

        Iframe ``width``/``height`` are kept when numeric.

        Returns:
            Number of iframes converted
        """
        converted = 0
        for iframe in document.elements("iframe"):
            src = iframe.get("src", "")
            if not src_pattern.search(src):
                continue
            content_id = self.extract_id(src)
            if content_id is None:
                continue
            match = EmbedMatch(
                self.name,
                content_id,
                self._dimension(iframe.get("width"), self.width),
                self._dimension(iframe.get("height"), self.height),
            )
            iframe.replace_with(self.build_element(document, match))
            converted += 1

        if converted:
            logger.debug(f"Converted {converted} raw {self.name} iframe(s)")
        return converted
