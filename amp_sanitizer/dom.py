"""Document wrapper around BeautifulSoup used by every sanitizer."""

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from .exceptions import ParseError
from .logger import get_logger

logger = get_logger(__name__)

# Content is parsed inside a full document shell so that a <body> always exists
_DOCUMENT_SHELL = (
    '<!DOCTYPE html><html><head><meta http-equiv="content-type" '
    'content="text/html; charset=utf-8"></head><body>{content}</body></html>'
)


class SourceOrderFormatter(HTMLFormatter):
    """Minimal HTML formatter that keeps attributes in insertion order."""

    def __init__(self):
        super().__init__(entity_substitution=EntitySubstitution.substitute_xml)

    def attributes(self, tag: Tag):
        if tag.attrs is None:
            return []
        return list(tag.attrs.items())


SOURCE_ORDER_FORMATTER = SourceOrderFormatter()


def decode_content(content: str | bytes) -> str:
    """Return content as text, decoding UTF-8 bytes.

    Raises:
        ParseError: If the bytes are not valid UTF-8
    """
    if isinstance(content, bytes):
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Content is not valid UTF-8: {e}") from e
    return content


class Document:
    """
    Mutable markup tree for a single conversion run.

    The tree is owned by the pipeline for the duration of the run: each
    sanitizer mutates it in place and the next one observes the result.
    """

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup
        if soup.body is None:
            raise ParseError("Parsed document has no body element")

    @classmethod
    def from_content(cls, content: str | bytes) -> "Document":
        """
        Parse an HTML fragment into a document.

        Args:
            content: HTML fragment as text, or UTF-8 encoded bytes

        Returns:
            Document wrapping the parsed tree

        Raises:
            ParseError: If the bytes are not valid UTF-8 or the parser
                rejects the markup
        """
        content = decode_content(content)

        try:
            soup = BeautifulSoup(_DOCUMENT_SHELL.format(content=content), "lxml")
        except ParserRejectedMarkup as e:
            raise ParseError(f"Markup rejected by parser: {e}") from e

        return cls(soup)

    @property
    def body(self) -> Tag:
        return self.soup.body

    def create_element(self, name: str, attrs: dict[str, str] | None = None) -> Tag:
        """Create a detached element owned by this document."""
        return self.soup.new_tag(name, attrs=attrs or {})

    def elements(self, name: str | None = None) -> list[Tag]:
        """Snapshot of body elements in document order, optionally by tag name."""
        if name is None:
            return self.body.find_all(True)
        return self.body.find_all(name)

    def to_content(self) -> str:
        """Serialize the body children back into an HTML fragment."""
        return self.body.decode_contents(formatter=SOURCE_ORDER_FORMATTER)

    def __str__(self) -> str:
        return self.to_content()
