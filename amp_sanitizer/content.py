"""
Text-phase content filtering.

Reproduces the host's content filter chain that runs before any DOM
sanitization:

1. autoembed: URLs alone on a line or in their own paragraph are offered
   to registered URL rules
2. autop: blank-line separated blocks are wrapped in paragraphs
3. shortcode unautop: paragraphs holding only a shortcode are unwrapped
4. do_shortcode: registered ``[name ...]`` directives are expanded

Because autoembed runs before autop, an embedded URL ends up inside a
``<p>``, while a standalone shortcode does not.
"""

import re

from .logger import get_logger
from .registry import HandlerRegistry

logger = get_logger(__name__)

_BLOCK_TAGS = (
    "table|thead|tfoot|caption|col|colgroup|tbody|tr|td|th|div|dl|dd|dt|ul|ol|li|"
    "pre|form|map|area|blockquote|address|math|style|p|h[1-6]|hr|fieldset|legend|"
    "section|article|aside|hgroup|header|footer|nav|figure|figcaption|details|"
    "menu|summary"
)

# Blocks whose multi-line content is itself split into paragraphs
_CONTAINER_TAGS = "div|blockquote|section|article|aside|header|footer|nav|form|address|details"

_BLOCK_OPEN_RE = re.compile(rf"(<(?:{_BLOCK_TAGS})(?=[\s/>]))", re.IGNORECASE)
_BLOCK_CLOSE_RE = re.compile(rf"(</(?:{_BLOCK_TAGS})>)", re.IGNORECASE)
_BLOCK_START_RE = re.compile(rf"^</?(?:{_BLOCK_TAGS})(?=[\s/>])", re.IGNORECASE)
_CONTAINER_OPEN_RE = re.compile(
    rf"(<(?:{_CONTAINER_TAGS})(?:\s[^>]*)?>)(?=[ \t]*\n)", re.IGNORECASE
)
_CONTAINER_CLOSE_RE = re.compile(rf"\n[ \t]*(</(?:{_CONTAINER_TAGS})>)", re.IGNORECASE)
_TRAILING_CLOSE_RE = re.compile(
    rf"^(?P<text>.*?)(?P<tags>(?:\s*</(?:{_BLOCK_TAGS})>)+)\s*$", re.IGNORECASE | re.DOTALL
)
_BR_BEFORE_BLOCK_RE = re.compile(rf"<br />(\s*</?(?:{_BLOCK_TAGS})[\s/>])", re.IGNORECASE)

# Elements whose inner whitespace must survive paragraph wrapping
_PRESERVE_RE = re.compile(
    r"<(pre|script|style)\b[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL
)
# Preserved elements that take a paragraph slot of their own
_PRESERVE_AS_BLOCK = ("pre", "style")

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_LINE_BREAK_RE = re.compile(r"[ \t]*\n[ \t]*")

# A URL that is the only thing on its line
_STANDALONE_URL_RE = re.compile(
    r"^(?P<lead>[ \t]*)(?P<url>https?://[^\s<>\"]+)(?P<trail>[ \t]*)$",
    re.IGNORECASE | re.MULTILINE,
)

# A URL that is the only content of its paragraph
_PARAGRAPH_URL_RE = re.compile(
    r"(?P<lead><p(?: [^>]*)?>\s*)(?P<url>https?://[^\s<>\"]+)(?P<trail>\s*</p>)",
    re.IGNORECASE,
)

# Shortcode attribute forms: name="v", name='v', name=v, "v", 'v', v
_SHORTCODE_ATTR_RE = re.compile(
    r"""([\w-]+)\s*=\s*"([^"]*)"(?:\s|$)"""
    r"""|([\w-]+)\s*=\s*'([^']*)'(?:\s|$)"""
    r"""|([\w-]+)\s*=\s*([^\s'"]+)(?:\s|$)"""
    r"""|"([^"]*)"(?:\s|$)"""
    r"""|'([^']*)'(?:\s|$)"""
    r"""|(\S+)(?:\s|$)"""
)


def shortcode_pattern(tags: list[str]) -> str:
    """
    Build the regular expression source matching any of the given shortcodes.

    Named groups:
        open: an extra ``[`` when the shortcode is escaped as ``[[name]]``
        tag: the shortcode name
        attrs: the raw attribute text
        selfclose: ``/`` for ``[name /]``
        content: enclosed content for ``[name]...[/name]``
        close: an extra ``]`` for escaped shortcodes
    """
    names = "|".join(re.escape(tag) for tag in tags)
    return (
        r"\[(?P<open>\[?)"
        rf"(?P<tag>{names})(?![\w-])"
        r"(?P<attrs>[^\]/]*(?:/(?!\])[^\]/]*)*?)"
        r"(?:(?P<selfclose>/)\]|\](?:(?P<content>.*?)\[/(?P=tag)\])?)"
        r"(?P<close>\]?)"
    )


def parse_shortcode_attrs(text: str) -> dict:
    """
    Parse shortcode attribute text.

    Named attributes are keyed by their lowercased name, positional values
    by their integer position.

    Example:
        >>> parse_shortcode_attrs('id=42 "a b" width=300')
        {'id': '42', 0: 'a b', 'width': '300'}
    """
    attrs: dict = {}
    position = 0
    text = text.replace("\u00a0", " ").replace("\u200b", " ")

    for match in _SHORTCODE_ATTR_RE.finditer(text.strip()):
        if match.group(1) is not None:
            attrs[match.group(1).lower()] = match.group(2)
        elif match.group(3) is not None:
            attrs[match.group(3).lower()] = match.group(4)
        elif match.group(5) is not None:
            attrs[match.group(5).lower()] = match.group(6)
        else:
            value = next(
                g for g in (match.group(7), match.group(8), match.group(9)) if g is not None
            )
            attrs[position] = value
            position += 1

    return attrs


def autop(text: str, br: bool = True) -> str:
    """
    Wrap blank-line separated blocks of text in ``<p>`` elements.

    Blocks that already start with a block-level tag are left as they are.
    Container elements such as ``<div>`` whose content starts on a new line
    have that content wrapped as well. Inside wrapped blocks, single
    newlines become ``<br />`` when ``br`` is set. The result always ends
    with a newline unless it is empty.

    Args:
        text: Content to format
        br: Whether to convert remaining single newlines into line breaks

    Returns:
        Formatted content
    """
    if not text.strip():
        return ""

    text = text.replace("\r\n", "\n").replace("\r", "\n")

    preserved: dict[str, str] = {}

    def _preserve(match: re.Match) -> str:
        key = f"<!--amp-autop-{len(preserved)}-->"
        preserved[key] = match.group(0)
        if match.group(1).lower() in _PRESERVE_AS_BLOCK:
            return f"\n\n{key}\n\n"
        return key

    text = _PRESERVE_RE.sub(_preserve, text)

    # Give every block-level tag its own paragraph slot
    text = _CONTAINER_OPEN_RE.sub(r"\1\n\n", text)
    text = _CONTAINER_CLOSE_RE.sub(r"\n\n\1", text)
    text = _BLOCK_OPEN_RE.sub(r"\n\n\1", text)
    text = _BLOCK_CLOSE_RE.sub(r"\1\n\n", text)

    blocks = []
    for block in _PARAGRAPH_SPLIT_RE.split(text.strip()):
        block = block.strip()
        if not block:
            continue
        if _BLOCK_START_RE.match(block) or block in preserved:
            blocks.append(block)
            continue

        closing = ""
        match = _TRAILING_CLOSE_RE.match(block)
        if match:
            block, closing = match.group("text").strip(), match.group("tags").strip()
        if br:
            block = _LINE_BREAK_RE.sub("<br />\n", block)
        blocks.append(f"<p>{block}</p>{closing}" if block else closing)

    result = _BR_BEFORE_BLOCK_RE.sub(r"\1", "\n".join(blocks) + "\n")

    for key, original in preserved.items():
        result = result.replace(key, original)

    return result


class ContentFilter:
    """
    The content filter chain driven by a :class:`HandlerRegistry`.

    The filter holds no registration state of its own: whatever URL rules
    and shortcodes are registered when :meth:`apply` runs are the ones used.
    """

    def __init__(self, registry: HandlerRegistry, wrap_paragraphs: bool = True):
        self.registry = registry
        self.wrap_paragraphs = wrap_paragraphs

    def apply(self, content: str) -> str:
        """Run the whole chain over content."""
        content = self.autoembed(content)
        if self.wrap_paragraphs:
            content = autop(content)
            content = self.shortcode_unautop(content)
        return self.do_shortcode(content)

    def autoembed(self, content: str) -> str:
        """
        Replace standalone URLs using the first matching URL rule.

        A URL is standalone when it is alone on its line, or alone inside
        its own ``<p>`` element.
        """
        rules = self.registry.url_rules
        if not rules or "://" not in content:
            return content

        def _embed_url(url: str) -> str | None:
            for rule in rules:
                if not rule.pattern.search(url):
                    continue
                markup = rule.callback(url)
                if markup is not None:
                    logger.debug(f"Embedded {url} with rule '{rule.name}'")
                    return markup
            return None

        def _replace(match: re.Match) -> str:
            markup = _embed_url(match.group("url"))
            if markup is None:
                return match.group(0)
            return f"{match.group('lead')}{markup}{match.group('trail')}"

        content = _STANDALONE_URL_RE.sub(_replace, content)
        return _PARAGRAPH_URL_RE.sub(_replace, content)

    def shortcode_unautop(self, content: str) -> str:
        """Remove paragraph wrappers around standalone registered shortcodes."""
        tags = self.registry.shortcode_tags
        if not tags or "[" not in content:
            return content

        pattern = re.compile(
            rf"<p>\s*(?P<shortcode>{shortcode_pattern(tags)})\s*</p>",
            re.DOTALL | re.IGNORECASE,
        )
        return pattern.sub(lambda m: m.group("shortcode"), content)

    def do_shortcode(self, content: str) -> str:
        """Expand registered shortcodes; unknown or unmatched ones are kept."""
        tags = self.registry.shortcode_tags
        if not tags or "[" not in content:
            return content

        pattern = re.compile(shortcode_pattern(tags), re.DOTALL | re.IGNORECASE)

        def _expand(match: re.Match) -> str:
            # [[name]] is an escaped shortcode
            if match.group("open") == "[" and match.group("close") == "]":
                return match.group(0)[1:-1]

            tag = match.group("tag").lower()
            callback = self.registry.get_shortcode(tag)
            if callback is None:
                return match.group(0)

            attrs = parse_shortcode_attrs(match.group("attrs"))
            output = callback(attrs, match.group("content"), tag)
            if output is None:
                logger.debug(f"Shortcode [{tag}] left untouched: {match.group(0)!r}")
                return match.group(0)
            return f"{match.group('open')}{output}{match.group('close')}"

        return pattern.sub(_expand, content)
