"""Twitter (X) embed handler."""

import re
from urllib.parse import urlsplit

from ..logger import get_logger
from .base import BaseEmbedHandler, EmbedMatch

logger = get_logger(__name__)

_TWEET_ID_RE = re.compile(r"^\d+$")
_STATUS_PATH_RE = re.compile(r"^/(?:\w{1,15}|i/web)/status(?:es)?/(\d+)", re.IGNORECASE)


class TwitterEmbedHandler(BaseEmbedHandler):
    """
    Converts tweet embeds into ``<amp-twitter>``.

    Recognized forms:
        https://twitter.com/ampproject/status/987654321012345678
        https://x.com/ampproject/status/987654321012345678
        [tweet 987654321012345678]
        [tweet tweet=https://twitter.com/ampproject/status/987654321012345678]
        <blockquote class="twitter-tweet">... <a href=".../status/987...">
    """

    name = "twitter"
    amp_tag = "amp-twitter"
    id_attribute = "data-tweetid"
    shortcode_tags = ("tweet",)
    shortcode_id_keys = ("tweet", "id", "url")
    url_pattern = re.compile(
        r"^https?://(?:(?:www|mobile)\.)?(?:twitter|x)\.com/[^/]+/status(?:es)?/\d+",
        re.IGNORECASE,
    )

    default_width = 600
    default_height = 480

    def extract_id(self, value: str) -> str | None:
        if _TWEET_ID_RE.match(value):
            return value

        parsed = urlsplit(value)
        host = (parsed.hostname or "").lower()
        if host.startswith(("www.", "mobile.")):
            host = host.split(".", 1)[1]
        if host not in ("twitter.com", "x.com"):
            return None

        match = _STATUS_PATH_RE.match(parsed.path)
        return match.group(1) if match else None

    def sanitize_raw_embeds(self, document) -> None:
        """Replace ``blockquote.twitter-tweet`` with the status it links to."""
        for blockquote in document.body.select("blockquote.twitter-tweet"):
            content_id = None
            for link in blockquote.find_all("a", href=True):
                content_id = self.extract_id(link["href"])
                if content_id:
                    break
            if content_id is None:
                logger.debug("Skipping twitter-tweet blockquote without a status link")
                continue

            match = EmbedMatch(self.name, content_id, self.width, self.height)
            blockquote.replace_with(self.build_element(document, match))
