"""Vimeo embed handler."""

import re
from urllib.parse import urlsplit

from .base import BaseEmbedHandler

_VIDEO_ID_RE = re.compile(r"^\d+$")
_PLAYER_SRC_RE = re.compile(r"^(?:https?:)?//player\.vimeo\.com/video/\d+", re.IGNORECASE)
# Path shapes carrying a video id, optionally followed by an unlisted hash
_VIDEO_PATH_RE = re.compile(
    r"^/(?:channels/[\w-]+/|groups/[\w-]+/videos/|(?:album|showcase)/\d+/video/|video/)?"
    r"(?P<id>\d+)(?:/|$)"
)


class VimeoEmbedHandler(BaseEmbedHandler):
    """
    Converts Vimeo embeds into ``<amp-vimeo>``.

    Recognized forms:
        https://vimeo.com/172355597
        https://vimeo.com/channels/staffpicks/172355597
        https://vimeo.com/groups/name/videos/172355597
        https://vimeo.com/showcase/123/video/172355597
        https://player.vimeo.com/video/172355597
        [vimeo 172355597]
        [vimeo id=172355597]
        [vimeo url=https://vimeo.com/172355597]
        <iframe src="https://player.vimeo.com/video/172355597"></iframe>
    """

    name = "vimeo"
    amp_tag = "amp-vimeo"
    id_attribute = "data-videoid"
    shortcode_tags = ("vimeo",)
    url_pattern = re.compile(r"^https?://(?:[\w-]+\.)?vimeo\.com/", re.IGNORECASE)

    default_width = 600
    default_height = 338

    def extract_id(self, value: str) -> str | None:
        if _VIDEO_ID_RE.match(value):
            return value

        parsed = urlsplit(value)
        host = (parsed.hostname or "").lower()
        if host != "vimeo.com" and not host.endswith(".vimeo.com"):
            return None

        match = _VIDEO_PATH_RE.match(parsed.path)
        return match.group("id") if match else None

    def sanitize_raw_embeds(self, document) -> None:
        self._convert_iframes(document, _PLAYER_SRC_RE)
