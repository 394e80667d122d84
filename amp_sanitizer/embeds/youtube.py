"""YouTube embed handler."""

import re
from urllib.parse import parse_qs, urlsplit

from .base import BaseEmbedHandler

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_EMBED_SRC_RE = re.compile(
    r"^(?:https?:)?//(?:www\.)?youtube(?:-nocookie)?\.com/embed/[A-Za-z0-9_-]+",
    re.IGNORECASE,
)
_PATH_PREFIXES = ("embed", "v", "shorts", "live")


class YouTubeEmbedHandler(BaseEmbedHandler):
    """
    Converts YouTube embeds into ``<amp-youtube>``.

    Recognized forms:
        https://www.youtube.com/watch?v=dQw4w9WgXcQ
        https://youtu.be/dQw4w9WgXcQ
        https://www.youtube.com/embed/dQw4w9WgXcQ
        https://www.youtube.com/shorts/dQw4w9WgXcQ
        [youtube dQw4w9WgXcQ]
        [youtube id=dQw4w9WgXcQ]
        [youtube url=https://youtu.be/dQw4w9WgXcQ]
        <iframe src="https://www.youtube.com/embed/dQw4w9WgXcQ"></iframe>
    """

    name = "youtube"
    amp_tag = "amp-youtube"
    id_attribute = "data-videoid"
    shortcode_tags = ("youtube",)
    url_pattern = re.compile(
        r"^https?://(?:(?:www|m)\.)?(?:youtube\.com|youtube-nocookie\.com|youtu\.be)/",
        re.IGNORECASE,
    )

    default_width = 600
    default_height = 338

    def extract_id(self, value: str) -> str | None:
        if "/" not in value:
            return value if _VIDEO_ID_RE.match(value) else None

        parsed = urlsplit(value)
        host = (parsed.hostname or "").lower()
        if host.startswith(("www.", "m.")):
            host = host.split(".", 1)[1]

        segments = [s for s in parsed.path.split("/") if s]

        if host == "youtu.be":
            candidate = segments[0] if segments else None
        elif host in ("youtube.com", "youtube-nocookie.com"):
            if segments and segments[0] == "watch":
                candidate = parse_qs(parsed.query).get("v", [None])[0]
            elif len(segments) >= 2 and segments[0] in _PATH_PREFIXES:
                candidate = segments[1]
            else:
                candidate = None
        else:
            return None

        if candidate and _VIDEO_ID_RE.match(candidate):
            return candidate
        return None

    def sanitize_raw_embeds(self, document) -> None:
        self._convert_iframes(document, _EMBED_SRC_RE)
