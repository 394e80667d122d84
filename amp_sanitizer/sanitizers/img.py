"""Convert ``<img>`` elements into ``<amp-img>``."""

import re

from ..logger import get_logger
from .base import BaseSanitizer

logger = get_logger(__name__)

_DIMENSION_RE = re.compile(r"^\d+(?:px)?$")

# Attributes carried over from <img> to <amp-img>
_COPIED_ATTRIBUTES = ("src", "srcset", "sizes", "alt", "title", "id", "class", "attribution")


class ImgSanitizer(BaseSanitizer):
    """
    Replace every ``<img>`` with an ``<amp-img>``.

    Images with numeric ``width`` and ``height`` keep them and get
    ``layout="intrinsic"``. Images missing either dimension fall back to
    ``default_width``/``default_height`` with ``layout="responsive"``.
    Images without ``src`` are removed.
    """

    name = "img"
    DEFAULT_ARGS = {"default_width": 600, "default_height": 400}

    def __init__(self, document, args=None, registry=None):
        super().__init__(document, args, registry)
        self.converted = 0
        self.removed = 0

    def sanitize(self) -> None:
        for img in self.document.elements("img"):
            src = (img.get("src") or "").strip()
            if not src:
                logger.debug("Removing <img> without src")
                img.decompose()
                self.removed += 1
                continue

            attrs = {}
            for name in _COPIED_ATTRIBUTES:
                value = img.get(name)
                if value is None:
                    continue
                attrs[name] = " ".join(value) if isinstance(value, list) else value
            attrs["src"] = src

            width = self._dimension(img.get("width"))
            height = self._dimension(img.get("height"))
            if width and height:
                attrs.update(width=width, height=height, layout="intrinsic")
            else:
                attrs.update(
                    width=str(self.args["default_width"]),
                    height=str(self.args["default_height"]),
                    layout="responsive",
                )

            img.replace_with(self.document.create_element("amp-img", attrs))
            self.converted += 1

        if self.converted or self.removed:
            logger.debug(f"Converted {self.converted} image(s), removed {self.removed}")

    @staticmethod
    def _dimension(value) -> str | None:
        if isinstance(value, str) and _DIMENSION_RE.match(value.strip()):
            return value.strip().removesuffix("px")
        return None
