"""Collect inline CSS into stylesheets."""

import hashlib
import re

from ..logger import get_logger
from .base import BaseSanitizer

logger = get_logger(__name__)

INLINE_CLASS_PREFIX = "amp-wp-inline-"

_IMPORTANT_RE = re.compile(r"\s*!\s*important", re.IGNORECASE)


def normalize_declarations(style: str) -> str:
    """
    Normalize a ``style`` attribute value.

    ``!important`` is dropped, empty declarations are removed and the
    remaining ones are joined with ``;``.
    """
    declarations = []
    for declaration in _IMPORTANT_RE.sub("", style).split(";"):
        declaration = declaration.strip()
        if ":" not in declaration:
            continue
        prop, value = declaration.split(":", 1)
        prop, value = prop.strip().lower(), value.strip()
        if prop and value:
            declarations.append(f"{prop}:{value}")
    return ";".join(declarations)


class StyleSanitizer(BaseSanitizer):
    """
    Move ``<style>`` elements and ``style`` attributes into stylesheets.

    Each distinct set of inline declarations becomes one class rule named
    after the MD5 of the declarations; elements sharing declarations
    share the class.
    """

    name = "style"

    def __init__(self, document, args=None, registry=None):
        super().__init__(document, args, registry)
        self._stylesheets: list[str] = []
        self._inline_classes: set[str] = set()

    def sanitize(self) -> None:
        for element in self.document.elements():
            if element.decomposed:
                continue

            if element.name == "style":
                css = element.get_text().strip()
                if css:
                    self._stylesheets.append(css)
                element.decompose()
                continue

            if element.has_attr("style"):
                self._collect_inline_style(element)

        if self._stylesheets:
            logger.debug(f"Collected {len(self._stylesheets)} stylesheet(s)")

    def _collect_inline_style(self, element) -> None:
        declarations = normalize_declarations(element["style"])
        del element["style"]
        if not declarations:
            return

        class_name = INLINE_CLASS_PREFIX + hashlib.md5(declarations.encode("utf-8")).hexdigest()[:7]
        if class_name not in self._inline_classes:
            self._inline_classes.add(class_name)
            self._stylesheets.append(f".{class_name}{{{declarations}}}")

        classes = element.get("class", [])
        if isinstance(classes, str):
            classes = classes.split()
        if class_name not in classes:
            classes = [*classes, class_name]
        element["class"] = classes

    def get_stylesheets(self) -> list[str]:
        return list(self._stylesheets)
