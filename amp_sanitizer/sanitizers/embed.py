"""Sanitizer running embed handlers over the document."""

from ..logger import get_logger
from ..registry import HandlerRegistry
from ..scripts import merge_scripts
from .base import BaseSanitizer

logger = get_logger(__name__)


class EmbedSanitizer(BaseSanitizer):
    """
    Runs the DOM phase of every configured embed handler.

    Handlers are attached to the run's registry for the duration of the
    stage (unless an enclosing scope already attached them) and their
    scripts are collected before they are detached.

    Args:
        embed_handlers: List of embed handler instances, in priority order
    """

    name = "embed"
    DEFAULT_ARGS = {"embed_handlers": []}

    def __init__(self, document, args=None, registry=None):
        super().__init__(document, args, registry or HandlerRegistry())
        self.handlers = list(self.args["embed_handlers"])
        self._scripts: dict[str, bool | str] = {}

    def sanitize(self) -> None:
        with self.registry.scoped(self.handlers):
            for handler in self.handlers:
                handler.sanitize_raw_embeds(self.document)
                merge_scripts(self._scripts, handler.get_scripts())

        if self._scripts:
            logger.debug(f"Embed handlers require scripts: {', '.join(self._scripts)}")

    def get_scripts(self) -> dict[str, bool | str]:
        return dict(self._scripts)
