"""Base class for document sanitizers."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..dom import Document
    from ..registry import HandlerRegistry


class BaseSanitizer(ABC):
    """
    A pipeline stage that mutates a document and reports side-channel data.

    Subclasses implement :meth:`sanitize` and override :meth:`get_scripts`
    or :meth:`get_stylesheets` when they collect either.
    """

    # Name used in sanitizer configuration
    name: str = "unknown"

    # Default arguments, merged under the configured ones
    DEFAULT_ARGS: dict = {}

    def __init__(
        self,
        document: "Document",
        args: dict | None = None,
        registry: "HandlerRegistry | None" = None,
    ):
        """
        Initialize the sanitizer.

        Args:
            document: Document to sanitize in place
            args: Sanitizer arguments from configuration
            registry: Handler registry of the current run
        """
        self.document = document
        self.args = {**self.DEFAULT_ARGS, **(args or {})}
        self.registry = registry

    @abstractmethod
    def sanitize(self) -> None:
        """Mutate the document."""
        pass

    def get_scripts(self) -> dict[str, bool | str]:
        """Script requirements collected during :meth:`sanitize`."""
        return {}

    def get_stylesheets(self) -> list[str]:
        """CSS text collected during :meth:`sanitize`, in document order."""
        return []

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"
