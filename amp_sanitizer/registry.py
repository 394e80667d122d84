"""Scoped registry of URL embed rules and shortcodes."""

import re
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .logger import get_logger

if TYPE_CHECKING:
    from .embeds.base import BaseEmbedHandler

logger = get_logger(__name__)

UrlCallback = Callable[[str], "str | None"]
ShortcodeCallback = Callable[[dict, "str | None", str], "str | None"]


@dataclass
class UrlRule:
    """A pattern tried against URLs that sit alone on a line."""

    name: str
    pattern: re.Pattern
    callback: UrlCallback


class HandlerRegistry:
    """
    Registration state for one conversion run.

    Embed handlers install URL rules and shortcode callbacks here instead
    of in module-level tables, so independent runs never observe each
    other's handlers. Use :meth:`scoped` to pair registration with a
    guaranteed release.
    """

    def __init__(self):
        self._url_rules: dict[str, UrlRule] = {}
        self._shortcodes: dict[str, ShortcodeCallback] = {}
        self._handlers: list["BaseEmbedHandler"] = []

    # URL rules

    def add_url_rule(self, name: str, pattern: re.Pattern, callback: UrlCallback) -> None:
        """Add a URL rule. The first rule registered under a name is kept."""
        if name in self._url_rules:
            logger.debug(f"URL rule '{name}' already registered, keeping the first one")
            return
        self._url_rules[name] = UrlRule(name=name, pattern=pattern, callback=callback)

    def remove_url_rule(self, name: str, callback: UrlCallback | None = None) -> None:
        """Remove a URL rule; a no-op when absent or owned by another callback."""
        rule = self._url_rules.get(name)
        if rule is None:
            return
        if callback is not None and rule.callback != callback:
            return
        del self._url_rules[name]

    @property
    def url_rules(self) -> list[UrlRule]:
        return list(self._url_rules.values())

    # Shortcodes

    def add_shortcode(self, tag: str, callback: ShortcodeCallback) -> None:
        """Add a shortcode callback. The first callback for a tag is kept."""
        tag = tag.lower()
        if tag in self._shortcodes:
            logger.debug(f"Shortcode [{tag}] already registered, keeping the first one")
            return
        self._shortcodes[tag] = callback

    def remove_shortcode(self, tag: str, callback: ShortcodeCallback | None = None) -> None:
        """Remove a shortcode; a no-op when absent or owned by another callback."""
        tag = tag.lower()
        existing = self._shortcodes.get(tag)
        if existing is None:
            return
        if callback is not None and existing != callback:
            return
        del self._shortcodes[tag]

    def get_shortcode(self, tag: str) -> ShortcodeCallback | None:
        return self._shortcodes.get(tag.lower())

    @property
    def shortcode_tags(self) -> list[str]:
        return list(self._shortcodes)

    # Handlers

    def attach(self, handler: "BaseEmbedHandler") -> bool:
        """
        Register an embed handler.

        Returns:
            True if the handler was newly attached, False if it already was
        """
        if handler in self._handlers:
            return False
        handler.register(self)
        self._handlers.append(handler)
        logger.debug(f"Attached embed handler: {handler.name}")
        return True

    def detach(self, handler: "BaseEmbedHandler") -> None:
        """Unregister an embed handler. Safe to call for unknown handlers."""
        handler.unregister(self)
        if handler in self._handlers:
            self._handlers.remove(handler)
            logger.debug(f"Detached embed handler: {handler.name}")

    @property
    def handlers(self) -> list["BaseEmbedHandler"]:
        return list(self._handlers)

    def is_empty(self) -> bool:
        return not (self._url_rules or self._shortcodes or self._handlers)

    @contextmanager
    def scoped(self, handlers: Iterable["BaseEmbedHandler"]) -> Iterator["HandlerRegistry"]:
        """
        Attach handlers for the duration of a ``with`` block.

        Handlers already attached by an enclosing scope are left alone, so
        scopes nest. Handlers attached here are detached in reverse order
        on every exit path, including exceptions.
        """
        attached = []
        try:
            for handler in handlers:
                if self.attach(handler):
                    attached.append(handler)
            yield self
        finally:
            for handler in reversed(attached):
                self.detach(handler)
