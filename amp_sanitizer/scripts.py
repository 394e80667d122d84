"""Script requirements, the script registry and script metadata resolution."""

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

from .exceptions import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_SCRIPTS_PATH = Path(__file__).parent / "data" / "scripts.yaml"

# Extension URL convention: /v{runtime}/{name}-{version}.js
# https://amp.dev/documentation/guides-and-tutorials/learn/spec/amphtml/#extended-components
SCRIPT_VERSION_RE = re.compile(
    r"/v(?P<runtime_version>\d+)/[a-z-]+-(?P<extension_version>latest|\d+|\d+\.\d+)\.js"
)

# The only extension that provides a template engine rather than an element
TEMPLATE_EXTENSION_HANDLE = "amp-mustache"

CUSTOM_TEMPLATE = "custom-template"
CUSTOM_ELEMENT = "custom-element"


def merge_scripts(
    target: dict[str, bool | str], incoming: dict[str, bool | str]
) -> dict[str, bool | str]:
    """
    Merge script requirements into ``target`` in place.

    A concrete source URL replaces a ``True`` placeholder; a placeholder
    never replaces a known URL; no handle is ever removed.

    Returns:
        The updated target mapping
    """
    for handle, requirement in incoming.items():
        if isinstance(requirement, str) or handle not in target:
            target[handle] = requirement
    return target


@dataclass
class ScriptDescriptor:
    """Resolved script metadata handed to the page renderer."""

    handle: str
    src: str
    runtime_version: str
    extension_version: str
    extension_type: str = CUSTOM_ELEMENT
    is_async: bool = True

    def to_dict(self) -> dict:
        """Convert to the payload form (without the handle)."""
        return {
            "src": self.src,
            "runtime_version": self.runtime_version,
            "extension_version": self.extension_version,
            "async": self.is_async,
            "extension_type": self.extension_type,
        }


class ScriptRegistry:
    """Handle → source URL lookup, populated at startup and read during runs."""

    def __init__(self, scripts: dict[str, str] | None = None):
        self._scripts: dict[str, str] = dict(scripts or {})

    @classmethod
    def from_file(cls, path: Path) -> "ScriptRegistry":
        """
        Load a registry from a YAML file with a top-level ``scripts`` mapping.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        if not path.exists():
            raise ConfigurationError(f"Scripts file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in scripts file: {e}") from e

        scripts = raw.get("scripts") if isinstance(raw, dict) else None
        if not isinstance(scripts, dict) or not all(
            isinstance(v, str) for v in scripts.values()
        ):
            raise ConfigurationError(
                f"Scripts file must map handles to URLs under 'scripts': {path}"
            )

        logger.debug(f"Loaded {len(scripts)} script(s) from {path}")
        return cls(scripts)

    def register(self, handle: str, src: str) -> None:
        self._scripts[handle] = src

    def is_registered(self, handle: str) -> bool:
        return handle in self._scripts

    def get_src(self, handle: str) -> str | None:
        return self._scripts.get(handle)

    @property
    def handles(self) -> list[str]:
        return list(self._scripts)

    def __len__(self) -> int:
        return len(self._scripts)


@lru_cache(maxsize=None)
def load_default_script_registry() -> ScriptRegistry:
    """The bundled registry of AMP component scripts, loaded once."""
    return ScriptRegistry.from_file(DEFAULT_SCRIPTS_PATH)


class ScriptMetadataResolver:
    """
    Expand script requirements into :class:`ScriptDescriptor` objects.

    Handles that are not registered, or whose URL does not follow the
    versioned extension convention, are omitted from the output. Each
    omission is logged at WARNING level.
    """

    def __init__(self, registry: ScriptRegistry | None = None):
        self.registry = registry if registry is not None else load_default_script_registry()

    def resolve(self, handle: str, requirement: bool | str) -> ScriptDescriptor | None:
        """
        Resolve one script requirement.

        Args:
            handle: Script handle, e.g. "amp-vimeo"
            requirement: ``True`` to look the handle up, or a concrete URL

        Returns:
            ScriptDescriptor, or None when the script cannot be described
        """
        if isinstance(requirement, str):
            src = requirement
        else:
            src = self.registry.get_src(handle)
            if src is None:
                logger.warning(
                    f"Omitting script '{handle}': not registered", extra={"handle": handle}
                )
                return None

        match = SCRIPT_VERSION_RE.search(src)
        if not match:
            logger.warning(
                f"Omitting script '{handle}': URL {src} does not carry extension versions",
                extra={"handle": handle},
            )
            return None

        return ScriptDescriptor(
            handle=handle,
            src=src,
            runtime_version=match.group("runtime_version"),
            extension_version=match.group("extension_version"),
            extension_type=(
                CUSTOM_TEMPLATE if handle == TEMPLATE_EXTENSION_HANDLE else CUSTOM_ELEMENT
            ),
        )

    def resolve_all(self, scripts: dict[str, bool | str]) -> dict[str, ScriptDescriptor]:
        """Resolve every requirement, keeping input order and skipping omissions."""
        descriptors = {}
        for handle, requirement in scripts.items():
            descriptor = self.resolve(handle, requirement)
            if descriptor is not None:
                descriptors[handle] = descriptor
        return descriptors
