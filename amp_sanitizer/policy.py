"""
Typed tag and attribute allow-list policy.

The policy is declared in YAML (``data/allowed_tags.yaml``), validated
against a JSON Schema and compiled once into frozen dataclasses with
precompiled patterns. Loaded policies are never mutated.
"""

import json
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import jsonschema
import yaml

from .exceptions import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_POLICY_PATH = DATA_DIR / "allowed_tags.yaml"
POLICY_SCHEMA_PATH = DATA_DIR / "allowed_tags.schema.json"

# Characters allowed before ':' in a URL scheme
_URL_SCHEME_RE = re.compile(r"^\s*([a-zA-Z][a-zA-Z0-9+.-]*):")
# Strip characters browsers ignore inside a scheme ("java\tscript:")
_URL_IGNORED_CHARS_RE = re.compile(r"[\x00-\x20\x7f]+")


@dataclass(frozen=True)
class AttributeSpec:
    """Rules for one attribute of one tag."""

    name: str
    pattern: re.Pattern | None = None
    url: bool = False
    mandatory: bool = False


@dataclass(frozen=True)
class TagSpec:
    """Rules for one allowed tag."""

    name: str
    attributes: Mapping[str, AttributeSpec] = field(default_factory=dict)
    extension: str | None = None
    layout: bool = False

    @property
    def mandatory_attributes(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes.values() if a.mandatory)


@dataclass(frozen=True)
class Policy:
    """The complete allow-list."""

    tags: Mapping[str, TagSpec]
    global_attributes: frozenset[str] = frozenset()
    global_attribute_prefixes: tuple[str, ...] = ()
    layout_attributes: Mapping[str, AttributeSpec] = field(default_factory=dict)
    remove_with_content: frozenset[str] = frozenset()
    url_protocols: frozenset[str] = frozenset()

    def get_tag(self, name: str) -> TagSpec | None:
        return self.tags.get(name.lower())

    def get_attribute(self, tag: TagSpec, name: str) -> AttributeSpec | None:
        """
        Find the rule for an attribute on a tag.

        Tag-specific rules win over layout rules, which win over the
        global allow-list. Event handler attributes are never allowed.

        Returns:
            The matching AttributeSpec, or None if the attribute is not allowed
        """
        name = name.lower()
        if name.startswith("on"):
            return None
        if name in tag.attributes:
            return tag.attributes[name]
        if tag.layout and name in self.layout_attributes:
            return self.layout_attributes[name]
        if name in self.global_attributes or name.startswith(self.global_attribute_prefixes):
            return AttributeSpec(name=name)
        return None

    def is_allowed_url(self, value: str) -> bool:
        """Check that a URL is relative or uses an allowed protocol."""
        match = _URL_SCHEME_RE.match(_URL_IGNORED_CHARS_RE.sub("", value))
        if not match:
            return True
        return match.group(1).lower() in self.url_protocols

    def validate_attribute(self, tag: TagSpec, name: str, value: str) -> bool:
        """Check whether an attribute with this value may stay on the tag."""
        spec = self.get_attribute(tag, name)
        if spec is None:
            return False
        if spec.url and not self.is_allowed_url(value):
            return False
        if spec.pattern is not None and not spec.pattern.search(value):
            return False
        return True


def _compile_attributes(raw: dict | None, context: str) -> Mapping[str, AttributeSpec]:
    attributes = {}
    for name, rules in (raw or {}).items():
        rules = rules or {}
        pattern = None
        if "pattern" in rules:
            try:
                pattern = re.compile(rules["pattern"])
            except re.error as e:
                raise ConfigurationError(
                    f"Invalid pattern for {context} attribute '{name}': {e}"
                ) from e
        attributes[name.lower()] = AttributeSpec(
            name=name.lower(),
            pattern=pattern,
            url=rules.get("url", False),
            mandatory=rules.get("mandatory", False),
        )
    return MappingProxyType(attributes)


def build_policy(raw: dict) -> Policy:
    """
    Validate and compile a raw policy mapping.

    Args:
        raw: Policy as loaded from YAML

    Returns:
        Immutable Policy

    Raises:
        ConfigurationError: If the mapping violates the schema or holds an
            invalid pattern
    """
    with open(POLICY_SCHEMA_PATH, encoding="utf-8") as f:
        schema = json.load(f)

    try:
        jsonschema.validate(instance=raw, schema=schema)
    except jsonschema.ValidationError as e:
        path = " -> ".join(str(p) for p in e.absolute_path) if e.absolute_path else "root"
        raise ConfigurationError(f"Policy validation failed at '{path}': {e.message}") from e

    tags = {}
    for name, rules in raw["tags"].items():
        rules = rules or {}
        tags[name.lower()] = TagSpec(
            name=name.lower(),
            attributes=_compile_attributes(rules.get("attributes"), name),
            extension=rules.get("extension"),
            layout=rules.get("layout", False),
        )

    return Policy(
        tags=MappingProxyType(tags),
        global_attributes=frozenset(a.lower() for a in raw.get("global_attributes", [])),
        global_attribute_prefixes=tuple(raw.get("global_attribute_prefixes", [])),
        layout_attributes=_compile_attributes(raw.get("layout_attributes"), "layout"),
        remove_with_content=frozenset(t.lower() for t in raw.get("remove_with_content", [])),
        url_protocols=frozenset(p.lower() for p in raw.get("url_protocols", [])),
    )


def load_policy_file(path: Path) -> Policy:
    """
    Load a policy from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    if not path.exists():
        raise ConfigurationError(f"Policy file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in policy file: {e}") from e

    if not raw:
        raise ConfigurationError(f"Policy file is empty: {path}")

    policy = build_policy(raw)
    logger.debug(f"Loaded policy with {len(policy.tags)} tags from {path}")
    return policy


@lru_cache(maxsize=None)
def load_policy(path: str | None = None) -> Policy:
    """
    Load a policy once per process.

    Args:
        path: Policy file path; the bundled allow-list when omitted

    Returns:
        The cached Policy for that path
    """
    return load_policy_file(Path(path) if path else DEFAULT_POLICY_PATH)
