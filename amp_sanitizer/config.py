"""Conversion configuration loading and validation."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

import jsonschema
import yaml

from .exceptions import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

CONFIG_SCHEMA_PATH = Path(__file__).parent / "data" / "conversion.schema.json"

DEFAULT_SANITIZERS = ["embed", "img", "style", "tag_and_attribute"]
DEFAULT_EMBED_HANDLERS = ["vimeo", "youtube", "twitter"]


@dataclass
class SanitizerConfig:
    """Configuration for one sanitizer stage."""

    name: str
    enabled: bool = True
    args: dict = field(default_factory=dict)

    def __post_init__(self):
        """Apply environment variable overrides."""
        env_name = f"AMP_SANITIZER_{self.name.upper()}_ENABLED"
        enabled_override = os.environ.get(env_name)
        if enabled_override is not None:
            self.enabled = enabled_override.lower() in ("true", "1", "yes")
            logger.debug(f"Overriding enabled for sanitizer {self.name}: {self.enabled}")


@dataclass
class ConversionConfig:
    """Everything needed to run one content conversion."""

    sanitizers: list[SanitizerConfig] = field(
        default_factory=lambda: [SanitizerConfig(name) for name in DEFAULT_SANITIZERS]
    )
    embed_handlers: list[str] = field(default_factory=lambda: list(DEFAULT_EMBED_HANDLERS))
    embed_handler_args: dict[str, dict] = field(default_factory=dict)
    return_styles: bool = True
    wrap_paragraphs: bool = True
    scripts_file: Path | None = None
    cache_domain: str = "cdn.ampproject.org"
    logging: dict = field(default_factory=dict)
    http: dict = field(default_factory=dict)

    def get_enabled_sanitizers(self) -> list[SanitizerConfig]:
        """Return only enabled sanitizers, in configured order."""
        return [s for s in self.sanitizers if s.enabled]

    def get_sanitizer(self, name: str) -> SanitizerConfig | None:
        """Find a sanitizer by its name."""
        for sanitizer in self.sanitizers:
            if sanitizer.name == name:
                return sanitizer
        return None

    def to_sanitizer_configs(self, embed_handlers: list | None = None) -> dict[str, dict]:
        """
        Build the ordered name → args mapping for the content sanitizer.

        Args:
            embed_handlers: Handler instances injected into the ``embed``
                sanitizer's arguments

        Returns:
            Ordered mapping of enabled sanitizer names to their arguments
        """
        configs = {}
        for sanitizer in self.get_enabled_sanitizers():
            args = dict(sanitizer.args)
            if sanitizer.name == "embed" and embed_handlers is not None:
                args["embed_handlers"] = embed_handlers
            configs[sanitizer.name] = args
        return configs


def load_conversion_config(config_path: Path) -> ConversionConfig:
    """
    Load and validate a conversion configuration file.

    Args:
        config_path: Path to a YAML conversion config

    Returns:
        ConversionConfig with validated configuration

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    logger.info(f"Loading conversion configuration from {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config: {e}") from e

    if not raw_config:
        raise ConfigurationError("Config file is empty")

    validate_conversion_config(raw_config)

    return parse_conversion_config(raw_config, config_path.parent)


def parse_conversion_config(raw: dict, base_dir: Path | None = None) -> ConversionConfig:
    """
    Build a ConversionConfig from an already validated mapping.

    Relative ``scripts_file`` paths are resolved against ``base_dir``.
    """
    config = ConversionConfig()

    if "sanitizers" in raw:
        sanitizers = []
        for raw_sanitizer in raw["sanitizers"]:
            if isinstance(raw_sanitizer, str):
                raw_sanitizer = {"name": raw_sanitizer}
            sanitizers.append(
                SanitizerConfig(
                    name=raw_sanitizer["name"],
                    enabled=raw_sanitizer.get("enabled", True),
                    args=raw_sanitizer.get("args") or {},
                )
            )
        config.sanitizers = sanitizers

    embeds = raw.get("embeds", {})
    if "handlers" in embeds:
        config.embed_handlers = list(embeds["handlers"])
    config.embed_handler_args = embeds.get("args", {})

    config.return_styles = raw.get("return_styles", True)
    config.wrap_paragraphs = raw.get("wrap_paragraphs", True)

    scripts_file = raw.get("scripts_file")
    if scripts_file:
        scripts_path = Path(scripts_file)
        if base_dir and not scripts_path.is_absolute():
            scripts_path = base_dir / scripts_path
        config.scripts_file = scripts_path

    config.cache_domain = raw.get("cache_domain", config.cache_domain)
    config.logging = raw.get("logging", {})
    config.http = raw.get("http", {})

    enabled = [s.name for s in config.get_enabled_sanitizers()]
    logger.info(f"Configured sanitizers: {', '.join(enabled) or 'none'}")

    return config


def validate_conversion_config(config: dict) -> None:
    """
    Validate configuration against the bundled JSON Schema.

    Raises:
        ConfigurationError: If validation fails
    """
    try:
        with open(CONFIG_SCHEMA_PATH, encoding="utf-8") as f:
            schema = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON schema: {e}") from e

    try:
        jsonschema.validate(instance=config, schema=schema)
    except jsonschema.ValidationError as e:
        path = " -> ".join(str(p) for p in e.absolute_path) if e.absolute_path else "root"
        raise ConfigurationError(f"Configuration validation failed at '{path}': {e.message}") from e

    logger.debug("Configuration validated against schema")
