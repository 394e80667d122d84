#!/usr/bin/env python3
"""
AMP Sanitizer
=============

Command-line interface for converting post content into AMP markup.

Usage:
    python convert.py convert post.html            # Print converted markup
    cat post.html | python convert.py convert -    # Read from stdin
    python convert.py convert --url https://...    # Fetch and convert a page
    python convert.py convert post.html --json     # Print the amp payload
    python convert.py resolve-scripts amp-vimeo    # Describe component scripts
    python convert.py cache-url https://...        # Print the AMP cache URL
    python convert.py cors-headers https://...     # Print CORS response headers
    python convert.py validate                     # Check configuration
"""

import json
import sys
from pathlib import Path
from urllib.parse import urlsplit

import click
import httpx

from amp_sanitizer import __version__
from amp_sanitizer.cache import (
    SOURCE_ORIGIN_QUERY_VAR,
    get_amp_cache_url,
    get_cors_allowed_hosts,
    get_cors_headers,
    purge_amp_query_vars,
)
from amp_sanitizer.config import ConversionConfig, load_conversion_config
from amp_sanitizer.embeds import EMBED_HANDLERS
from amp_sanitizer.exceptions import AmpSanitizerError
from amp_sanitizer.logger import ROOT_LOGGER_NAME, get_logger, setup_logging
from amp_sanitizer.payload import build_amp_field, build_amp_links
from amp_sanitizer.policy import DEFAULT_POLICY_PATH, load_policy_file
from amp_sanitizer.sanitizer import convert_content
from amp_sanitizer.sanitizers import SANITIZERS
from amp_sanitizer.scripts import (
    ScriptMetadataResolver,
    ScriptRegistry,
    load_default_script_registry,
)
from amp_sanitizer.utils import HTTPClient, SSRFError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "conversion.yaml"


def load_config(config_path: Path | None) -> ConversionConfig:
    """Load the conversion config, falling back to defaults when none exists."""
    if config_path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return ConversionConfig()
        config_path = DEFAULT_CONFIG_PATH
    return load_conversion_config(config_path)


def setup_logging_from_config(
    config: ConversionConfig,
    config_dir: Path,
    log_level_override: str | None = None,
    log_file_override: Path | None = None,
) -> None:
    """Configure logging based on config file and CLI overrides."""
    logging_cfg = config.logging

    # CLI flags override config file settings
    effective_log_level = log_level_override or logging_cfg.get("log_level", "WARNING")
    effective_log_file = log_file_override or logging_cfg.get("log_file")
    log_dir = config_dir if effective_log_file else None

    setup_logging(
        level=effective_log_level,
        log_file=str(effective_log_file) if effective_log_file else None,
        log_dir=log_dir,
        log_format=logging_cfg.get("log_format", "text"),
        max_bytes=logging_cfg.get("max_file_size", 5 * 1024 * 1024),
        backup_count=logging_cfg.get("backup_count", 3),
    )


def get_script_registry(config: ConversionConfig) -> ScriptRegistry:
    if config.scripts_file is not None:
        return ScriptRegistry.from_file(config.scripts_file)
    return load_default_script_registry()


def fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to conversion configuration file",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override log level from config",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path from config",
)
@click.version_option(version=__version__, prog_name="amp-sanitizer")
@click.pass_context
def cli(ctx, config: Path | None, log_level: str | None, log_file: Path | None):
    """
    AMP Sanitizer - Convert post content into valid AMP markup.

    Embeds are expanded into AMP components, disallowed markup is removed
    and the component scripts the result needs are reported.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log_level"] = log_level
    ctx.obj["log_file"] = log_file

    # If no subcommand is provided, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _prepare(ctx) -> ConversionConfig:
    """Load configuration and set up logging for a subcommand."""
    config_path = ctx.obj["config_path"]
    try:
        config = load_config(config_path)
    except AmpSanitizerError as e:
        fail(str(e))

    config_dir = config_path.parent if config_path else Path.cwd()
    setup_logging_from_config(config, config_dir, ctx.obj["log_level"], ctx.obj["log_file"])
    return config


@cli.command()
@click.argument("source", type=click.File("rb"), default="-", required=False)
@click.option("--url", "-u", type=str, default=None, help="Fetch and convert a remote page")
@click.option("--link", type=str, default=None, help="Canonical URL of the content")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the amp payload")
@click.option("--no-styles", is_flag=True, default=False, help="Do not collect stylesheets")
@click.pass_context
def convert(ctx, source, url: str | None, link: str | None, as_json: bool, no_styles: bool):
    """
    Convert content from SOURCE (a file, or - for stdin) into AMP markup.

    With --url the content is fetched instead. With --json the output is
    the payload served to AMP clients: markup, styles and resolved scripts,
    plus AMP links when the content URL is known.
    """
    config = _prepare(ctx)
    logger = get_logger(f"{ROOT_LOGGER_NAME}.cli")

    if no_styles:
        config.return_styles = False

    try:
        if url:
            logger.info(f"Fetching {url}")
            with HTTPClient.from_config(config.http) as client:
                content = client.get_text(url)
        else:
            content = source.read()

        result = convert_content(content, config)

        if not as_json:
            click.echo(result.markup, nl=False)
            return

        resolver = ScriptMetadataResolver(get_script_registry(config))
        payload = {"amp": build_amp_field(result, resolver)}
        link = link or url
        if link:
            payload["amp_links"] = build_amp_links(link, cache_domain=config.cache_domain)
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))

    except (AmpSanitizerError, SSRFError) as e:
        fail(str(e))
    except httpx.HTTPError as e:
        fail(f"Could not fetch {url}: {e}")


@cli.command("resolve-scripts")
@click.argument("handles", nargs=-1, required=True)
@click.pass_context
def resolve_scripts(ctx, handles: tuple[str, ...]):
    """
    Print script metadata for component HANDLES (e.g. amp-vimeo).

    Handles that cannot be resolved are reported and the command exits 1.
    """
    config = _prepare(ctx)

    try:
        resolver = ScriptMetadataResolver(get_script_registry(config))
    except AmpSanitizerError as e:
        fail(str(e))

    descriptors = resolver.resolve_all({handle: True for handle in handles})
    click.echo(
        json.dumps({h: d.to_dict() for h, d in descriptors.items()}, indent=2)
    )

    missing = [handle for handle in handles if handle not in descriptors]
    for handle in missing:
        click.echo(click.style(f"  ✗ Unresolved script: {handle}", fg="red"), err=True)
    if missing:
        sys.exit(1)


@cli.command("cache-url")
@click.argument("url")
@click.option("--domain", "-d", default=None, help="AMP cache domain (default from config)")
@click.pass_context
def cache_url(ctx, url: str, domain: str | None):
    """Print the AMP cache URL for URL."""
    config = _prepare(ctx)

    result = get_amp_cache_url(url, domain or config.cache_domain)
    if result is None:
        fail(f"Cannot build an AMP cache URL for {url!r}")
    click.echo(result)


@cli.command("cors-headers")
@click.argument("request_url")
@click.option("--origin", "-o", default=None, help="Value of the Origin request header")
@click.option(
    "--domain",
    "-d",
    "domains",
    multiple=True,
    help="Publisher host (repeatable, default: host of REQUEST_URL)",
)
@click.pass_context
def cors_headers(ctx, request_url: str, origin: str | None, domains: tuple[str, ...]):
    """
    Print the CORS headers for an AMP fetch of REQUEST_URL.

    The source origin is read from the __amp_source_origin query var. The
    request URL without AMP query vars is printed after the headers.
    """
    _prepare(ctx)

    try:
        url, purged = purge_amp_query_vars(request_url)
        host = urlsplit(request_url).hostname
    except ValueError as e:
        fail(f"Invalid request URL {request_url!r}: {e}")

    if not domains:
        if not host:
            fail("REQUEST_URL has no host; pass --domain")
        domains = (host,)

    allowed_hosts = get_cors_allowed_hosts(list(domains))
    headers = get_cors_headers(origin, purged.get(SOURCE_ORIGIN_QUERY_VAR), allowed_hosts)

    for name, value in headers:
        click.echo(f"{name}: {value}")
    if not headers:
        click.echo(click.style("  ! No allowed origin in request", fg="yellow"), err=True)
    click.echo(f"\n{url}")


@cli.command()
@click.pass_context
def validate(ctx):
    """
    Validate configuration files.

    Checks the conversion config, the tag/attribute policy and the
    script registry. Reports any validation issues found.
    """
    config_path = ctx.obj["config_path"] or DEFAULT_CONFIG_PATH

    errors = []
    warnings = []

    click.echo("\nValidating configuration files...\n")

    # 1. Conversion config
    click.echo(f"  Checking {config_path.name}...")
    config = None
    if not config_path.exists():
        warnings.append(f"Config file not found: {config_path} (using defaults)")
        click.echo(click.style("    ! File not found (using defaults)", fg="yellow"))
        config = ConversionConfig()
    else:
        try:
            config = load_conversion_config(config_path)
            click.echo(click.style(f"    ✓ {config_path.name} is valid", fg="green"))
        except AmpSanitizerError as e:
            errors.append(f"Config validation error: {e}")

    if config is not None:
        for sanitizer in config.sanitizers:
            if sanitizer.name not in SANITIZERS:
                errors.append(f"Unknown sanitizer '{sanitizer.name}'")
        for handler in config.embed_handlers:
            if handler.lower() not in EMBED_HANDLERS:
                errors.append(f"Unknown embed handler '{handler}'")
        if config.get_sanitizer("tag_and_attribute") is None:
            warnings.append("tag_and_attribute is not configured; it runs last regardless")

    # 2. Tag/attribute policy
    policy_path = DEFAULT_POLICY_PATH
    if config is not None:
        sanitizer = config.get_sanitizer("tag_and_attribute")
        if sanitizer and sanitizer.args.get("policy_path"):
            policy_path = Path(sanitizer.args["policy_path"])
    click.echo(f"  Checking {policy_path.name}...")
    try:
        policy = load_policy_file(policy_path)
        click.echo(
            click.style(f"    ✓ {policy_path.name} is valid ({len(policy.tags)} tags)", fg="green")
        )
    except AmpSanitizerError as e:
        errors.append(f"Policy validation error: {e}")

    # 3. Script registry
    if config is not None:
        click.echo("  Checking script registry...")
        try:
            registry = get_script_registry(config)
            click.echo(
                click.style(f"    ✓ {len(registry)} script(s) registered", fg="green")
            )
            for handler in config.embed_handlers:
                handler_class = EMBED_HANDLERS.get(handler.lower())
                if handler_class and not registry.is_registered(handler_class.amp_tag):
                    warnings.append(f"No script registered for {handler_class.amp_tag}")
        except AmpSanitizerError as e:
            errors.append(f"Script registry error: {e}")

    # Report results
    click.echo("\n" + "=" * 50)
    if errors:
        click.echo(click.style("VALIDATION FAILED", fg="red", bold=True))
        click.echo("=" * 50)
        click.echo("\nErrors:")
        for error in errors:
            click.echo(click.style(f"  ✗ {error}", fg="red"))
    else:
        click.echo(click.style("VALIDATION PASSED", fg="green", bold=True))
        click.echo("=" * 50)

    if warnings:
        click.echo("\nWarnings:")
        for warning in warnings:
            click.echo(click.style(f"  ! {warning}", fg="yellow"))

    click.echo()

    sys.exit(1 if errors else 0)


if __name__ == "__main__":
    cli()
