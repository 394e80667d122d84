"""Tests for the command-line interface."""

import json
import logging
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from amp_sanitizer.config import ConversionConfig
from amp_sanitizer.logger import ROOT_LOGGER_NAME
from convert import DEFAULT_CONFIG_PATH, cli, load_config, setup_logging_from_config


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


@pytest.fixture
def post_file(tmp_path):
    path = tmp_path / "post.html"
    path.write_text("Intro\n\n[vimeo id=172355597]\n", encoding="utf-8")
    return path


@pytest.fixture
def config_file(tmp_path):
    def _write(data):
        path = tmp_path / "conversion.yaml"
        with open(path, "w") as f:
            yaml.dump(data, f)
        return path

    return _write


class TestLoadConfig:
    """Tests for load_config function."""

    def test_default_config(self):
        config = load_config(None)
        assert config.embed_handlers == ["vimeo", "youtube", "twitter"]

    def test_defaults_without_config_file(self, tmp_path):
        with patch("convert.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml"):
            config = load_config(None)
        assert isinstance(config, ConversionConfig)

    def test_repository_default_exists(self):
        assert DEFAULT_CONFIG_PATH.exists()


class TestSetupLoggingFromConfig:
    """Tests for logging configuration from config."""

    def test_cli_level_overrides_config(self, tmp_path):
        config = ConversionConfig(logging={"log_level": "ERROR"})
        setup_logging_from_config(config, tmp_path, log_level_override="DEBUG")
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG

    def test_log_file_relative_to_config(self, tmp_path):
        config = ConversionConfig(logging={"log_file": "convert.log"})
        setup_logging_from_config(config, tmp_path)
        assert (tmp_path / "convert.log").exists()


class TestCliGroup:
    """Tests for the command group."""

    def test_help_without_command(self, runner):
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "convert" in result.output
        assert "resolve-scripts" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_invalid_config(self, runner, config_file, post_file):
        path = config_file({"return_styles": "sometimes"})
        result = runner.invoke(cli, ["--config", str(path), "convert", str(post_file)])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestConvertCommand:
    """Tests for the convert command."""

    def test_convert_file(self, runner, post_file):
        result = runner.invoke(cli, ["convert", str(post_file)])
        assert result.exit_code == 0
        assert "<p>Intro</p>" in result.stdout
        assert '<amp-vimeo data-videoid="172355597"' in result.stdout

    def test_convert_stdin(self, runner):
        result = runner.invoke(cli, ["convert", "-"], input="https://youtu.be/dQw4w9WgXcQ\n")
        assert result.exit_code == 0
        assert '<amp-youtube data-videoid="dQw4w9WgXcQ"' in result.stdout

    def test_json_payload(self, runner, post_file):
        result = runner.invoke(cli, ["convert", str(post_file), "--json"])
        assert result.exit_code == 0

        payload = json.loads(result.stdout)
        assert "amp-vimeo" in payload["amp"]["markup"]
        assert payload["amp"]["scripts"]["amp-vimeo"]["extension_type"] == "custom-element"
        assert "amp_links" not in payload

    def test_json_payload_with_link(self, runner, post_file):
        result = runner.invoke(
            cli, ["convert", str(post_file), "--json", "--link", "https://example.com/post/"]
        )
        payload = json.loads(result.stdout)
        assert payload["amp_links"]["complete_template"]["cache"] == (
            "https://example-com.cdn.ampproject.org/c/s/example.com/post/"
        )

    def test_no_styles(self, runner, tmp_path):
        path = tmp_path / "styled.html"
        path.write_text('<p style="color:red">Hi</p>')
        result = runner.invoke(cli, ["convert", str(path), "--json", "--no-styles"])
        assert json.loads(result.stdout)["amp"]["styles"] == []

    def test_styles_included_by_default(self, runner, tmp_path):
        path = tmp_path / "styled.html"
        path.write_text('<p style="color:red">Hi</p>')
        result = runner.invoke(cli, ["convert", str(path), "--json"])
        assert len(json.loads(result.stdout)["amp"]["styles"]) == 1

    @patch("convert.HTTPClient")
    def test_convert_url(self, mock_client_class, runner):
        client = mock_client_class.from_config.return_value.__enter__.return_value
        client.get_text.return_value = "https://vimeo.com/172355597\n"

        result = runner.invoke(
            cli, ["convert", "--url", "https://example.com/post/", "--json"]
        )

        assert result.exit_code == 0
        client.get_text.assert_called_once_with("https://example.com/post/")
        payload = json.loads(result.stdout)
        assert "amp-vimeo" in payload["amp"]["scripts"]
        assert payload["amp_links"]["complete_template"]["origin"] == "https://example.com/post/"

    def test_convert_blocked_url(self, runner):
        result = runner.invoke(cli, ["convert", "--url", "http://127.0.0.1/"])
        assert result.exit_code == 1
        assert "Blocked" in result.output

    def test_disabled_sanitizer_from_config(self, runner, config_file, tmp_path):
        path = config_file({"sanitizers": ["tag_and_attribute"]})
        post = tmp_path / "image.html"
        post.write_text('<p><img src="a.jpg"></p>')

        result = runner.invoke(cli, ["--config", str(path), "convert", str(post)])

        assert result.exit_code == 0
        assert "amp-img" not in result.stdout
        assert "<img" not in result.stdout


class TestResolveScriptsCommand:
    """Tests for the resolve-scripts command."""

    def test_resolves_handles(self, runner):
        result = runner.invoke(cli, ["resolve-scripts", "amp-vimeo", "amp-mustache"])
        assert result.exit_code == 0

        descriptors = json.loads(result.stdout)
        assert descriptors["amp-vimeo"]["extension_type"] == "custom-element"
        assert descriptors["amp-mustache"]["extension_type"] == "custom-template"

    def test_unresolved_handle(self, runner):
        result = runner.invoke(cli, ["resolve-scripts", "amp-vimeo", "amp-unknown"])
        assert result.exit_code == 1
        assert "amp-vimeo" in json.loads(result.stdout)
        assert "Unresolved script: amp-unknown" in result.output

    def test_requires_handles(self, runner):
        result = runner.invoke(cli, ["resolve-scripts"])
        assert result.exit_code == 2


class TestCacheUrlCommand:
    """Tests for the cache-url command."""

    def test_default_domain(self, runner):
        result = runner.invoke(cli, ["cache-url", "https://example.com/post/"])
        assert result.exit_code == 0
        assert result.stdout.strip() == (
            "https://example-com.cdn.ampproject.org/c/s/example.com/post/"
        )

    def test_custom_domain(self, runner):
        result = runner.invoke(
            cli, ["cache-url", "https://example.com/", "--domain", "amp.cloudflare.com"]
        )
        assert result.stdout.strip() == "https://example-com.amp.cloudflare.com/c/s/example.com/"

    def test_url_without_host(self, runner):
        result = runner.invoke(cli, ["cache-url", "/relative"])
        assert result.exit_code == 1


class TestCorsHeadersCommand:
    """Tests for the cors-headers command."""

    def test_source_origin_from_query(self, runner):
        result = runner.invoke(
            cli,
            [
                "cors-headers",
                "https://example.com/feed?a=1&__amp_source_origin=https%3A%2F%2Fexample.com",
                "--origin",
                "https://example-com.cdn.ampproject.org",
            ],
        )
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "Access-Control-Allow-Origin: https://example-com.cdn.ampproject.org"
        assert "AMP-Access-Control-Allow-Source-Origin: https://example.com" in lines
        assert lines[-1] == "https://example.com/feed?a=1"

    def test_explicit_domains(self, runner):
        result = runner.invoke(
            cli,
            [
                "cors-headers",
                "/feed",
                "--origin",
                "https://www-example-com.bing-amp.com",
                "--domain",
                "www.example.com",
            ],
        )
        assert result.exit_code == 0
        assert "Access-Control-Allow-Origin: https://www-example-com.bing-amp.com" in result.stdout

    def test_disallowed_origin(self, runner):
        result = runner.invoke(
            cli, ["cors-headers", "https://example.com/feed", "--origin", "https://evil.com"]
        )
        assert result.exit_code == 0
        assert "Access-Control" not in result.stdout
        assert "No allowed origin" in result.stderr

    def test_relative_url_requires_domain(self, runner):
        result = runner.invoke(cli, ["cors-headers", "/feed"])
        assert result.exit_code == 1
        assert "--domain" in result.stderr


class TestValidateCommand:
    """Tests for the validate command."""

    def test_repository_config_passes(self, runner):
        result = runner.invoke(cli, ["validate"])
        assert result.exit_code == 0
        assert "VALIDATION PASSED" in result.output

    def test_unknown_sanitizer_fails(self, runner, config_file):
        path = config_file({"sanitizers": ["img", "bogus"]})
        result = runner.invoke(cli, ["--config", str(path), "validate"])
        assert result.exit_code == 1
        assert "VALIDATION FAILED" in result.output
        assert "bogus" in result.output

    def test_unknown_embed_handler_fails(self, runner, config_file):
        path = config_file({"embeds": {"handlers": ["flickr"]}})
        result = runner.invoke(cli, ["--config", str(path), "validate"])
        assert result.exit_code == 1
        assert "flickr" in result.output

    def test_schema_error_fails(self, runner, config_file):
        path = config_file({"wrap_paragraphs": 3})
        result = runner.invoke(cli, ["--config", str(path), "validate"])
        assert result.exit_code == 1
        assert "Config validation error" in result.output

    def test_missing_policy_file_fails(self, runner, config_file, tmp_path):
        path = config_file(
            {
                "sanitizers": [
                    {"name": "tag_and_attribute", "args": {"policy_path": str(tmp_path / "none.yaml")}}
                ]
            }
        )
        result = runner.invoke(cli, ["--config", str(path), "validate"])
        assert result.exit_code == 1
        assert "Policy validation error" in result.output
