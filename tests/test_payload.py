"""Tests for the amp payload builders."""

from amp_sanitizer.config import ConversionConfig
from amp_sanitizer.payload import (
    STANDALONE_CONTENT_QUERY_VAR,
    build_amp_field,
    build_amp_links,
    prepare_amp_response,
)
from amp_sanitizer.sanitizer import SanitizationResult
from amp_sanitizer.scripts import ScriptMetadataResolver, ScriptRegistry


class TestBuildAmpLinks:
    """Tests for AMP links."""

    def test_links(self):
        links = build_amp_links("https://example.com/post/")
        assert links["standalone_content"] == {
            "origin": f"https://example.com/post/?{STANDALONE_CONTENT_QUERY_VAR}=",
            "cache": (
                "https://example-com.cdn.ampproject.org/c/s/example.com/post/"
                f"?{STANDALONE_CONTENT_QUERY_VAR}="
            ),
        }
        assert links["complete_template"] == {
            "origin": "https://example.com/post/",
            "cache": "https://example-com.cdn.ampproject.org/c/s/example.com/post/",
        }

    def test_existing_query_kept(self):
        links = build_amp_links("https://example.com/?p=42")
        assert links["standalone_content"]["origin"] == (
            f"https://example.com/?p=42&{STANDALONE_CONTENT_QUERY_VAR}="
        )

    def test_separate_amp_link(self):
        links = build_amp_links("https://example.com/post/", "https://example.com/post/amp/")
        assert links["complete_template"]["origin"] == "https://example.com/post/amp/"


class TestBuildAmpField:
    """Tests for the amp field."""

    def test_scripts_are_resolved(self):
        resolver = ScriptMetadataResolver(
            ScriptRegistry({"amp-vimeo": "https://cdn.ampproject.org/v0/amp-vimeo-0.1.js"})
        )
        result = SanitizationResult(
            markup="<amp-vimeo></amp-vimeo>",
            stylesheets=[".a{}"],
            scripts={"amp-vimeo": True, "amp-unknown": True},
        )
        field = build_amp_field(result, resolver)

        assert field["markup"] == "<amp-vimeo></amp-vimeo>"
        assert field["styles"] == [".a{}"]
        assert list(field["scripts"]) == ["amp-vimeo"]
        assert field["scripts"]["amp-vimeo"]["extension_version"] == "0.1"


class TestPrepareAmpResponse:
    """Tests for the full response payload."""

    def test_response(self):
        response = prepare_amp_response(
            "https://vimeo.com/172355597\n", "https://example.com/post/"
        )

        amp = response["content"]["amp"]
        assert 'data-videoid="172355597"' in amp["markup"]
        assert amp["scripts"]["amp-vimeo"]["src"] == (
            "https://cdn.ampproject.org/v0/amp-vimeo-0.1.js"
        )
        assert amp["scripts"]["amp-vimeo"]["async"] is True
        assert response["amp_links"]["complete_template"]["origin"] == "https://example.com/post/"

    def test_custom_scripts_file(self, tmp_path):
        scripts_file = tmp_path / "scripts.yaml"
        scripts_file.write_text("scripts:\n  amp-vimeo: https://cdn.example.com/v1/amp-vimeo-2.js\n")
        config = ConversionConfig(scripts_file=scripts_file, cache_domain="bing-amp.com")

        response = prepare_amp_response("[vimeo id=1]", "https://example.com/", config)

        descriptor = response["content"]["amp"]["scripts"]["amp-vimeo"]
        assert descriptor["runtime_version"] == "1"
        assert descriptor["extension_version"] == "2"
        assert response["amp_links"]["complete_template"]["cache"].startswith(
            "https://example-com.bing-amp.com/"
        )
