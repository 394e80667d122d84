"""Tests for the YouTube embed handler."""

import pytest

from amp_sanitizer.content import ContentFilter
from amp_sanitizer.dom import Document
from amp_sanitizer.embeds import YouTubeEmbedHandler
from amp_sanitizer.registry import HandlerRegistry

AMP_YOUTUBE = (
    '<amp-youtube data-videoid="dQw4w9WgXcQ" layout="responsive" '
    'width="600" height="338"></amp-youtube>'
)


@pytest.fixture
def handler():
    return YouTubeEmbedHandler()


class TestYouTubeExtractId:
    """Tests for YouTube id extraction."""

    @pytest.mark.parametrize(
        "value",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
            "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube-nocookie.com/embed/dQw4w9WgXcQ",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "dQw4w9WgXcQ",
        ],
    )
    def test_recognized(self, handler, value):
        assert handler.extract_id(value) == "dQw4w9WgXcQ"

    @pytest.mark.parametrize(
        "value",
        [
            "https://www.youtube.com/",
            "https://www.youtube.com/watch",
            "https://www.youtube.com/channel/UC123",
            "https://example.com/watch?v=dQw4w9WgXcQ",
            "not a valid id",
        ],
    )
    def test_not_recognized(self, handler, value):
        assert handler.extract_id(value) is None


class TestYouTubeConversion:
    """Tests for converting YouTube URLs and shortcodes."""

    def _apply(self, handler, content):
        registry = HandlerRegistry()
        with registry.scoped([handler]):
            return ContentFilter(registry).apply(content)

    def test_url_is_wrapped(self, handler):
        result = self._apply(handler, "https://www.youtube.com/watch?v=dQw4w9WgXcQ\n")
        assert result == f"<p>{AMP_YOUTUBE}</p>\n"
        assert handler.get_scripts() == {"amp-youtube": True}

    @pytest.mark.parametrize(
        "source",
        [
            "[youtube dQw4w9WgXcQ]\n",
            "[youtube id=dQw4w9WgXcQ]\n",
            "[youtube url=https://youtu.be/dQw4w9WgXcQ]\n",
        ],
    )
    def test_shortcode_aliases(self, handler, source):
        assert self._apply(handler, source) == f"{AMP_YOUTUBE}\n"

    def test_url_inside_text_not_converted(self, handler):
        result = self._apply(handler, "Watch https://youtu.be/dQw4w9WgXcQ now")
        assert "amp-youtube" not in result
        assert handler.get_scripts() == {}


class TestYouTubeRawEmbeds:
    """Tests for converting YouTube iframes."""

    def test_embed_iframe_converted(self, handler):
        document = Document.from_content(
            '<p><iframe width="560" height="315" '
            'src="https://www.youtube.com/embed/dQw4w9WgXcQ?rel=0"></iframe></p>'
        )
        handler.sanitize_raw_embeds(document)

        element = document.body.find("amp-youtube")
        assert element["data-videoid"] == "dQw4w9WgXcQ"
        assert element["width"] == "560"
        assert element["height"] == "315"
        assert handler.get_scripts() == {"amp-youtube": True}

    def test_non_numeric_dimensions_use_defaults(self, handler):
        document = Document.from_content(
            '<iframe width="100%" src="https://www.youtube.com/embed/dQw4w9WgXcQ"></iframe>'
        )
        handler.sanitize_raw_embeds(document)

        element = document.body.find("amp-youtube")
        assert element["width"] == "600"
        assert element["height"] == "338"
