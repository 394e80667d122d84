"""Tests for HTTP client module."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from amp_sanitizer.utils.http import HTTPClient, SSRFError, validate_url

URL = "https://example.com/post/"


def make_response(status_code, text=""):
    return httpx.Response(status_code, text=text, request=httpx.Request("GET", URL))


class TestValidateUrl:
    """Tests for URL validation."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/",
            "http://example.com:8080/path?q=1",
            "https://93.184.216.34/",
        ],
    )
    def test_allowed(self, url):
        assert validate_url(url) == url

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "ftp://example.com/file",
            "file:///etc/passwd",
            "https:///path",
            "http://localhost/",
            "http://app.localhost/",
            "http://127.0.0.1/",
            "http://10.0.0.5/",
            "http://192.168.1.1/",
            "http://169.254.169.254/latest/meta-data/",
            "http://[::1]/",
        ],
    )
    def test_blocked(self, url):
        with pytest.raises(SSRFError):
            validate_url(url)


class TestHTTPClient:
    """Tests for HTTPClient class."""

    def test_initialization_defaults(self):
        client = HTTPClient()
        assert client.timeout == 30
        assert client.retry_count == 3
        assert client.retry_delay == 1.0
        assert client.user_agent == "AmpSanitizer/1.0"
        client.close()

    def test_from_config(self):
        client = HTTPClient.from_config({"timeout": 5, "retry_count": 1, "user_agent": "Test/1.0"})
        assert client.timeout == 5
        assert client.retry_count == 1
        assert client.retry_delay == 1.0
        assert client.user_agent == "Test/1.0"
        client.close()

    def test_context_manager(self):
        with HTTPClient() as client:
            assert client is not None

    @patch("httpx.Client")
    def test_get_text(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.get.return_value = make_response(200, "<p>Hello</p>")
        mock_client_class.return_value = mock_client

        with HTTPClient() as client:
            assert client.get_text(URL) == "<p>Hello</p>"

    @patch("httpx.Client")
    def test_retries_on_5xx(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.get.side_effect = [make_response(503), make_response(200, "ok")]
        mock_client_class.return_value = mock_client

        with HTTPClient(retry_count=2, retry_delay=0.01) as client:
            assert client.get_text(URL) == "ok"
        assert mock_client.get.call_count == 2

    @patch("httpx.Client")
    def test_retries_on_request_error(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.get.side_effect = [
            httpx.ConnectError("Connection refused"),
            make_response(200, "ok"),
        ]
        mock_client_class.return_value = mock_client

        with HTTPClient(retry_count=1, retry_delay=0.01) as client:
            assert client.get_text(URL) == "ok"

    @patch("httpx.Client")
    def test_client_error_not_retried(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.get.return_value = make_response(404)
        mock_client_class.return_value = mock_client

        with HTTPClient(retry_count=3, retry_delay=0.01) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.get(URL)
        assert mock_client.get.call_count == 1

    @patch("httpx.Client")
    def test_all_retries_fail(self, mock_client_class):
        mock_client = MagicMock()
        mock_client.get.return_value = make_response(500)
        mock_client_class.return_value = mock_client

        with HTTPClient(retry_count=2, retry_delay=0.01) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.get(URL)
        assert mock_client.get.call_count == 3

    @patch("httpx.Client")
    def test_blocked_url_never_fetched(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client

        with HTTPClient() as client:
            with pytest.raises(SSRFError):
                client.get("http://127.0.0.1/admin")
        mock_client.get.assert_not_called()
