"""Fetching remote post content for ``convert --url``."""

import ipaddress
import time
from urllib.parse import urlsplit

import httpx

from ..logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_USER_AGENT = "AmpSanitizer/1.0"

_ALLOWED_SCHEMES = ("http", "https")
_LOCAL_HOSTNAMES = ("localhost", "localhost.localdomain")
_TEXT_CONTENT_TYPES = ("text/", "application/xhtml+xml")


class SSRFError(ValueError):
    """Raised when a content URL points at a local or private network address."""


def _address_block_reason(hostname: str) -> str | None:
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return None

    if address.is_loopback:
        return "loopback"
    if address.is_link_local:
        return "link-local"
    if address.is_private or address.is_reserved:
        return "private/reserved"
    return None


def validate_url(url: str) -> str:
    """
    Check that a content URL may be fetched.

    Only http(s) URLs with a public host are accepted. Hostnames are not
    resolved; IP literals are checked directly.

    Returns:
        The URL, unchanged

    Raises:
        SSRFError: If the URL is empty, not http(s), or targets a local,
            private or reserved address
    """
    if not url or not isinstance(url, str):
        raise SSRFError("Empty or invalid URL")

    parts = urlsplit(url)
    if parts.scheme not in _ALLOWED_SCHEMES:
        raise SSRFError(f"Blocked non-HTTP scheme: {parts.scheme!r}")

    hostname = (parts.hostname or "").lower()
    if not hostname:
        raise SSRFError(f"No hostname in URL: {url}")

    if hostname in _LOCAL_HOSTNAMES or hostname.endswith(".localhost"):
        raise SSRFError(f"Blocked localhost URL: {url}")

    reason = _address_block_reason(hostname)
    if reason:
        raise SSRFError(f"Blocked {reason} IP: {hostname}")

    return url


def _is_retryable(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class HTTPClient:
    """
    Client for fetching pages to convert.

    Redirects are followed. Responses with status 429 or 5xx and transport
    errors are retried with exponential backoff; any other error status is
    raised on the first attempt.
    """

    def __init__(
        self,
        timeout: int = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        user_agent: str = DEFAULT_USER_AGENT,
        verify_ssl: bool = True,
    ):
        """
        Args:
            timeout: Request timeout in seconds
            retry_count: Retries after the first attempt
            retry_delay: Delay before the first retry, doubled on each retry
            user_agent: User-Agent header value
            verify_ssl: Whether to verify TLS certificates
        """
        self.timeout = timeout
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self.user_agent = user_agent

        self._client = httpx.Client(
            timeout=timeout,
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            verify=verify_ssl,
        )

    @classmethod
    def from_config(cls, http_config: dict) -> "HTTPClient":
        """Create a client from the ``http`` section of the conversion config."""
        return cls(
            timeout=http_config.get("timeout", DEFAULT_TIMEOUT),
            retry_count=http_config.get("retry_count", DEFAULT_RETRY_COUNT),
            retry_delay=http_config.get("retry_delay", DEFAULT_RETRY_DELAY),
            user_agent=http_config.get("user_agent", DEFAULT_USER_AGENT),
            verify_ssl=http_config.get("verify_ssl", True),
        )

    def get(self, url: str) -> httpx.Response:
        """
        GET a content URL.

        Raises:
            SSRFError: If the URL is rejected by :func:`validate_url`
            httpx.HTTPError: On a non-retryable status, or once retries run out
        """
        validate_url(url)

        attempts = self.retry_count + 1
        for attempt in range(attempts):
            try:
                logger.debug(f"GET {url} (attempt {attempt + 1}/{attempts})")
                response = self._client.get(url)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if not _is_retryable(status):
                    logger.error(f"HTTP {status} fetching {url}")
                    raise
                if attempt == attempts - 1:
                    logger.error(f"Giving up on {url} after {attempts} attempt(s)")
                    raise
                logger.warning(f"HTTP {status} fetching {url}, retrying")
            except httpx.RequestError as e:
                if attempt == attempts - 1:
                    logger.error(f"Giving up on {url} after {attempts} attempt(s)")
                    raise
                logger.warning(f"Request error fetching {url}: {e}, retrying")

            time.sleep(self.retry_delay * (2**attempt))

        raise AssertionError("unreachable")

    def get_text(self, url: str) -> str:
        """Fetch a page and return its decoded body."""
        response = self.get(url)
        content_type = response.headers.get("content-type", "")
        if content_type and not content_type.startswith(_TEXT_CONTENT_TYPES):
            logger.warning(f"Unexpected content type {content_type!r} for {url}")
        return response.text

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
