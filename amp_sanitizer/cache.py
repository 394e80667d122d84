"""AMP cache URLs, cache hosts and CORS headers."""

import re
from urllib.parse import SplitResult, unquote_plus, urlsplit, urlunsplit

from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_DOMAIN = "cdn.ampproject.org"

AMP_CACHE_DOMAINS = (
    # Google AMP Cache
    "cdn.ampproject.org",
    # Cloudflare AMP Cache
    "amp.cloudflare.com",
    # Bing AMP Cache
    "bing-amp.com",
)

SOURCE_ORIGIN_QUERY_VAR = "__amp_source_origin"

# Query vars added by the AMP runtime that must not leak into generated links
AMP_QUERY_VARS = (
    SOURCE_ORIGIN_QUERY_VAR,
    "_wp_amp_action_xhr_converted",
    "amp_latest_update_time",
    "amp_last_check_time",
)

_AMP_QUERY_VAR_RE = re.compile(
    r"^(" + "|".join(re.escape(name) for name in AMP_QUERY_VARS) + r")(?==|$)"
)


def get_amp_cache_subdomain(domain: str) -> str:
    """
    Convert a domain into the subdomain segment used by AMP caches.

    Punycode labels are decoded to UTF-8 first, then every ``-`` becomes
    ``--`` and every ``.`` becomes ``-``: ``pub.com`` maps to ``pub-com``.
    The segment is lowercase, as DNS labels are.

    https://amp.dev/documentation/guides-and-tutorials/learn/amp-caches-and-cors/amp-cache-urls/
    """
    domain = domain.lower()
    if "xn--" in domain:
        try:
            domain = domain.encode("ascii").decode("idna")
        except UnicodeError as e:
            logger.debug(f"Could not decode IDN domain {domain}: {e}")
    return domain.replace("-", "--").replace(".", "-")


def _url_host(parts: SplitResult) -> str:
    """Host of a split URL as written, without userinfo or port."""
    host_port = parts.netloc.rpartition("@")[2]
    if host_port.startswith("["):
        return host_port[: host_port.find("]") + 1]
    return host_port.partition(":")[0]


def get_amp_cache_url(
    url: str,
    cache_domain: str = DEFAULT_CACHE_DOMAIN,
    home_host: str | None = None,
) -> str | None:
    """
    Build the AMP cache URL for a document URL.

    The document host keeps the case and IDN form it is written in; only
    userinfo and port are dropped.

    Args:
        url: Document URL; may be host-relative when ``home_host`` is given
        cache_domain: AMP cache domain
        home_host: Host used for URLs without one

    Returns:
        The cache URL, or None if the URL cannot be parsed or has no host
    """
    try:
        parsed = urlsplit(url)
    except ValueError as e:
        logger.debug(f"Cannot parse URL {url!r}: {e}")
        return None

    host = _url_host(parsed) or home_host
    if not host:
        return None

    cache_url = f"https://{get_amp_cache_subdomain(host)}.{cache_domain}/c"
    if parsed.scheme == "https":
        cache_url += "/s"
    cache_url += f"/{host}{parsed.path}"
    if parsed.query:
        cache_url += f"?{parsed.query}"
    if parsed.fragment:
        cache_url += f"#{parsed.fragment}"
    return cache_url


def get_amp_cache_hosts(domains: list[str]) -> list[str]:
    """
    List AMP cache hosts (CORS origins) for the publisher's own domains.

    Args:
        domains: Publisher hosts, e.g. the site and home hosts

    Returns:
        The legacy Google cache host followed by every subdomain/cache pair
    """
    hosts = [DEFAULT_CACHE_DOMAIN]
    for domain in dict.fromkeys(domains):
        subdomain = get_amp_cache_subdomain(domain)
        for cache_domain in AMP_CACHE_DOMAINS:
            hosts.append(f"{subdomain}.{cache_domain}")
    return hosts


def get_cors_allowed_hosts(domains: list[str]) -> list[str]:
    """Hosts allowed as CORS origins: the publisher's own plus their AMP cache hosts."""
    return list(dict.fromkeys([*domains, *get_amp_cache_hosts(domains)]))


def purge_amp_query_vars(url: str) -> tuple[str, dict[str, str]]:
    """
    Remove AMP runtime query vars from a request URL.

    Other query pairs are kept exactly as written, in order.

    Args:
        url: Request URL, absolute or host-relative

    Returns:
        The URL without AMP query vars, and the purged values keyed by name
    """
    parts = urlsplit(url)
    if not parts.query:
        return url, {}

    kept = []
    purged = {}
    for pair in parts.query.split("&"):
        match = _AMP_QUERY_VAR_RE.match(pair)
        if match:
            purged[match.group(1)] = unquote_plus(pair[match.end() + 1 :])
        else:
            kept.append(pair)

    if not purged:
        return url, {}

    logger.debug(f"Purged AMP query vars: {', '.join(purged)}")
    return urlunsplit(parts._replace(query="&".join(kept))), purged


def validate_origin(origin: str | None, allowed_hosts: list[str]) -> str | None:
    """
    Return the origin when it is an http(s) origin on an allowed host.

    Host comparison is case-insensitive.
    """
    if not origin:
        return None
    try:
        parts = urlsplit(origin.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    if parts.hostname not in {host.lower() for host in allowed_hosts}:
        logger.debug(f"Rejected CORS origin {origin}")
        return None
    return origin.strip()


def get_cors_headers(
    origin: str | None,
    source_origin: str | None,
    allowed_hosts: list[str],
) -> list[tuple[str, str]]:
    """
    Build the CORS response headers for an AMP fetch request.

    The ``Origin`` request header is echoed when allowed; otherwise the
    ``__amp_source_origin`` value is echoed when that one is allowed. A
    valid source origin is also returned in
    ``AMP-Access-Control-Allow-Source-Origin``.

    https://amp.dev/documentation/guides-and-tutorials/learn/amp-caches-and-cors/amp-cors-requests/

    Args:
        origin: Value of the ``Origin`` request header
        source_origin: Value of the ``__amp_source_origin`` query var
        allowed_hosts: Hosts accepted as origins, see :func:`get_cors_allowed_hosts`

    Returns:
        Header name/value pairs in sending order; empty when nothing is allowed
    """
    source_origin = validate_origin(source_origin, allowed_hosts)
    origin = validate_origin(origin, allowed_hosts) or source_origin

    headers = []
    if origin:
        headers += [
            ("Access-Control-Allow-Origin", origin),
            ("Access-Control-Allow-Credentials", "true"),
            ("Vary", "Origin"),
        ]
    if source_origin:
        headers += [
            ("AMP-Access-Control-Allow-Source-Origin", source_origin),
            ("Access-Control-Expose-Headers", "AMP-Access-Control-Allow-Source-Origin"),
        ]
    return headers
