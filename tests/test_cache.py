"""Tests for AMP cache URLs and CORS headers."""

import pytest

from amp_sanitizer.cache import (
    AMP_CACHE_DOMAINS,
    get_amp_cache_hosts,
    get_amp_cache_subdomain,
    get_amp_cache_url,
    get_cors_allowed_hosts,
    get_cors_headers,
    purge_amp_query_vars,
    validate_origin,
)


class TestGetAmpCacheSubdomain:
    """Tests for cache subdomain encoding."""

    @pytest.mark.parametrize(
        "domain,expected",
        [
            ("example.com", "example-com"),
            ("foo-bar.example.com", "foo--bar-example-com"),
            ("xn--bcher-kva.ch", "bücher-ch"),
            ("Example.COM", "example-com"),
        ],
    )
    def test_encoding(self, domain, expected):
        assert get_amp_cache_subdomain(domain) == expected


class TestGetAmpCacheUrl:
    """Tests for cache URL construction."""

    def test_https_url(self):
        assert get_amp_cache_url("https://example.com/post/?a=1#top") == (
            "https://example-com.cdn.ampproject.org/c/s/example.com/post/?a=1#top"
        )

    def test_http_url(self):
        assert get_amp_cache_url("http://example.com/post/") == (
            "https://example-com.cdn.ampproject.org/c/example.com/post/"
        )

    def test_other_cache_domain(self):
        assert get_amp_cache_url("https://example.com/", "bing-amp.com") == (
            "https://example-com.bing-amp.com/c/s/example.com/"
        )

    def test_host_relative_url_uses_home_host(self):
        assert get_amp_cache_url("/post/", home_host="example.com") == (
            "https://example-com.cdn.ampproject.org/c/example.com/post/"
        )

    def test_host_case_is_kept_in_path(self):
        assert get_amp_cache_url("https://Example.COM/Post") == (
            "https://example-com.cdn.ampproject.org/c/s/Example.COM/Post"
        )

    def test_port_and_userinfo_dropped(self):
        assert get_amp_cache_url("http://user:pw@example.com:8080/a") == (
            "https://example-com.cdn.ampproject.org/c/example.com/a"
        )

    def test_url_without_host(self):
        assert get_amp_cache_url("/post/") is None

    def test_unparseable_url(self):
        assert get_amp_cache_url("http://[::1") is None


class TestGetAmpCacheHosts:
    """Tests for cache host listing."""

    def test_hosts(self):
        hosts = get_amp_cache_hosts(["example.com", "example.com"])
        assert hosts[0] == "cdn.ampproject.org"
        assert hosts[1:] == [f"example-com.{domain}" for domain in AMP_CACHE_DOMAINS]


class TestGetCorsAllowedHosts:
    """Tests for CORS origin host listing."""

    def test_publisher_hosts_first(self):
        hosts = get_cors_allowed_hosts(["example.com", "www.example.com"])
        assert hosts[:3] == ["example.com", "www.example.com", "cdn.ampproject.org"]
        assert "example-com.cdn.ampproject.org" in hosts
        assert "www-example-com.bing-amp.com" in hosts

    def test_no_duplicates(self):
        hosts = get_cors_allowed_hosts(["example.com", "example.com"])
        assert len(hosts) == len(set(hosts))


class TestPurgeAmpQueryVars:
    """Tests for removing AMP runtime query vars."""

    def test_source_origin_purged(self):
        url, purged = purge_amp_query_vars(
            "https://example.com/feed?a=1&__amp_source_origin=https%3A%2F%2Fexample.com&b=2"
        )
        assert url == "https://example.com/feed?a=1&b=2"
        assert purged == {"__amp_source_origin": "https://example.com"}

    def test_all_runtime_vars_purged(self):
        url, purged = purge_amp_query_vars(
            "/feed?amp_latest_update_time=1&_wp_amp_action_xhr_converted&amp_last_check_time=2"
        )
        assert url == "/feed"
        assert purged == {
            "amp_latest_update_time": "1",
            "_wp_amp_action_xhr_converted": "",
            "amp_last_check_time": "2",
        }

    def test_url_without_runtime_vars_unchanged(self):
        url = "https://example.com/feed?a=1&b=%20"
        assert purge_amp_query_vars(url) == (url, {})

    def test_url_without_query_unchanged(self):
        assert purge_amp_query_vars("https://example.com/") == ("https://example.com/", {})

    def test_names_with_runtime_prefix_kept(self):
        url = "https://example.com/?__amp_source_origin_x=1"
        assert purge_amp_query_vars(url) == (url, {})


class TestValidateOrigin:
    """Tests for CORS origin checks."""

    @pytest.mark.parametrize(
        "origin,expected",
        [
            ("https://example.com", "https://example.com"),
            (" https://EXAMPLE.com ", "https://EXAMPLE.com"),
            ("https://example-com.cdn.ampproject.org", "https://example-com.cdn.ampproject.org"),
            ("https://evil.com", None),
            ("ftp://example.com", None),
            ("null", None),
            ("", None),
            (None, None),
        ],
    )
    def test_origin(self, origin, expected):
        allowed = get_cors_allowed_hosts(["example.com"])
        assert validate_origin(origin, allowed) == expected


class TestGetCorsHeaders:
    """Tests for CORS response headers."""

    @pytest.fixture
    def allowed(self):
        return get_cors_allowed_hosts(["example.com"])

    def test_origin_echoed(self, allowed):
        headers = get_cors_headers("https://example-com.cdn.ampproject.org", None, allowed)
        assert headers == [
            ("Access-Control-Allow-Origin", "https://example-com.cdn.ampproject.org"),
            ("Access-Control-Allow-Credentials", "true"),
            ("Vary", "Origin"),
        ]

    def test_source_origin_headers(self, allowed):
        headers = get_cors_headers(
            "https://example-com.cdn.ampproject.org", "https://example.com", allowed
        )
        assert headers[0] == (
            "Access-Control-Allow-Origin",
            "https://example-com.cdn.ampproject.org",
        )
        assert headers[3:] == [
            ("AMP-Access-Control-Allow-Source-Origin", "https://example.com"),
            ("Access-Control-Expose-Headers", "AMP-Access-Control-Allow-Source-Origin"),
        ]

    def test_falls_back_to_source_origin(self, allowed):
        headers = dict(get_cors_headers(None, "https://example.com", allowed))
        assert headers["Access-Control-Allow-Origin"] == "https://example.com"
        assert headers["AMP-Access-Control-Allow-Source-Origin"] == "https://example.com"

    def test_disallowed_origin_falls_back_to_source_origin(self, allowed):
        headers = dict(get_cors_headers("https://evil.com", "https://example.com", allowed))
        assert headers["Access-Control-Allow-Origin"] == "https://example.com"

    def test_nothing_allowed(self, allowed):
        assert get_cors_headers("https://evil.com", "https://evil.com", allowed) == []
        assert get_cors_headers(None, None, allowed) == []
