import pytest
from starlette.requests import Request

from accessguard.core.config.settings import settings
from accessguard.core.dependencies.auth import get_client_ip


def make_request(headers=None, client=("192.0.2.10", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestGetClientIp:
    def test_first_forwarded_for_entry_wins(self):
        request = make_request(
            {
                "X-Forwarded-For": "203.0.113.5, 10.0.0.1",
                "CF-Connecting-IP": "198.51.100.1",
                "X-Real-IP": "198.51.100.2",
            }
        )

        assert get_client_ip(request) == "203.0.113.5"

    def test_cloudflare_header_before_real_ip(self):
        request = make_request({"CF-Connecting-IP": "198.51.100.1", "X-Real-IP": "198.51.100.2"})

        assert get_client_ip(request) == "198.51.100.1"

    def test_real_ip_header(self):
        assert get_client_ip(make_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"

    def test_socket_peer_when_no_headers(self):
        assert get_client_ip(make_request()) == "192.0.2.10"

    def test_unknown_without_any_source(self):
        assert get_client_ip(make_request(client=None)) == "unknown"

    def test_proxy_headers_ignored_when_untrusted(self, monkeypatch):
        monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
        request = make_request({"X-Forwarded-For": "203.0.113.5"})

        assert get_client_ip(request) == "192.0.2.10"

    @pytest.mark.parametrize("value", ["", " , 10.0.0.1"])
    def test_blank_forwarded_for_falls_through(self, value):
        request = make_request({"X-Forwarded-For": value, "X-Real-IP": "198.51.100.2"})

        assert get_client_ip(request) == "198.51.100.2"
