"""Settings validation, client address resolution and error summaries."""

import pytest
from pydantic import ValidationError
from starlette.requests import Request

from staffing_api.config import Settings
from staffing_api.main import cors_origins
from staffing_api.middleware.error_handler import summarize_field_errors
from staffing_api.security.rate_limit import get_real_client_ip

SECRET = "k3y-With-Plenty-0f-Distinct-Chars!?#"


def make_settings(**overrides) -> Settings:
    values = {"database_url": "postgresql://app:pw@db/staffing", "jwt_secret": SECRET}
    values.update(overrides)
    return Settings(**values)


def make_request(peer: str, forwarded: str | None = None) -> Request:
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers, "client": (peer, 5000)})


class TestSettings:
    def test_postgres_url_uses_asyncpg(self):
        settings = make_settings(database_url="postgres://app:pw@db/staffing?sslmode=require")

        assert settings.async_database_url == "postgresql+asyncpg://app:pw@db/staffing?ssl=require"

    def test_sqlite_url_is_left_alone(self):
        settings = make_settings(database_url="sqlite+aiosqlite:///:memory:")

        assert settings.is_sqlite
        assert settings.async_database_url == "sqlite+aiosqlite:///:memory:"

    def test_unsupported_database_is_refused(self):
        with pytest.raises(ValidationError):
            make_settings(database_url="mysql://db/staffing")

    def test_debug_is_refused_in_production(self):
        with pytest.raises(ValidationError):
            make_settings(environment="production", debug=True)

    def test_sqlite_is_refused_in_production(self):
        with pytest.raises(ValidationError):
            make_settings(environment="production", database_url="sqlite+aiosqlite:///app.db")

    def test_month_length_must_be_positive(self):
        with pytest.raises(ValidationError):
            make_settings(days_per_month=0)

    def test_csv_lists(self):
        settings = make_settings(cors_origins=" https://a.example , ,https://b.example", trusted_proxies="")

        assert settings.cors_origins_list == ["https://a.example", "https://b.example"]
        assert settings.trusted_proxies_list == []

    def test_wildcard_cors_origin_is_refused(self):
        with pytest.raises(ValueError):
            cors_origins(make_settings(cors_origins="*"))


class TestClientAddress:
    def test_forwarded_header_from_untrusted_peer_is_ignored(self):
        request = make_request("203.0.113.9", forwarded="198.51.100.1")

        assert get_real_client_ip(request) == "203.0.113.9"

    def test_forwarded_header_from_local_proxy_is_used(self):
        request = make_request("127.0.0.1", forwarded="198.51.100.1, 10.0.0.2")

        assert get_real_client_ip(request) == "198.51.100.1"

    def test_garbage_forwarded_value_falls_back_to_peer(self):
        request = make_request("127.0.0.1", forwarded="not-an-ip")

        assert get_real_client_ip(request) == "127.0.0.1"


class TestFieldErrorSummary:
    def test_keeps_last_location_and_caps_count(self):
        errors = [{"loc": ("body", f"field{i}"), "msg": "Field required"} for i in range(5)]

        summary = summarize_field_errors(errors)

        assert summary == "field0: Field required; field1: Field required; field2: Field required"

    def test_private_fields_are_skipped(self):
        assert summarize_field_errors([{"loc": ("body", "_internal"), "msg": "bad"}]) is None
