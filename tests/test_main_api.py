from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ip_lookup.config import Settings
from ip_lookup.main import create_app
from ip_lookup.services.lookup_service import IpLookupService
from ip_lookup.utils.cache.memory import MemoryCache
from tests.common import FakeProvider


def _settings(**overrides) -> Settings:
    values = {
        "max_ips_per_request": 3,
        "request_timeout_ms": 2000,
        "cache_control_max_age": 120,
        "cache_control_stale_if_error": 30,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _app(*providers: FakeProvider, **settings_overrides) -> FastAPI:
    service = IpLookupService(list(providers), MemoryCache())
    return create_app(settings=_settings(**settings_overrides), service=service)


@pytest.fixture
def maxmind() -> FakeProvider:
    return FakeProvider("MaxMind", data={"asn": {"autonomous_system_number": 15169}})


@pytest.fixture
def client(maxmind: FakeProvider) -> Iterator[TestClient]:
    ipinfo = FakeProvider("IPInfo", data={"ip": "8.8.8.8", "org": "AS15169 Google LLC"})
    with TestClient(_app(maxmind, ipinfo)) as test_client:
        yield test_client


def test_ip_lookup_returns_merged_results(client: TestClient) -> None:
    response = client.get("/api/v1/ip-lookup", params={"ip": "8.8.8.8"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert len(results) == 1
    assert results[0]["ip"] == "8.8.8.8"
    assert list(results[0]["providers"]) == ["maxmind", "ipinfo"]
    assert results[0]["providers"]["ipinfo"]["org"] == "AS15169 Google LLC"
    assert "lastUpdated" in results[0]
    assert "error" not in results[0]


def test_ip_lookup_sets_cache_control_header(client: TestClient) -> None:
    response = client.get("/api/v1/ip-lookup", params={"ip": "8.8.8.8"})

    assert response.headers["Cache-Control"] == "public, max-age=120, stale-if-error=30"


def test_ip_lookup_accepts_repeated_ip_parameter(client: TestClient) -> None:
    response = client.get("/api/v1/ip-lookup", params=[("ip", "8.8.8.8"), ("ip", "2001:4860:4860::8888")])

    assert response.status_code == 200
    assert [r["ip"] for r in response.json()["results"]] == ["8.8.8.8", "2001:4860:4860::8888"]


def test_ip_lookup_reports_partial_failures() -> None:
    failing = FakeProvider("IPInfo", lookup_error=RuntimeError("quota exceeded"))
    with TestClient(_app(FakeProvider("MaxMind"), failing)) as client:
        response = client.get("/api/v1/ip-lookup", params={"ip": "1.1.1.1"})

    assert response.status_code == 200
    result = response.json()["results"][0]
    assert list(result["providers"]) == ["maxmind"]
    assert result["error"] == "Provider IPInfo lookup failed: quota exceeded"


def test_ip_lookup_returns_error_entry_when_all_providers_fail() -> None:
    with TestClient(_app(FakeProvider("MaxMind", returns_none=True))) as client:
        response = client.get("/api/v1/ip-lookup", params={"ip": "1.1.1.1"})

    assert response.status_code == 200
    result = response.json()["results"][0]
    assert result["providers"] == {}
    assert result["error"] == "All providers failed to lookup IP"


def test_ip_lookup_echoes_request_id(client: TestClient) -> None:
    response = client.get("/api/v1/ip-lookup", params={"ip": "8.8.8.8"}, headers={"X-Request-Id": "req-123"})

    assert response.headers["X-Request-Id"] == "req-123"
    assert int(response.headers["X-Response-Time"]) >= 0


def test_request_id_is_generated_when_missing(client: TestClient) -> None:
    response = client.get("/health")

    assert response.headers["X-Request-Id"]


def test_ip_lookup_rejects_too_many_ips(client: TestClient, maxmind: FakeProvider) -> None:
    params = [("ip", f"1.1.1.{i}") for i in range(4)]

    response = client.get("/api/v1/ip-lookup", params=params, headers={"X-Request-Id": "req-too-many"})

    assert response.status_code == 400
    assert response.json() == {
        "error": True,
        "code": "too_many_ips",
        "message": "Maximum of 3 IPs allowed per request",
        "requestId": "req-too-many",
    }
    assert maxmind.lookup_calls == []


def test_ip_lookup_rejects_invalid_ips(client: TestClient, maxmind: FakeProvider) -> None:
    response = client.get("/api/v1/ip-lookup", params=[("ip", "8.8.8.8"), ("ip", "qwerty")])

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "invalid_ip"
    assert body["message"] == "Invalid IP addresses found: qwerty"
    assert maxmind.lookup_calls == []


def test_ip_lookup_requires_ip(client: TestClient) -> None:
    response = client.get("/api/v1/ip-lookup")

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_ip"
    assert response.json()["message"] == "IP address is required"


def test_ip_lookup_times_out_with_server_error() -> None:
    app = _app(FakeProvider("MaxMind", hang=True), request_timeout_ms=50)
    with TestClient(app) as client:
        response = client.get("/api/v1/ip-lookup", params={"ip": "1.1.1.1"})

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "request_timeout"
    assert body["message"] == "Request timeout after 50ms"


def test_unexpected_error_returns_internal_error(monkeypatch: pytest.MonkeyPatch) -> None:
    service = IpLookupService([FakeProvider("MaxMind")], MemoryCache())

    async def _broken_metrics():
        raise RuntimeError("boom")

    monkeypatch.setattr(service, "get_metrics", _broken_metrics)
    app = create_app(settings=_settings(), service=service)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/metrics", headers={"X-Request-Id": "req-500"})

    assert response.status_code == 500
    assert response.json() == {
        "error": True,
        "code": "internal_error",
        "message": "An unexpected error occurred while processing the request.",
        "requestId": "req-500",
    }


def test_health_reports_providers_and_metrics() -> None:
    app = _app(FakeProvider("MaxMind"), FakeProvider("IPInfo", available=False))
    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")
    assert body["providers"] == [
        {"name": "MaxMind", "available": True},
        {"name": "IPInfo", "available": False},
    ]
    assert body["metrics"]["totalRequests"] == 0


def test_metrics_uses_camel_case_keys(client: TestClient) -> None:
    client.get("/api/v1/ip-lookup", params={"ip": "8.8.8.8"})
    client.get("/api/v1/ip-lookup", params={"ip": "8.8.8.8"})

    response = client.get("/metrics")

    assert response.status_code == 200
    body = response.json()
    assert body["totalRequests"] == 2
    assert body["errors"] == 0
    assert body["lastError"] is None
    assert body["cache"] == {"hits": 2, "misses": 2, "keys": 2}


def test_lifespan_initialises_and_closes_providers(maxmind: FakeProvider) -> None:
    with TestClient(_app(maxmind)):
        assert maxmind.init_calls == 1
        assert maxmind.closed is False

    assert maxmind.closed is True


def test_documentation_disabled_in_production() -> None:
    with TestClient(_app(FakeProvider("MaxMind"), app_env="production")) as client:
        assert client.get("/documentation").status_code == 404

    with TestClient(_app(FakeProvider("MaxMind"))) as client:
        assert client.get("/documentation").status_code == 200
