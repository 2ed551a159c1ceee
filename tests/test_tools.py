"""Unit tests for probe tools with mocked network I/O."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from scanengine.tools import (
    HttpPathProbeTool,
    PortProbeTool,
    SecurityHeadersTool,
    ToolStatus,
    target_host,
    target_url,
)


def _mock_session(get):
    """aiohttp.ClientSession double whose get() is the given callable."""
    session = MagicMock()
    session.get = MagicMock(side_effect=get)
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


def _mock_response(status=200, headers=None, body=b""):
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.content.read = AsyncMock(return_value=body)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.mark.parametrize(
    "target,host",
    [
        ("example.com", "example.com"),
        ("https://Example.com:8443/login", "example.com"),
        ("10.0.0.5:22", "10.0.0.5"),
        ("http://api.example.com/", "api.example.com"),
    ],
)
def test_target_host(target, host):
    assert target_host(target) == host


def test_target_url():
    assert target_url("example.com") == "https://example.com"
    assert target_url("http://example.com/") == "http://example.com"
    assert target_url("example.com", default_scheme="http") == "http://example.com"


# PortProbeTool


@pytest.mark.asyncio
async def test_port_probe_reports_open_ports():
    async def fake_open_connection(host, port):
        if port in (22, 443):
            writer = MagicMock()
            writer.wait_closed = AsyncMock()
            return MagicMock(), writer
        raise ConnectionRefusedError(port)

    tool = PortProbeTool(timeout=1)
    with patch("asyncio.open_connection", new=fake_open_connection):
        result = await tool.run("example.com", ports=[443, 22, 80, 22])

    assert result.status == ToolStatus.SUCCESS
    assert result.data["open_ports"] == [22, 443]
    assert result.data["probed"] == 3
    assert result.data["host"] == "example.com"


@pytest.mark.asyncio
async def test_port_probe_treats_timeouts_as_closed():
    async def hang(host, port):
        await asyncio.sleep(10)

    tool = PortProbeTool(timeout=0.01)
    with patch("asyncio.open_connection", new=hang):
        result = await tool.run("example.com", ports=[8080])

    assert result.status == ToolStatus.SUCCESS
    assert result.data["open_ports"] == []


def test_port_probe_reusable_across_event_loops():
    async def refuse(host, port):
        await asyncio.sleep(0.01)
        raise ConnectionRefusedError()

    tool = PortProbeTool(timeout=1, max_concurrent=1)
    with patch("asyncio.open_connection", new=refuse):
        first = asyncio.run(tool.run("example.com", ports=[22, 80, 443]))
        second = asyncio.run(tool.run("example.com", ports=[22, 80, 443]))

    assert first.status == ToolStatus.SUCCESS
    assert second.status == ToolStatus.SUCCESS
    assert second.data["probed"] == 3


# SecurityHeadersTool


def test_headers_analyze_missing_and_present():
    data = SecurityHeadersTool().analyze({
        "strict-transport-security": "max-age=31536000",
        "X-Frame-Options": "DENY",
    })

    missing = {h["header"] for h in data["missing_headers"]}
    assert "Strict-Transport-Security" not in missing
    assert "Content-Security-Policy" in missing
    assert set(data["present_headers"]) == {"Strict-Transport-Security", "X-Frame-Options"}
    assert data["score"] == 33


def test_headers_analyze_cors_with_credentials_is_high():
    data = SecurityHeadersTool().analyze({
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Credentials": "true",
    })

    assert data["cors_issues"][0]["severity"] == "high"


def test_headers_analyze_wildcard_cors_is_medium():
    data = SecurityHeadersTool().analyze({"Access-Control-Allow-Origin": "*"})
    assert data["cors_issues"][0]["severity"] == "medium"


def test_headers_analyze_info_disclosure():
    data = SecurityHeadersTool().analyze({"Server": "nginx/1.21.0", "X-Powered-By": "PHP/8.1"})
    assert [i["header"] for i in data["info_disclosure"]] == ["Server", "X-Powered-By"]

    clean = SecurityHeadersTool().analyze({"Server": "nginx"})
    assert clean["info_disclosure"] == []


@pytest.mark.asyncio
async def test_headers_run_success():
    response = _mock_response(headers={"X-Content-Type-Options": "nosniff"})
    session = _mock_session(lambda url, **kwargs: response)

    with patch("aiohttp.ClientSession", return_value=session):
        result = await SecurityHeadersTool().run("https://example.com")

    assert result.status == ToolStatus.SUCCESS
    assert result.data["status_code"] == 200
    assert result.data["url"] == "https://example.com"
    assert "X-Content-Type-Options" in result.data["present_headers"]


@pytest.mark.asyncio
async def test_headers_run_connection_error():
    def refuse(url, **kwargs):
        raise aiohttp.ClientConnectionError("Connection refused")

    with patch("aiohttp.ClientSession", return_value=_mock_session(refuse)):
        result = await SecurityHeadersTool().run("https://example.com")

    assert result.status == ToolStatus.ERROR
    assert "Connection refused" in result.error


@pytest.mark.asyncio
async def test_headers_run_timeout():
    def slow(url, **kwargs):
        raise asyncio.TimeoutError()

    with patch("aiohttp.ClientSession", return_value=_mock_session(slow)):
        result = await SecurityHeadersTool().run("https://example.com")

    assert result.status == ToolStatus.TIMEOUT


# HttpPathProbeTool


@pytest.mark.asyncio
async def test_path_probe_collects_responses_and_hits():
    responses = {
        "https://example.com/.env": _mock_response(200, {"Content-Type": "text/plain"}, b"DB_PASSWORD=x"),
        "https://example.com/.git/HEAD": _mock_response(404),
    }

    def get(url, **kwargs):
        if url == "https://other.example/bucket/":
            raise aiohttp.ClientConnectionError("dns failure")
        return responses[url]

    with patch("aiohttp.ClientSession", return_value=_mock_session(get)):
        result = await HttpPathProbeTool().run(
            "https://example.com",
            paths=["/.env", "/.git/HEAD", "https://other.example/bucket/"],
        )

    assert result.status == ToolStatus.SUCCESS
    by_path = {r["path"]: r for r in result.data["responses"]}
    assert by_path["/.env"]["body_preview"] == "DB_PASSWORD=x"
    assert by_path["/.env"]["content_type"] == "text/plain"
    assert by_path["/.git/HEAD"]["status"] == 404
    assert by_path["https://other.example/bucket/"]["status"] is None
    assert "dns failure" in by_path["https://other.example/bucket/"]["error"]
    assert [h["path"] for h in result.data["hits"]] == ["/.env"]


@pytest.mark.asyncio
async def test_path_probe_preserves_request_order():
    def get(url, **kwargs):
        return _mock_response(200 if url.endswith("/b") else 404)

    with patch("aiohttp.ClientSession", return_value=_mock_session(get)):
        result = await HttpPathProbeTool().run("https://example.com", paths=["/a", "/b", "/c"])

    assert [r["path"] for r in result.data["responses"]] == ["/a", "/b", "/c"]
