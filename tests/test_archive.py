import json
import socket

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from subkrek import (
    ArchiveClient,
    ArchiveParseError,
    ArchiveUnavailable,
    extract_host,
    extract_hostnames,
    parse_archive_body,
)

APEX = "example.com"


@pytest.fixture(autouse=True)
def no_proxy_env(monkeypatch):
    # ArchiveClient honours proxy settings, local test servers must be reached directly
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize("record,host", [
    ("http://www.example.com/", "www.example.com"),
    ("https://API.Example.com:443/v1?x=1#top", "api.example.com"),
    ("http://user:pw@mail.example.com/inbox", "mail.example.com"),
    ("ftp.example.com/pub/file.tar.gz", "ftp.example.com"),
    ("http://dev.example.com:8080", "dev.example.com"),
    ("  https://blog.example.com/post  ", "blog.example.com"),
    ("", None),
    ("/relative/path", None),
])
def test_extract_host(record, host):
    assert extract_host(record) == host


def test_parse_cdx_json_skips_header_row():
    body = json.dumps([["original"], ["http://www.example.com/"], ["https://www.example.com/a"]])
    assert parse_archive_body(body) == ["http://www.example.com/", "https://www.example.com/a"]


def test_parse_cdx_json_uses_original_column():
    body = json.dumps([
        ["urlkey", "timestamp", "original", "statuscode"],
        ["com,example,a)/", "20200101000000", "http://a.example.com/", "200"],
        ["com,example,b)/", "20200101000000"],
    ])
    assert parse_archive_body(body) == ["http://a.example.com/"]


def test_parse_json_objects_and_strings():
    body = json.dumps([{"original": "http://a.example.com/"}, {"url": "http://b.example.com/"},
                       "http://c.example.com/", 42, None, {"other": 1}])
    assert parse_archive_body(body) == [
        "http://a.example.com/", "http://b.example.com/", "http://c.example.com/",
    ]


def test_parse_plain_text_lines():
    body = (
        "com,example,www)/ 20200101000000 http://www.example.com/ text/html 200 ABC 512\n"
        "\n"
        "http://mail.example.com/login\n"
    )
    assert parse_archive_body(body) == ["http://www.example.com/", "http://mail.example.com/login"]


@pytest.mark.parametrize("body", ["", "   \n", "[]", "[[\"original\"]]"])
def test_parse_empty_bodies(body):
    assert parse_archive_body(body) == []


def test_truncated_json_is_not_fatal():
    body = '[["original"],\n["http://www.example.com/"'
    hosts = extract_hostnames(parse_archive_body(body), APEX)
    assert hosts == set()


def test_duplicate_urls_collapse_to_one_host():
    records = [
        "http://www.example.com/",
        "https://www.example.com/about",
        "http://WWW.example.com:80/index.html?page=2",
        "http://www.example.com./",
    ]
    assert extract_hostnames(records, APEX) == {"www.example.com"}


def test_noisy_records_are_dropped():
    records = [
        "http://api.example.com/v2",
        "http://evil.org/http://x.example.com",
        "http://*.example.com/",
        "http://%20bad.example.com/",
        "http://under_score.example.com/",
        "not a url at all",
        "http://[::1]:80/",
        "http://example.com/",
    ]
    assert extract_hostnames(records, APEX) == {"api.example.com", "example.com"}


def _cdx_server(handler) -> TestServer:
    app = web.Application()
    app.router.add_get("/cdx", handler)
    return TestServer(app)


@pytest.mark.asyncio
async def test_fetch_hostnames_queries_wildcard_and_dedupes():
    seen = {}

    async def handler(request):
        seen.update(request.query)
        rows = [["original"], ["http://www.example.com/"], ["https://www.example.com/x"],
                ["http://old.example.com/"], ["http://bad_host.example.com/"]]
        return web.json_response(rows)

    async with _cdx_server(handler) as server:
        async with ArchiveClient(str(server.make_url("/cdx")), timeout=5) as client:
            hosts = await client.fetch_hostnames(APEX)

    assert hosts == {"www.example.com", "old.example.com"}
    assert seen["url"] == "*.example.com"
    assert seen["output"] == "json"


@pytest.mark.asyncio
async def test_non_success_status_is_unavailable():
    async def handler(request):
        return web.Response(status=503, text="busy")

    async with _cdx_server(handler) as server:
        async with ArchiveClient(str(server.make_url("/cdx")), timeout=5) as client:
            with pytest.raises(ArchiveUnavailable) as exc:
                await client.fetch_hostnames(APEX)
    assert "503" in str(exc.value)


@pytest.mark.asyncio
async def test_binary_body_is_a_parse_error():
    async def handler(request):
        return web.Response(body=b"\xff\xfe\x00\x81garbage")

    async with _cdx_server(handler) as server:
        async with ArchiveClient(str(server.make_url("/cdx")), timeout=5) as client:
            with pytest.raises(ArchiveParseError):
                await client.fetch_hostnames(APEX)


@pytest.mark.asyncio
async def test_empty_archive_is_not_an_error():
    async def handler(request):
        return web.json_response([])

    async with _cdx_server(handler) as server:
        async with ArchiveClient(str(server.make_url("/cdx")), timeout=5) as client:
            assert await client.fetch_hostnames(APEX) == set()


@pytest.mark.asyncio
async def test_transport_failure_is_unavailable():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    async with ArchiveClient(f"http://127.0.0.1:{port}/cdx", timeout=5) as client:
        with pytest.raises(ArchiveUnavailable):
            await client.fetch_hostnames(APEX)


@pytest.mark.asyncio
async def test_client_must_be_started():
    with pytest.raises(RuntimeError):
        await ArchiveClient().fetch_body(APEX)
