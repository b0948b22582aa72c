"""Tests for releases.py — latest-version feeds and downloads via MockTransport."""

from pathlib import Path

import httpx
import pytest

from podstart.releases import ReleaseClient
from podstart.tools import LatestSource
from podstart.versions import Version


def _client(handler, **kwargs) -> ReleaseClient:
    return ReleaseClient(transport=httpx.MockTransport(handler), **kwargs)


class TestFetchLatest:
    def test_plain_text_tag(self):
        client = _client(lambda req: httpx.Response(200, text="v1.31.2\n"))
        source = LatestSource("https://dl.example.test/stable.txt")
        assert client.fetch_latest_tag(source) == "v1.31.2"
        assert client.fetch_latest_version(source) == Version(1, 31, 2)

    def test_github_release_json(self):
        client = _client(lambda req: httpx.Response(200, json={"tag_name": "v0.4.1"}))
        source = LatestSource("https://api.github.com/repos/o/r/releases/latest", kind="github")
        assert client.fetch_latest_version(source) == Version(0, 4, 1)

    def test_github_release_without_tag(self):
        client = _client(lambda req: httpx.Response(200, json={"message": "Not Found"}))
        source = LatestSource("https://api.github.com/repos/o/r/releases/latest", kind="github")
        assert client.fetch_latest_tag(source) is None

    def test_malformed_json(self):
        client = _client(lambda req: httpx.Response(200, text="<html>"))
        source = LatestSource("https://api.github.com/repos/o/r/releases/latest", kind="github")
        assert client.fetch_latest_tag(source) is None

    def test_http_error_is_none(self, caplog):
        client = _client(lambda req: httpx.Response(503))
        assert client.fetch_latest_version(LatestSource("https://x.test/latest")) is None
        assert "failed" in caplog.text

    def test_network_error_is_none(self):
        def handler(req):
            raise httpx.ConnectError("no route", request=req)

        client = _client(handler)
        assert client.fetch_latest_version(LatestSource("https://x.test/latest")) is None

    @pytest.mark.parametrize("body", ["", "   \n", "nightly"])
    def test_empty_or_non_numeric_body(self, body):
        client = _client(lambda req: httpx.Response(200, text=body))
        assert client.fetch_latest_version(LatestSource("https://x.test/latest")) is None

    def test_follows_redirects(self):
        def handler(req):
            if req.url.path == "/latest":
                return httpx.Response(302, headers={"Location": "https://x.test/v2"})
            return httpx.Response(200, text="2.1.0")

        client = _client(handler)
        assert client.fetch_latest_version(LatestSource("https://x.test/latest")) == Version(2, 1, 0)


class TestGithubToken:
    def test_token_sent_only_to_github_api(self):
        seen: dict[str, str | None] = {}

        def handler(req):
            seen[req.url.host] = req.headers.get("Authorization")
            return httpx.Response(200, json={"tag_name": "v1.0.0"})

        client = _client(handler, github_token="secret")
        client.fetch_latest_tag(LatestSource("https://api.github.com/repos/o/r/releases/latest", "github"))
        client.fetch_text("https://example.test/install.sh")
        assert seen["api.github.com"] == "Bearer secret"
        assert seen["example.test"] is None

    def test_no_token_no_header(self):
        seen = []

        def handler(req):
            seen.append(req.headers.get("Authorization"))
            return httpx.Response(200, json={"tag_name": "v1.0.0"})

        _client(handler).fetch_latest_tag(
            LatestSource("https://api.github.com/repos/o/r/releases/latest", "github")
        )
        assert seen == [None]


class TestDownload:
    def test_writes_file(self, tmp_path: Path):
        client = _client(lambda req: httpx.Response(200, content=b"\x7fELF binary"))
        dest = tmp_path / "kubectl"
        assert client.download("https://dl.example.test/kubectl", dest) is True
        assert dest.read_bytes() == b"\x7fELF binary"

    def test_failure_removes_partial_file(self, tmp_path: Path):
        client = _client(lambda req: httpx.Response(404))
        dest = tmp_path / "kubectl"
        assert client.download("https://dl.example.test/kubectl", dest) is False
        assert not dest.exists()

    def test_fetch_text(self):
        client = _client(lambda req: httpx.Response(200, text="#!/bin/sh\necho hi\n"))
        assert client.fetch_text("https://x.test/install.sh").startswith("#!/bin/sh")

    def test_fetch_text_failure(self):
        client = _client(lambda req: httpx.Response(500))
        assert client.fetch_text("https://x.test/install.sh") is None

    def test_context_manager_closes(self):
        with _client(lambda req: httpx.Response(200)) as client:
            assert isinstance(client, ReleaseClient)
