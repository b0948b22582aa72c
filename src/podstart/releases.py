"""Release/artifact source client over httpx.

Reads "latest version" feeds (plain-text tags or GitHub releases JSON),
downloads artifacts, and fetches vendor install scripts.  Every request
has a bounded timeout; network failures are logged and reported as
None/False so callers can degrade instead of crashing.

Key class: ReleaseClient.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from . import __version__
from .tools import LatestSource
from .versions import Version, parse_version

logger = logging.getLogger(__name__)

_GITHUB_API_HOST = "api.github.com"
_CHUNK_SIZE = 65536


class ReleaseClient:
    """Thin synchronous wrapper around httpx.Client."""

    def __init__(
        self,
        timeout: float = 10.0,
        github_token: str = "",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.github_token = github_token
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": f"podstart/{__version__}"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ReleaseClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _headers_for(self, url: str) -> dict[str, str]:
        if self.github_token and httpx.URL(url).host == _GITHUB_API_HOST:
            return {
                "Authorization": f"Bearer {self.github_token}",
                "Accept": "application/vnd.github+json",
            }
        return {}

    def _get(self, url: str) -> httpx.Response | None:
        try:
            resp = self._client.get(url, headers=self._headers_for(url))
            resp.raise_for_status()
            return resp
        except httpx.HTTPError as e:
            logger.warning("Request to %s failed: %s", url, e)
            return None

    def fetch_latest_tag(self, source: LatestSource) -> str | None:
        """Return the raw latest tag (e.g. ``v1.31.2``), or None."""
        resp = self._get(source.url)
        if resp is None:
            return None
        if source.kind == "github":
            try:
                tag = resp.json().get("tag_name", "")
            except (ValueError, AttributeError):
                logger.warning("Malformed release JSON from %s", source.url)
                return None
        else:
            lines = resp.text.strip().splitlines()
            tag = lines[0].strip() if lines else ""
        return tag or None

    def fetch_latest_version(self, source: LatestSource) -> Version | None:
        """Latest version as a triple, or None if unavailable or unparsable."""
        tag = self.fetch_latest_tag(source)
        version = parse_version(tag)
        if tag and version is None:
            logger.warning("Unparsable latest version %r from %s", tag, source.url)
        return version

    def fetch_text(self, url: str) -> str | None:
        resp = self._get(url)
        return resp.text if resp is not None else None

    def download(self, url: str, dest: Path) -> bool:
        """Stream *url* into *dest*. On failure *dest* is removed."""
        logger.info("Downloading %s ...", url)
        try:
            with self._client.stream("GET", url, headers=self._headers_for(url)) as resp:
                resp.raise_for_status()
                with open(dest, "wb") as out:
                    for chunk in resp.iter_bytes(_CHUNK_SIZE):
                        out.write(chunk)
        except (httpx.HTTPError, OSError) as e:
            logger.warning("Download of %s failed: %s", url, e)
            dest.unlink(missing_ok=True)
            return False
        return True
