"""Shared fakes: an in-memory Host, release client, and installer."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from podstart.host import CommandResult, Host
from podstart.tools import LatestSource, ToolDescriptor
from podstart.versions import Version, parse_version


class FakeHost(Host):
    """In-memory host: tools are present by name, commands are recorded."""

    def __init__(
        self,
        present: Sequence[str] = (),
        versions: dict[str, str] | None = None,
        on_path: Sequence[str] = (),
        running: Sequence[str] = (),
        handler: Callable[[list[str]], CommandResult] | None = None,
    ) -> None:
        self.present = set(present)
        self.versions = dict(versions or {})
        self.on_path = set(on_path)
        self.running = set(running)
        self.handler = handler
        # tool name -> executable path, for tools not found as /usr/bin/<command>
        self.located: dict[str, str] = {}
        self.runs: list[list[str]] = []
        self.interactive_runs: list[list[str]] = []
        self.spawned: list[list[str]] = []
        self.path_dirs: list[Path] = []
        self.root = False
        self.tty = False

    def check_presence(self, tool: ToolDescriptor) -> bool:
        return tool.name in self.present

    def resolve(self, tool: ToolDescriptor) -> str | None:
        if tool.name not in self.present:
            return None
        if tool.name in self.located:
            return self.located[tool.name]
        if tool.known_paths and not tool.path_lookup:
            return str(tool.known_paths[0])
        return f"/usr/bin/{tool.command}"

    def query_version(self, tool: ToolDescriptor) -> Version | None:
        if tool.name not in self.present:
            return None
        return parse_version(self.versions.get(tool.name))

    def query_daemon_status(self, daemon) -> bool:
        return daemon.name in self.running

    def which(self, command: str) -> str | None:
        if command in self.on_path or command in self.present:
            return f"/usr/bin/{command}"
        return None

    def run(self, argv, *, timeout=None, input=None, interactive=False, cwd=None) -> CommandResult:
        argv = [str(a) for a in argv]
        self.runs.append(argv)
        if interactive:
            self.interactive_runs.append(argv)
        if self.handler is not None:
            return self.handler(argv)
        return CommandResult(0)

    def spawn(self, argv, log_path=None) -> int | None:
        self.spawned.append([str(a) for a in argv])
        return 4242

    def extend_path(self, directory: Path) -> None:
        self.path_dirs.append(directory)

    def is_root(self) -> bool:
        return self.root

    def stdin_is_tty(self) -> bool:
        return self.tty


class FakeClient:
    """Release client returning canned latest tags; records calls."""

    def __init__(self, tags: dict[str, str | None] | None = None) -> None:
        self.tags = dict(tags or {})
        self.fetched: list[str] = []
        self.downloads: list[tuple[str, Path]] = []
        self.texts: dict[str, str] = {}
        self.payloads: dict[str, bytes] = {}

    def fetch_latest_tag(self, source: LatestSource) -> str | None:
        self.fetched.append(source.url)
        return self.tags.get(source.url)

    def fetch_latest_version(self, source: LatestSource) -> Version | None:
        return parse_version(self.fetch_latest_tag(source))

    def fetch_text(self, url: str) -> str | None:
        return self.texts.get(url)

    def download(self, url: str, dest: Path) -> bool:
        self.downloads.append((url, dest))
        if url not in self.payloads:
            return False
        dest.write_bytes(self.payloads[url])
        return True


class FakeInstaller:
    """Installer that makes a tool present at a fixed version."""

    def __init__(self, host: FakeHost, installs: dict[str, str] | None = None, fail: Sequence[str] = ()):
        self.host = host
        self.installs = dict(installs or {})
        self.fail = set(fail)
        self.calls: list[str] = []

    def install(self, tool: ToolDescriptor) -> bool:
        self.calls.append(tool.name)
        if tool.name in self.fail:
            return False
        self.host.present.add(tool.name)
        if tool.name in self.installs:
            self.host.versions[tool.name] = self.installs[tool.name]
        return True

    def add_to_path(self, directory: Path) -> None:
        self.host.extend_path(directory)


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def fake_installer(fake_host: FakeHost) -> FakeInstaller:
    return FakeInstaller(fake_host)


@pytest.fixture
def tool_factory() -> Callable[..., ToolDescriptor]:
    """Build a ToolDescriptor with test-friendly defaults."""

    def _make(name: str = "widget", **kwargs) -> ToolDescriptor:
        kwargs.setdefault("command", name)
        return ToolDescriptor(name=name, **kwargs)

    return _make
