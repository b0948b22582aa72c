"""Tool descriptors — static metadata for every provisioned tool.

A ToolDescriptor says how to detect a tool (command on PATH or a
well-known install path), how to install it (package name, npm package,
release artifact, vendor install script; tried in that order), and,
optionally, how to compare its installed version against the latest
release.

Key entities:
  - ToolDescriptor: frozen description of one tool.
  - default_tools(): the workspace toolchain, in provisioning order.
"""

from __future__ import annotations

import platform
from dataclasses import dataclass, field
from pathlib import Path

# Release feeds
CLAUDE_LATEST_URL = (
    "https://storage.googleapis.com/claude-code-dist-86c565f3-f756-42ad-8dfa-d59b1c096819"
    "/claude-code-releases/latest"
)
CLAUDE_INSTALL_SCRIPT = "https://claude.ai/install.sh"
CLAUDE_NPM_PACKAGE = "@anthropic-ai/claude-code"
KUBECTL_STABLE_URL = "https://dl.k8s.io/release/stable.txt"
MANA_REPO = "jedarden/MANA"
MANA_LATEST_URL = f"https://api.github.com/repos/{MANA_REPO}/releases/latest"
CODE_SERVER_INSTALL_SCRIPT = "https://code-server.dev/install.sh"
CCDASH_REPO = "jedarden/ccdash"

# Installed into code-server when it is present; best-effort
CODE_SERVER_EXTENSIONS: tuple[str, ...] = (
    "ms-python.python",
    "dbaeumer.vscode-eslint",
    "esbenp.prettier-vscode",
    "hashicorp.terraform",
    "redhat.vscode-yaml",
    "ms-azuretools.vscode-docker",
)

_OS_MAP = {"linux": "linux", "darwin": "darwin"}
# Go-style arch names (kubectl, raw mana binaries)
_GO_ARCH_MAP = {"x86_64": "amd64", "amd64": "amd64", "aarch64": "arm64", "arm64": "arm64"}
# uname-style arch names (mana tarballs)
_UNAME_ARCH_MAP = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def detect_platform() -> tuple[str, str]:
    """Return (system, machine) lowercased, e.g. ('linux', 'x86_64')."""
    return platform.system().lower(), platform.machine().lower()


@dataclass(frozen=True)
class LatestSource:
    """Where to read a tool's latest released version.

    kind "text": the response body is the version/tag (first line).
    kind "github": a GitHub releases/latest JSON document (``tag_name``).
    """

    url: str
    kind: str = "text"


@dataclass(frozen=True)
class ReleaseArtifact:
    """One downloadable artifact URL template.

    Placeholders: ``{os}``, ``{arch}``, ``{version}`` (the raw latest tag).
    """

    url: str
    arch_map: dict[str, str] = field(default_factory=lambda: dict(_GO_ARCH_MAP))
    os_map: dict[str, str] = field(default_factory=lambda: dict(_OS_MAP))
    archive: bool = False  # .tar.gz containing the binary
    member: str = ""  # binary name inside the archive (defaults to binary)

    def url_for(self, system: str, machine: str, version: str = "") -> str | None:
        """Render the URL for a platform, or None if the platform is unsupported."""
        os_name = self.os_map.get(system)
        arch = self.arch_map.get(machine)
        if os_name is None or arch is None:
            return None
        return self.url.format(os=os_name, arch=arch, version=version)


@dataclass(frozen=True)
class ReleaseSource:
    """Direct binary download from a release host."""

    binary: str
    artifacts: tuple[ReleaseArtifact, ...]
    # Fixed per-user destination; None means the system bin dir (privileged).
    dest_dir: Path | None = None
    # Needed when artifact URLs contain {version}.
    version_source: LatestSource | None = None


@dataclass(frozen=True)
class InstallScript:
    """Vendor-provided install script, fetched over HTTPS and run with bash.

    ``user_local_args`` is used for the last-resort user-local attempt;
    ``{local_prefix}`` expands to the user-local prefix (``~/.local``).
    """

    url: str
    args: tuple[str, ...] = ()
    user_local_args: tuple[str, ...] | None = None
    # False for installers that target the invoking user's home
    escalate: bool = True


@dataclass(frozen=True)
class ToolDescriptor:
    """Static description of one provisioned tool. Immutable during a run."""

    name: str
    command: str
    required: bool = False
    prerequisite: bool = False  # checked before any other tool
    known_paths: tuple[Path, ...] = ()
    package: str = ""  # OS package name
    extra_packages: tuple[str, ...] = ()  # installed alongside package
    npm_package: str = ""
    release: ReleaseSource | None = None
    script: InstallScript | None = None
    version_args: tuple[str, ...] | None = None
    latest: LatestSource | None = None
    # Directories that must be on PATH once installed
    path_dirs: tuple[Path, ...] = ()
    # False: only known_paths count, a same-named command elsewhere on PATH does not
    path_lookup: bool = True

    @property
    def reconcilable(self) -> bool:
        """True if the tool exposes both a version query and a latest source."""
        return self.version_args is not None and self.latest is not None


def default_tools(home: Path | None = None) -> tuple[ToolDescriptor, ...]:
    """The workspace toolchain, in provisioning order."""
    if home is None:
        home = Path.home()
    local_bin = home / ".local" / "bin"
    mana_dir = home / ".mana"

    return (
        ToolDescriptor(
            name="tmux",
            command="tmux",
            required=True,
            prerequisite=True,
            package="tmux",
        ),
        ToolDescriptor(
            name="git",
            command="git",
            required=True,
            prerequisite=True,
            package="git",
        ),
        ToolDescriptor(
            name="node",
            command="node",
            package="nodejs",
            extra_packages=("npm",),
        ),
        ToolDescriptor(
            name="claude",
            command="claude",
            required=True,
            known_paths=(
                home / ".claude" / "local" / "bin" / "claude",
                local_bin / "claude",
            ),
            npm_package=CLAUDE_NPM_PACKAGE,
            script=InstallScript(url=CLAUDE_INSTALL_SCRIPT, escalate=False),
            version_args=("--version",),
            latest=LatestSource(CLAUDE_LATEST_URL),
            path_dirs=(local_bin,),
        ),
        ToolDescriptor(
            name="kubectl",
            command="kubectl",
            known_paths=(local_bin / "kubectl",),
            release=ReleaseSource(
                binary="kubectl",
                artifacts=(
                    ReleaseArtifact(
                        "https://dl.k8s.io/release/{version}/bin/{os}/{arch}/kubectl"
                    ),
                ),
                version_source=LatestSource(KUBECTL_STABLE_URL),
            ),
            version_args=("version", "--client"),
            latest=LatestSource(KUBECTL_STABLE_URL),
        ),
        ToolDescriptor(
            name="mana",
            command="mana",
            known_paths=(mana_dir / "mana",),
            path_lookup=False,
            release=ReleaseSource(
                binary="mana",
                artifacts=(
                    ReleaseArtifact(
                        f"https://github.com/{MANA_REPO}/releases/download/"
                        "{version}/mana-{os}-{arch}.tar.gz",
                        arch_map=dict(_UNAME_ARCH_MAP),
                        archive=True,
                    ),
                    ReleaseArtifact(
                        f"https://github.com/{MANA_REPO}/releases/latest/download/"
                        "mana-{os}-{arch}",
                    ),
                ),
                dest_dir=mana_dir,
                version_source=LatestSource(MANA_LATEST_URL, kind="github"),
            ),
            path_dirs=(mana_dir,),
        ),
        ToolDescriptor(
            name="ccdash",
            command="ccdash",
            known_paths=(local_bin / "ccdash",),
            release=ReleaseSource(
                binary="ccdash",
                artifacts=(
                    ReleaseArtifact(
                        f"https://github.com/{CCDASH_REPO}/releases/latest/download/"
                        "ccdash-{os}-{arch}",
                        os_map={"linux": "linux"},
                    ),
                ),
            ),
        ),
        ToolDescriptor(
            name="gh",
            command="gh",
            package="gh",
        ),
        ToolDescriptor(
            name="code-server",
            command="code-server",
            known_paths=(local_bin / "code-server",),
            script=InstallScript(
                url=CODE_SERVER_INSTALL_SCRIPT,
                args=("--method=standalone", "--prefix=/usr/local"),
                user_local_args=("--method=standalone", "--prefix={local_prefix}"),
            ),
        ),
    )


def find_tool(tools: tuple[ToolDescriptor, ...], name: str) -> ToolDescriptor | None:
    for tool in tools:
        if tool.name == name:
            return tool
    return None
