"""Bootstrap settings — reads settings.toml + .env to produce BootstrapConfig.

Every key is optional: a blank host with no config dir gets the defaults
below.  Environment variables (from the process or a .env file) can set
secrets and override the workspace directory.

Key entities:
  - BootstrapConfig: frozen dataclass with all resolved settings for a run.
  - load_settings(): parse .env + settings.toml → BootstrapConfig.
"""

from __future__ import annotations

import logging
import os
import shlex
import tomllib
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .sessions import PHONETIC_ALPHABET, validate_pool
from .tools import CODE_SERVER_EXTENSIONS, default_tools
from .utils import podstart_dir

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.toml"

DEFAULT_SETTINGS = """\
# podstart settings
# Every key is optional; the values below are the defaults.

[workspace]
# dir = "~/workspace"           # default: directory podstart is started from
# tmux_dir = "~/workspace/.tmux"

[session]
# names = ["alpha", "bravo", "charlie"]   # default: phonetic alphabet
agent_command = "claude"
agent_flags = ["--dangerously-skip-permissions"]
attach = true

[tools]
skip = []                       # optional tools to leave alone, e.g. ["gh"]
code_server_autostart = false
code_server_port = 13337
# code_server_extensions = ["ms-python.python"]   # [] installs none

[timeouts]
http = 10.0                     # seconds per HTTP request
probe = 10.0                    # seconds per presence/version/status query
install = 600.0                 # seconds per install command
daemon_ready_attempts = 5
daemon_ready_interval = 1.0

[git]
configure = true                # safe.directory '*' and init.defaultBranch main
"""


@dataclass(frozen=True)
class BootstrapConfig:
    """Resolved configuration for one bootstrap run."""

    # Paths
    config_dir: Path = field(default_factory=podstart_dir)
    workspace_dir: Path = field(default_factory=Path.cwd)
    tmux_dir: Path | None = None  # defaults to <workspace_dir>/.tmux
    home: Path = field(default_factory=Path.home)

    # Session
    session_names: tuple[str, ...] = PHONETIC_ALPHABET
    agent_command: str = "claude"
    agent_flags: tuple[str, ...] = ("--dangerously-skip-permissions",)
    attach: bool = True

    # Tools
    skip_tools: frozenset[str] = frozenset()
    code_server_autostart: bool = False
    code_server_port: int = 13337
    code_server_extensions: tuple[str, ...] = CODE_SERVER_EXTENSIONS

    # Timeouts
    http_timeout: float = 10.0
    probe_timeout: float = 10.0
    install_timeout: float = 600.0
    daemon_ready_attempts: int = 5
    daemon_ready_interval: float = 1.0

    # Git
    configure_git: bool = True

    # Secrets (from env / .env)
    github_token: str = ""

    # --- Derived helpers ---

    @property
    def resolved_tmux_dir(self) -> Path:
        return self.tmux_dir or self.workspace_dir / ".tmux"

    @property
    def tmux_conf(self) -> Path:
        return self.resolved_tmux_dir / "tmux.conf"

    @property
    def startup_command(self) -> str:
        """Shell text typed into the new session."""
        return shlex.join([self.agent_command, *self.agent_flags])

    @property
    def local_prefix(self) -> Path:
        return self.home / ".local"

    @property
    def code_server_log(self) -> Path:
        return self.config_dir / "code-server.log"


def _expand(value: str) -> Path:
    return Path(os.path.expanduser(value)).resolve()


def _get_bool(section: dict, name: str, key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"[{name}] {key} must be true or false, got {value!r}")
    return value


def _get_list(section: dict, name: str, key: str, default: Sequence) -> list:
    value = section.get(key, default)
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"[{name}] {key} must be a list, got {value!r}")
    return list(value)


def load_settings(
    config_dir: Path | None = None,
    workspace_dir: Path | None = None,
) -> BootstrapConfig:
    """Read .env + settings.toml and return a BootstrapConfig.

    Args:
        config_dir: Override for the config directory.
                    Defaults to ``podstart_dir()``.
        workspace_dir: Override for the workspace directory; wins over
                       both ``PODSTART_WORKSPACE`` and settings.toml.

    Raises:
        ValueError: malformed settings.toml or invalid values.
    """
    if config_dir is None:
        config_dir = podstart_dir()

    # Load .env files (local cwd first, then config_dir)
    local_env = Path(".env")
    global_env = config_dir / ".env"
    if local_env.is_file():
        load_dotenv(local_env)
    if global_env.is_file():
        load_dotenv(global_env)

    raw: dict = {}
    toml_path = config_dir / SETTINGS_FILE
    if toml_path.is_file():
        try:
            with open(toml_path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid {toml_path}: {e}") from e
    else:
        logger.debug("No %s, using defaults", toml_path)

    workspace = raw.get("workspace", {})
    session = raw.get("session", {})
    tools = raw.get("tools", {})
    timeouts = raw.get("timeouts", {})
    git = raw.get("git", {})

    if workspace_dir is None:
        env_workspace = os.getenv("PODSTART_WORKSPACE", "").strip()
        if env_workspace:
            workspace_dir = _expand(env_workspace)
        elif workspace.get("dir"):
            workspace_dir = _expand(str(workspace["dir"]))
        else:
            workspace_dir = Path.cwd()

    tmux_dir = _expand(str(workspace["tmux_dir"])) if workspace.get("tmux_dir") else None

    names = validate_pool(_get_list(session, "session", "names", PHONETIC_ALPHABET))

    skip = frozenset(str(s) for s in _get_list(tools, "tools", "skip", []))
    required = {t.name for t in default_tools() if t.required}
    if skip & required:
        raise ValueError(
            f"Required tools cannot be skipped: {', '.join(sorted(skip & required))}"
        )

    try:
        return BootstrapConfig(
            config_dir=config_dir,
            workspace_dir=workspace_dir,
            tmux_dir=tmux_dir,
            session_names=names,
            agent_command=str(session.get("agent_command", "claude")),
            agent_flags=tuple(
                str(f)
                for f in _get_list(
                    session, "session", "agent_flags", ["--dangerously-skip-permissions"]
                )
            ),
            attach=_get_bool(session, "session", "attach", True),
            skip_tools=skip,
            code_server_autostart=_get_bool(tools, "tools", "code_server_autostart", False),
            code_server_port=int(tools.get("code_server_port", 13337)),
            code_server_extensions=tuple(
                str(e)
                for e in _get_list(tools, "tools", "code_server_extensions", CODE_SERVER_EXTENSIONS)
            ),
            http_timeout=float(timeouts.get("http", 10.0)),
            probe_timeout=float(timeouts.get("probe", 10.0)),
            install_timeout=float(timeouts.get("install", 600.0)),
            daemon_ready_attempts=max(1, int(timeouts.get("daemon_ready_attempts", 5))),
            daemon_ready_interval=float(timeouts.get("daemon_ready_interval", 1.0)),
            configure_git=_get_bool(git, "git", "configure", True),
            github_token=os.getenv("GITHUB_TOKEN", ""),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value in {toml_path}: {e}") from e


def write_default_settings(config_dir: Path, force: bool = False) -> Path | None:
    """Write a commented default settings.toml.

    Returns:
        The path written, or None if it already existed and *force* is False.
    """
    toml_path = config_dir / SETTINGS_FILE
    if toml_path.exists() and not force:
        return None
    config_dir.mkdir(parents=True, exist_ok=True)
    toml_path.write_text(DEFAULT_SETTINGS, encoding="utf-8")
    return toml_path
