"""Tests for settings.py — BootstrapConfig and load_settings."""

import os
from pathlib import Path

import pytest

from podstart.sessions import PHONETIC_ALPHABET
from podstart.settings import (
    DEFAULT_SETTINGS,
    BootstrapConfig,
    load_settings,
    write_default_settings,
)
from podstart.tools import CODE_SERVER_EXTENSIONS


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run from an empty cwd; drop env vars that .env loading may set."""
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    for var in ("GITHUB_TOKEN", "PODSTART_WORKSPACE"):
        monkeypatch.delenv(var, raising=False)
    yield
    for var in ("GITHUB_TOKEN", "PODSTART_WORKSPACE"):
        os.environ.pop(var, None)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    d = tmp_path / "config"
    d.mkdir()
    return d


# ---------------------------------------------------------------------------
# BootstrapConfig unit tests
# ---------------------------------------------------------------------------


class TestBootstrapConfig:
    def test_derived_paths(self, tmp_path: Path):
        cfg = BootstrapConfig(
            config_dir=tmp_path / "cfg",
            workspace_dir=tmp_path / "ws",
            home=tmp_path / "home",
        )
        assert cfg.resolved_tmux_dir == tmp_path / "ws" / ".tmux"
        assert cfg.tmux_conf == tmp_path / "ws" / ".tmux" / "tmux.conf"
        assert cfg.local_prefix == tmp_path / "home" / ".local"
        assert cfg.code_server_log == tmp_path / "cfg" / "code-server.log"

    def test_explicit_tmux_dir(self, tmp_path: Path):
        cfg = BootstrapConfig(workspace_dir=tmp_path, tmux_dir=tmp_path / "t")
        assert cfg.tmux_conf == tmp_path / "t" / "tmux.conf"

    def test_startup_command_quotes(self):
        cfg = BootstrapConfig(agent_command="claude", agent_flags=("--model", "my model"))
        assert cfg.startup_command == "claude --model 'my model'"

    def test_default_startup_command(self):
        assert BootstrapConfig().startup_command == "claude --dangerously-skip-permissions"


# ---------------------------------------------------------------------------
# load_settings
# ---------------------------------------------------------------------------


class TestLoadSettings:
    def test_defaults_without_file(self, config_dir: Path, tmp_path: Path):
        cfg = load_settings(config_dir)
        assert cfg.config_dir == config_dir
        assert cfg.workspace_dir == tmp_path / "cwd"
        assert cfg.session_names == PHONETIC_ALPHABET
        assert cfg.attach is True
        assert cfg.skip_tools == frozenset()
        assert cfg.http_timeout == 10.0
        assert cfg.install_timeout == 600.0
        assert cfg.daemon_ready_attempts == 5

    def test_default_template_loads(self, config_dir: Path):
        (config_dir / "settings.toml").write_text(DEFAULT_SETTINGS)
        cfg = load_settings(config_dir)
        assert cfg.agent_command == "claude"
        assert cfg.code_server_port == 13337

    def test_full_file(self, config_dir: Path, tmp_path: Path):
        (config_dir / "settings.toml").write_text(
            f"""
[workspace]
dir = "{tmp_path / 'ws'}"

[session]
names = ["one", "two"]
agent_command = "aider"
agent_flags = []
attach = false

[tools]
skip = ["gh", "code-server"]
code_server_autostart = true
code_server_port = 8080

[timeouts]
http = 3
install = 60
daemon_ready_attempts = 2

[git]
configure = false
"""
        )
        cfg = load_settings(config_dir)
        assert cfg.workspace_dir == (tmp_path / "ws").resolve()
        assert cfg.session_names == ("one", "two")
        assert cfg.startup_command == "aider"
        assert cfg.attach is False
        assert cfg.skip_tools == frozenset({"gh", "code-server"})
        assert cfg.code_server_autostart is True
        assert cfg.code_server_port == 8080
        assert cfg.http_timeout == 3.0
        assert cfg.install_timeout == 60.0
        assert cfg.daemon_ready_attempts == 2
        assert cfg.configure_git is False

    def test_workspace_precedence(self, config_dir: Path, tmp_path: Path, monkeypatch):
        (config_dir / "settings.toml").write_text(f'[workspace]\ndir = "{tmp_path / "toml"}"\n')
        assert load_settings(config_dir).workspace_dir == (tmp_path / "toml").resolve()

        monkeypatch.setenv("PODSTART_WORKSPACE", str(tmp_path / "env"))
        assert load_settings(config_dir).workspace_dir == (tmp_path / "env").resolve()

        assert load_settings(config_dir, workspace_dir=tmp_path / "arg").workspace_dir == tmp_path / "arg"

    def test_env_file_in_config_dir(self, config_dir: Path):
        (config_dir / ".env").write_text("GITHUB_TOKEN=ghp_from_file\n")
        assert load_settings(config_dir).github_token == "ghp_from_file"

    def test_local_env_file_wins(self, config_dir: Path, tmp_path: Path):
        (tmp_path / "cwd" / ".env").write_text("GITHUB_TOKEN=local\n")
        (config_dir / ".env").write_text("GITHUB_TOKEN=global\n")
        assert load_settings(config_dir).github_token == "local"

    def test_process_env_wins_over_env_file(self, config_dir: Path, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "from-shell")
        (config_dir / ".env").write_text("GITHUB_TOKEN=from-file\n")
        assert load_settings(config_dir).github_token == "from-shell"

    def test_invalid_toml(self, config_dir: Path):
        (config_dir / "settings.toml").write_text("[session\n")
        with pytest.raises(ValueError, match="Invalid"):
            load_settings(config_dir)

    def test_invalid_value(self, config_dir: Path):
        (config_dir / "settings.toml").write_text('[tools]\ncode_server_port = "http"\n')
        with pytest.raises(ValueError, match="Invalid value"):
            load_settings(config_dir)

    def test_empty_name_pool(self, config_dir: Path):
        (config_dir / "settings.toml").write_text("[session]\nnames = []\n")
        with pytest.raises(ValueError, match="must not be empty"):
            load_settings(config_dir)

    def test_duplicate_names(self, config_dir: Path):
        (config_dir / "settings.toml").write_text('[session]\nnames = ["a", "a"]\n')
        with pytest.raises(ValueError, match="unique"):
            load_settings(config_dir)

    def test_required_tool_cannot_be_skipped(self, config_dir: Path):
        (config_dir / "settings.toml").write_text('[tools]\nskip = ["claude", "gh"]\n')
        with pytest.raises(ValueError, match="claude"):
            load_settings(config_dir)

    @pytest.mark.parametrize(
        "toml",
        [
            '[session]\nnames = "abc"\n',
            '[session]\nagent_flags = "--verbose"\n',
            '[tools]\nskip = "gh"\n',
            '[tools]\ncode_server_extensions = "ms-python.python"\n',
        ],
    )
    def test_string_where_list_expected(self, config_dir: Path, toml: str):
        (config_dir / "settings.toml").write_text(toml)
        with pytest.raises(ValueError, match="must be a list"):
            load_settings(config_dir)

    @pytest.mark.parametrize(
        "toml",
        [
            '[session]\nattach = "false"\n',
            "[tools]\ncode_server_autostart = 1\n",
            '[git]\nconfigure = "no"\n',
        ],
    )
    def test_non_bool_flag(self, config_dir: Path, toml: str):
        (config_dir / "settings.toml").write_text(toml)
        with pytest.raises(ValueError, match="must be true or false"):
            load_settings(config_dir)

    @pytest.mark.parametrize("attempts", [0, -3])
    def test_ready_attempts_at_least_one(self, config_dir: Path, attempts: int):
        (config_dir / "settings.toml").write_text(f"[timeouts]\ndaemon_ready_attempts = {attempts}\n")
        assert load_settings(config_dir).daemon_ready_attempts == 1

    def test_editor_extensions(self, config_dir: Path):
        assert load_settings(config_dir).code_server_extensions == CODE_SERVER_EXTENSIONS
        (config_dir / "settings.toml").write_text("[tools]\ncode_server_extensions = []\n")
        assert load_settings(config_dir).code_server_extensions == ()


class TestWriteDefaultSettings:
    def test_writes_once(self, tmp_path: Path):
        target = tmp_path / "new"
        path = write_default_settings(target)
        assert path == target / "settings.toml"
        assert path.read_text() == DEFAULT_SETTINGS
        path.write_text("# mine\n")
        assert write_default_settings(target) is None
        assert path.read_text() == "# mine\n"

    def test_force_overwrites(self, tmp_path: Path):
        (tmp_path / "settings.toml").write_text("# mine\n")
        write_default_settings(tmp_path, force=True)
        assert (tmp_path / "settings.toml").read_text() == DEFAULT_SETTINGS
