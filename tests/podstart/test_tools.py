"""Tests for tools.py — descriptors and release URL rendering."""

from pathlib import Path

from podstart.tools import ReleaseArtifact, default_tools, find_tool


class TestReleaseArtifact:
    def test_go_style_arch(self):
        artifact = ReleaseArtifact("https://dl.example.test/{version}/bin/{os}/{arch}/ctl")
        assert artifact.url_for("linux", "x86_64", "v1.31.0") == "https://dl.example.test/v1.31.0/bin/linux/amd64/ctl"
        assert artifact.url_for("darwin", "arm64", "v1.31.0").endswith("/darwin/arm64/ctl")

    def test_unsupported_platform(self):
        artifact = ReleaseArtifact("https://dl.example.test/{os}/{arch}")
        assert artifact.url_for("windows", "x86_64") is None
        assert artifact.url_for("linux", "riscv64") is None


class TestDefaultTools:
    def test_order_and_requirements(self, tmp_path: Path):
        tools = default_tools(tmp_path)
        assert [t.name for t in tools] == [
            "tmux", "git", "node", "claude", "kubectl", "mana", "ccdash", "gh", "code-server",
        ]
        assert {t.name for t in tools if t.required} == {"tmux", "git", "claude"}
        assert {t.name for t in tools if t.prerequisite} == {"tmux", "git"}

    def test_reconcilable_tools(self, tmp_path: Path):
        assert {t.name for t in default_tools(tmp_path) if t.reconcilable} == {"claude", "kubectl"}

    def test_paths_under_home(self, tmp_path: Path):
        tools = default_tools(tmp_path)
        claude = find_tool(tools, "claude")
        assert tmp_path / ".local" / "bin" / "claude" in claude.known_paths
        mana = find_tool(tools, "mana")
        assert mana.release.dest_dir == tmp_path / ".mana"
        assert mana.path_dirs == (tmp_path / ".mana",)
        assert mana.path_lookup is False

    def test_mana_artifacts(self, tmp_path: Path):
        mana = find_tool(default_tools(tmp_path), "mana")
        tarball, raw = mana.release.artifacts
        assert tarball.url_for("linux", "amd64", "v0.4.0").endswith("/v0.4.0/mana-linux-x86_64.tar.gz")
        assert raw.url_for("linux", "aarch64").endswith("/latest/download/mana-linux-arm64")

    def test_ccdash_linux_only(self, tmp_path: Path):
        ccdash = find_tool(default_tools(tmp_path), "ccdash")
        (artifact,) = ccdash.release.artifacts
        assert artifact.url_for("linux", "x86_64").endswith("/latest/download/ccdash-linux-amd64")
        assert artifact.url_for("darwin", "arm64") is None
        assert ccdash.known_paths == (tmp_path / ".local" / "bin" / "ccdash",)

    def test_node_brings_npm(self, tmp_path: Path):
        node = find_tool(default_tools(tmp_path), "node")
        assert node.package == "nodejs"
        assert node.extra_packages == ("npm",)
        assert not node.required

    def test_every_tool_installable(self, tmp_path: Path):
        for tool in default_tools(tmp_path):
            assert tool.package or tool.npm_package or tool.release or tool.script, tool.name

    def test_find_tool_missing(self, tmp_path: Path):
        assert find_tool(default_tools(tmp_path), "emacs") is None
