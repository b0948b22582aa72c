"""podstart - Workspace bootstrapper for Claude Code dev pods.

Ensures the workspace toolchain (git, tmux, Claude Code, kubectl, mana,
gh, code-server) is installed and current, keeps the mana helper daemon
running, then drops the user into a fresh tmux session running Claude Code.

Package entry point. Exports the version string only; all functional
modules are imported lazily by main.py to keep startup fast.
"""

__version__ = "0.1.0"
