"""Shell profile PATH entries.

Appends ``export PATH="<dir>:$PATH"`` to ~/.bashrc (and ~/.zshrc when the
user has one) so tools installed into per-user directories stay on PATH
in future shells.  Idempotent: a directory already mentioned in a
profile is left alone.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_MARKER = "# added by podstart"


class ShellProfile:
    """The user's interactive shell startup files."""

    def __init__(self, home: Path | None = None) -> None:
        self.home = home or Path.home()

    def profile_files(self) -> list[Path]:
        files = [self.home / ".bashrc"]
        zshrc = self.home / ".zshrc"
        if zshrc.is_file():
            files.append(zshrc)
        return files

    def _display(self, directory: Path) -> str:
        """Render *directory* relative to $HOME when possible."""
        try:
            return "$HOME/" + str(directory.relative_to(self.home))
        except ValueError:
            return str(directory)

    def ensure_path_entry(self, directory: Path) -> bool:
        """Add *directory* to PATH in every profile file that lacks it.

        Returns:
            True if any file was modified.
        """
        shown = self._display(directory)
        line = f'export PATH="{shown}:$PATH"  {_MARKER}\n'
        changed = False
        for profile in self.profile_files():
            try:
                content = profile.read_text(encoding="utf-8") if profile.exists() else ""
            except OSError as e:
                logger.warning("Cannot read %s: %s", profile, e)
                continue
            if shown in content or str(directory) in content:
                continue
            try:
                with open(profile, "a", encoding="utf-8") as f:
                    if content and not content.endswith("\n"):
                        f.write("\n")
                    f.write(line)
            except OSError as e:
                logger.warning("Cannot update %s: %s", profile, e)
                continue
            logger.info("Added %s to PATH in %s", shown, profile)
            changed = True
        return changed
