"""Application entry point — CLI dispatcher and exit-code mapping.

Handles three execution modes:
  1. `podstart init [--force]` — write a commented default settings.toml.
  2. `podstart status` — read-only report of tools, daemons and sessions.
  3. Default (`podstart` / `podstart run`) — provision the workspace, then
     create a new tmux session running Claude Code and attach to it.
     `--no-attach` leaves the session detached.

`-v` / `--verbose` (or PODSTART_DEBUG=1) turns on debug logging.
"""

import logging
import os
import sys

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1  # also: unexpected bootstrap errors
EXIT_REQUIRED_TOOL = 2
EXIT_POOL_EXHAUSTED = 3
EXIT_INTERRUPTED = 130

_USAGE = """\
Usage: podstart [run|status|init] [options]

  run (default)   provision tools, then start and attach a tmux session
  status          show tool, daemon and session status
  init            write a default settings.toml (--force to overwrite)

Options:
  -v, --verbose   debug logging
  --no-attach     (run) create the session but do not attach
"""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.WARNING,
    )
    logging.getLogger("podstart").setLevel(logging.DEBUG if verbose else logging.INFO)


def _init(force: bool) -> int:
    from .settings import write_default_settings
    from .utils import podstart_dir

    config_dir = podstart_dir()
    written = write_default_settings(config_dir, force=force)
    if written is None:
        print(f"{config_dir / 'settings.toml'} already exists (use --force to overwrite).")
        return EXIT_CONFIG_ERROR
    print(f"Settings written to {written}")
    return EXIT_OK


def _run(command: str, attach: bool | None) -> int:
    from libtmux import exc as tmux_exc

    from .host import ShellHost
    from .orchestrator import Bootstrap, ProvisioningAborted
    from .releases import ReleaseClient
    from .sessions import SessionPoolExhausted
    from .settings import load_settings

    logger = logging.getLogger(__name__)

    try:
        config = load_settings()
    except ValueError as e:
        print(f"Error: {e}\n")
        print("Check your settings.toml configuration.")
        return EXIT_CONFIG_ERROR

    host = ShellHost(probe_timeout=config.probe_timeout)
    with ReleaseClient(timeout=config.http_timeout, github_token=config.github_token) as client:
        bootstrap = Bootstrap(config, host, client)

        if command == "status":
            for line in bootstrap.status():
                print(line)
            return EXIT_OK

        try:
            rc = bootstrap.run(attach=attach)
        except ProvisioningAborted as e:
            print(f"Error: required tool '{e.tool}' is unavailable: {e.reason}")
            print("Fix the installation above and re-run podstart.")
            return EXIT_REQUIRED_TOOL
        except SessionPoolExhausted as e:
            print(f"Error: {e}")
            return EXIT_POOL_EXHAUSTED
        except (RuntimeError, tmux_exc.LibTmuxException) as e:
            print(f"Error: {e}")
            return EXIT_CONFIG_ERROR
        if rc != 0:
            logger.warning("tmux client exited with %d", rc)
            return EXIT_CONFIG_ERROR
        return EXIT_OK


def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]
    verbose = os.environ.get("PODSTART_DEBUG") == "1"
    if "-v" in args or "--verbose" in args:
        verbose = True
        args = [a for a in args if a not in ("-v", "--verbose")]

    if any(a in ("-h", "--help") for a in args):
        print(_USAGE)
        return

    command = args[0] if args and not args[0].startswith("-") else "run"
    options = args[1:] if args and args[0] == command else args

    _configure_logging(verbose)

    if command == "init":
        sys.exit(_init(force="--force" in options))
    if command not in ("run", "status"):
        print(f"Unknown command: {command}\n")
        print(_USAGE)
        sys.exit(EXIT_CONFIG_ERROR)

    attach = False if "--no-attach" in options else None
    try:
        sys.exit(_run(command, attach))
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
