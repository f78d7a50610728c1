"""ambient - runtime version manager and launcher for the Ambient engine.

    Every invocation that is not ``ambient runtime ...`` or ``ambient
    --version`` is forwarded to the runtime version selected for the current
    directory, installing it first if needed.

    Returns:
        int: Exit code (the runtime's own exit code when forwarding)
"""
import logging
import sys
from pathlib import Path

from args import is_manager_command, parse_args
from cli_config import apply_config_overrides
from cli_runtime import run_runtime_command
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from errors import AmbientError, FilesystemError
from runtime.service import RuntimeService

logger = logging.getLogger(__name__)

_VERSION_FLAGS = ("--version", "-V")
_HELP_FLAGS = ("--help", "-h")


def _exit_status(code: int) -> int:
    """Map a child's return code to a process exit status.

    POSIX reports death-by-signal as a negative code; shells use 128+signal.
    """
    return code if code >= 0 else 128 - code


def _sweep(service: RuntimeService) -> None:
    try:
        swept = service.store.sweep_temp()
    except FilesystemError as exc:
        logger.warning("Skipping cleanup of interrupted installs: %s", exc.message)
        return
    if swept:
        logger.info("Removed %d leftover(s) of interrupted installs", swept)


def print_version(service: RuntimeService) -> int:
    default = service.store.get_default()
    print(f"{Constants.TOOL_NAME} {default if default is not None else 'none'}")
    return ExitCodes.SUCCESS.value


def print_help(argv, service: RuntimeService) -> int:
    """Show the runtime's own help followed by the manager's commands."""
    try:
        service.run(argv, Path.cwd())
    except AmbientError as exc:
        logger.warning("Runtime help unavailable: %s", exc.message)
    print("")
    print("Runtime version manager commands:")
    print(f"  {Constants.TOOL_NAME} runtime  Install and manage runtime versions")
    print(f"  {Constants.TOOL_NAME} runtime --help  for details")
    return ExitCodes.SUCCESS.value


def dispatch(argv, args, service: RuntimeService) -> int:
    """Route one invocation; returns an exit code."""
    if args is not None:
        return run_runtime_command(args, service)
    if argv[:1] and argv[0] in _VERSION_FLAGS:
        return print_version(service)
    if argv[:1] and argv[0] in _HELP_FLAGS:
        return print_help(argv, service)
    return service.run(argv, Path.cwd())


def main(argv=None):
    """Main function of the program."""
    argv = list(sys.argv[1:] if argv is None else argv)

    args = parse_args(argv) if is_manager_command(argv) else None
    apply_config_overrides(args)
    configure_logging(getattr(args, "LOG_LEVEL", None), getattr(args, "LOG_FILE", None))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main",
                                target=argv[0] if argv else None)
        )

    service = RuntimeService.from_config()
    if getattr(args, "runtime_command", None) != "clean":
        _sweep(service)

    try:
        code = dispatch(argv, args, service)
    except AmbientError as exc:
        logger.error("%s", exc.describe())
        sys.exit(exc.exit_code.value)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        sys.exit(ExitCodes.INTERRUPTED.value)

    sys.exit(_exit_status(code))


if __name__ == "__main__":
    main()
