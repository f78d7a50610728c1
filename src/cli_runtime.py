"""Handlers for the ``ambient runtime ...`` subcommands."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict

from constants import ExitCodes, settings_path
from runtime.service import RuntimeService

logger = logging.getLogger(__name__)


def _progress_printer():
    """Return a download progress callback, or None when stderr is not a terminal."""
    if not sys.stderr.isatty():
        return None
    state = {"last": -1}

    def _report(done: int, total: int) -> None:
        if total <= 0:
            return
        percent = done * 100 // total
        if percent != state["last"]:
            state["last"] = percent
            sys.stderr.write(f"\rDownloading... {percent:3d}%")
            if done >= total:
                sys.stderr.write("\n")
            sys.stderr.flush()

    return _report


def cmd_list_all(args: Any, service: RuntimeService) -> int:
    for entry in service.list_remote(include_nightly=not getattr(args, "EXCLUDE_NIGHTLY", False)):
        print(entry.version)
    return ExitCodes.SUCCESS.value


def cmd_list_installed(args: Any, service: RuntimeService) -> int:
    default = service.store.get_default()
    for record in service.store.list_installed():
        marker = "*" if record.version == default else " "
        print(f"{marker} {record.version}")
    return ExitCodes.SUCCESS.value


def cmd_install(args: Any, service: RuntimeService) -> int:
    installed = service.install(args.VERSION_REQ, force=args.FORCE, progress=_progress_printer())
    print(installed.version)
    return ExitCodes.SUCCESS.value


def cmd_uninstall(args: Any, service: RuntimeService) -> int:
    if service.uninstall(args.VERSION):
        print(f"Uninstalled runtime {args.VERSION}")
    else:
        logger.warning("Runtime %s is not installed; nothing to do", args.VERSION)
    return ExitCodes.SUCCESS.value


def cmd_uninstall_all(args: Any, service: RuntimeService) -> int:
    removed = service.store.uninstall_all()
    print(f"Removed {len(removed)} runtime version{'s' if len(removed) != 1 else ''}")
    return ExitCodes.SUCCESS.value


def cmd_set_default(args: Any, service: RuntimeService) -> int:
    service.set_default(args.VERSION)
    print(f"The default runtime version is now {args.VERSION}")
    return ExitCodes.SUCCESS.value


def cmd_current(args: Any, service: RuntimeService) -> int:
    print(service.resolve_current(Path.cwd()))
    return ExitCodes.SUCCESS.value


def cmd_show_settings_path(args: Any, service: RuntimeService) -> int:
    print(settings_path(getattr(args, "CONFIG", None)))
    return ExitCodes.SUCCESS.value


def cmd_clean(args: Any, service: RuntimeService) -> int:
    swept = service.store.sweep_temp()
    print(f"Removed {swept} stale temporary entr{'ies' if swept != 1 else 'y'}")
    return ExitCodes.SUCCESS.value


HANDLERS: Dict[str, Callable[[Any, RuntimeService], int]] = {
    "list-all": cmd_list_all,
    "list": cmd_list_all,
    "list-installed": cmd_list_installed,
    "install": cmd_install,
    "uninstall": cmd_uninstall,
    "uninstall-all": cmd_uninstall_all,
    "set-default": cmd_set_default,
    "current": cmd_current,
    "show-settings-path": cmd_show_settings_path,
    "clean": cmd_clean,
}


def run_runtime_command(args: Any, service: RuntimeService) -> int:
    """Dispatch a parsed ``runtime`` subcommand; returns the exit code."""
    handler = HANDLERS[args.runtime_command]
    return handler(args, service)
