"""Argument parsing functionality for the ambient runtime manager."""

import argparse

from constants import Constants
from versioning.parser import parse_requirement, parse_version

RUNTIME_COMMAND = "runtime"


def _requirement_arg(text):
    try:
        return parse_requirement(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _version_arg(text):
    try:
        return parse_version(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"'{text}' is not a version (expected MAJOR.MINOR.PATCH)"
        ) from exc


def _common_options():
    """Options accepted by every manager subcommand."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    common.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    common.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    common.add_argument("--install-root",
                        dest="INSTALL_ROOT",
                        help="Directory holding installed runtime versions",
                        action="store",
                        type=str)
    common.add_argument("--catalog-url",
                        dest="CATALOG_URL",
                        help="URL of the runtime version catalog",
                        action="store",
                        type=str)
    return common


def build_parser():
    """Build the parser for ``ambient runtime ...``."""
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog=Constants.TOOL_NAME,
        description="Ambient runtime version manager",
        add_help=True,
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True
    runtime = commands.add_parser(RUNTIME_COMMAND, help="Install and manage runtime versions")
    sub = runtime.add_subparsers(dest="runtime_command", metavar="SUBCOMMAND")
    sub.required = True

    list_all = sub.add_parser("list-all", aliases=["list"], parents=[common],
                              help="List all published runtime versions")
    list_all.add_argument("--no-nightly",
                          dest="EXCLUDE_NIGHTLY",
                          help="Hide nightly builds",
                          action="store_true")

    sub.add_parser("list-installed", parents=[common],
                   help="List installed runtime versions (* marks the default)")

    install = sub.add_parser("install", parents=[common],
                             help="Install a runtime version (exact, range, or 'latest')")
    install.add_argument("VERSION_REQ", metavar="version", type=_requirement_arg)
    install.add_argument("-f", "--force",
                         dest="FORCE",
                         help="Reinstall even if the version is already installed",
                         action="store_true")

    uninstall = sub.add_parser("uninstall", parents=[common], help="Remove an installed runtime version")
    uninstall.add_argument("VERSION", metavar="version", type=_version_arg)

    sub.add_parser("uninstall-all", parents=[common], help="Remove all installed runtime versions")

    set_default = sub.add_parser("set-default", parents=[common],
                                 help="Use an installed version when no project requirement applies")
    set_default.add_argument("VERSION", metavar="version", type=_version_arg)

    sub.add_parser("current", parents=[common],
                   help="Show the runtime version that will be used in this directory")
    sub.add_parser("show-settings-path", parents=[common], help="Show where the settings file is located")
    sub.add_parser("clean", parents=[common], help="Remove leftovers of interrupted installs")
    return parser


def is_manager_command(argv):
    """True when ``argv`` targets the version manager rather than the runtime."""
    return bool(argv) and argv[0] == RUNTIME_COMMAND


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
