# src/gvs/cli.py

import argparse
import os
import sys
from typing import List, Optional

from pick import pick

from gvs import log_utils
from gvs.config import GvsConfig, load_config
from gvs.constants import (
    DISABLE_FILE_LOGGING_ENV_VAR,
    MSG_NOTHING_TO_DELETE,
    MSG_PATH_HINT,
    MSG_UNUSED_DELETED,
)
from gvs.exceptions import GvsError
from gvs.utils import detect_platform, get_user_agent
from gvs.versions.interfaces import ResolvedVersion
from gvs.versions.manager import VersionSwitcher


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the gvs command."""
    parser = argparse.ArgumentParser(
        prog="gvs",
        description="gvs - manage multiple active Go versions",
        epilog=MSG_PATH_HINT,
    )
    parser.add_argument(
        "--show-all",
        action="store_true",
        help="Show both stable and unstable versions.",
    )
    action_group = parser.add_mutually_exclusive_group()
    action_group.add_argument(
        "--install-latest",
        action="store_true",
        help="Install latest stable version.",
    )
    action_group.add_argument(
        "--install-version",
        metavar="VERSION",
        help="Install the newest version matching VERSION (e.g. 1.21, 1.21.3 or 1.22rc1).",
    )
    action_group.add_argument(
        "--delete-unused",
        action="store_true",
        help="Delete all unused versions that were installed before.",
    )
    parser.add_argument(
        "--refresh-versions",
        action="store_true",
        help="Fetch again the versions in case the cached ones are stale.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to a gvs.yaml configuration file.",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Log level (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=get_user_agent().replace("/", " "),
    )
    return parser


def _setup_file_logging(config: GvsConfig) -> None:
    """Attach the rotating log file in the app directory unless disabled by the environment."""
    if os.environ.get(DISABLE_FILE_LOGGING_ENV_VAR):
        return
    try:
        log_utils.add_file_logging(config.app_dir, config.log_level or "INFO")
    except OSError as e:
        log_utils.logger.warning(f"Could not enable file logging in {config.app_dir}: {e}")


def select_version(
    versions: List[ResolvedVersion], show_all: bool
) -> Optional[ResolvedVersion]:
    """
    Let the user choose a version from an interactive menu.

    Returns:
        Optional[ResolvedVersion]: The selection, or None when there is nothing to choose from.
    """
    if not versions:
        log_utils.logger.info("No versions available to select.")
        return None

    names = [version.prompt_name(show_all) for version in versions]
    _option, index = pick(names, "Select go version:", indicator="*")
    return versions[index]


def run(args: argparse.Namespace, switcher: VersionSwitcher) -> None:
    """
    Execute the action selected on the command line.

    Raises:
        GvsError: Any failure of the selected operation.
    """
    switcher.get_versions(force_refresh=args.refresh_versions)

    if args.delete_unused:
        log_utils.logger.debug("delete-unused option selected")
        deleted_count = switcher.delete_unused_versions()
        if deleted_count > 0:
            log_utils.logger.info(MSG_UNUSED_DELETED)
        else:
            log_utils.logger.info(MSG_NOTHING_TO_DELETE)
        return

    os_name, arch = detect_platform()

    if args.install_latest:
        log_utils.logger.debug("install-latest option selected")
        switcher.install_latest(os_name, arch)
        return

    if args.install_version:
        log_utils.logger.debug(f"install-version option selected: {args.install_version}")
        switcher.install_by_specifier(args.install_version, os_name, arch)
        return

    selected = select_version(
        switcher.filter_for_display(include_unstable=args.show_all), args.show_all
    )
    if selected is None:
        return
    log_utils.logger.debug(f"Selected {selected.version} version")
    switcher.install(selected, os_name, arch)


def main(argv: Optional[List[str]] = None) -> None:
    # Logging is automatically initialized by importing log_utils

    """
    Entry point for the gvs command-line interface.

    Parses the arguments, loads the configuration, creates the installation
    directories and runs the selected action. Any gvs error is logged and ends
    the process with exit status 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        log_utils.set_log_level(args.log_level)

    try:
        config = load_config(args.config)
        if config.log_level and not args.log_level:
            log_utils.set_log_level(config.log_level)

        switcher = VersionSwitcher.from_config(config)
        try:
            switcher.ensure_directories()
        except OSError as e:
            log_utils.logger.error(f"Could not create gvs directories: {e}")
            sys.exit(1)

        _setup_file_logging(config)
        run(args, switcher)
    except GvsError as e:
        log_utils.logger.error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        log_utils.logger.info("Operation cancelled by user.")
        sys.exit(130)
    finally:
        log_utils.remove_file_logging()


if __name__ == "__main__":
    main()
