import argparse
import logging
import shlex
import sys
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, NoReturn

from rich.console import Console
from rich.markup import escape

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_BRANCH,
    DEFAULT_DEPLOY_COMMAND,
    DEFAULT_LOG_FILE,
    DEFAULT_REMOTE,
    EXIT_FAILURE,
    RECREATE_MARKER,
)
from .errors import ConfigurationError

logger = logging.getLogger(APP_NAME)
err_console = Console(stderr=True)

EXAMPLE = """\
Example:
  dscd -b master -d /path/to/git_repo -g -l /tmp/dscd.txt \\
       -o "--env-file /path/to/my.env" -p -x ignore_this_directory
"""

# Short options that take a value, as in getopts ":b:d:ghl:o:px:".
_VALUE_FLAGS = frozenset({"-b", "-d", "-l", "-o", "-x"})

# Expected TOML value types, keyed by field name.
_VALUE_TYPES: dict[str, type] = {
    "remote_name": str,
    "branch": str,
    "command": str,
    "compose_opts": str,
    "exclude": str,
    "graceful": bool,
    "prune": bool,
    "recreate_marker": str,
    "file": str,
}


@dataclass
class CoreConfig:
    """Repository tracking settings.

    Attributes:
        remote_name (str): The git remote fetched and pulled from.
        branch (str): The remote branch compared against the local HEAD.
    """

    remote_name: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH


@dataclass
class DeployConfig:
    """Stack deployment settings.

    Attributes:
        command (str): The base deploy command, split into words before use.
        compose_opts (str): Extra options placed after the base command.
        exclude (str | None): Directory substring that skips a stack file.
        graceful (bool): Only redeploy stacks whose dry-run reports a recreate.
        prune (bool): Prune unused images at the end of the run.
        recreate_marker (str): The dry-run output substring meaning "changed".
    """

    command: str = DEFAULT_DEPLOY_COMMAND
    compose_opts: str = ""
    exclude: str | None = None
    graceful: bool = False
    prune: bool = False
    recreate_marker: str = RECREATE_MARKER


@dataclass
class LogConfig:
    """Log output settings.

    Attributes:
        file (str): Path of the append-only log file.
    """

    file: str = str(DEFAULT_LOG_FILE)


@dataclass
class Defaults:
    """Option defaults, optionally overridden by the TOML config file.

    Attributes:
        core (CoreConfig): Repository tracking settings.
        deploy (DeployConfig): Stack deployment settings.
        log (LogConfig): Log output settings.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Defaults":
        """Builds the defaults, merging the config file when it exists.

        Args:
            path (Path | None): The TOML file to read. Defaults to CONFIG_FILE.

        Returns:
            Defaults: The merged defaults.

        Raises:
            ConfigurationError: If the file exists but is not valid TOML.
        """
        instance = cls()
        path = path or CONFIG_FILE
        if path.exists():
            instance._merge_from_file(path)
        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges its sections into this instance."""
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Config syntax error in {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Unable to read config {path}: {e}") from e

        unknown_sections = set(data) - {"core", "deploy", "log"}
        if unknown_sections:
            logger.warning(
                f"Unknown config sections in {path}: "
                f"{', '.join(sorted(unknown_sections))}. Ignoring."
            )

        if "core" in data:
            self.core = self._update_dataclass("core", self.core, data["core"])
        if "deploy" in data:
            self.deploy = self._update_dataclass("deploy", self.deploy, data["deploy"])
        if "log" in data:
            self.log = self._update_dataclass("log", self.log, data["log"])

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: Any) -> Any:
        """Updates a dataclass, warning on unknown keys and mistyped values."""
        if not isinstance(updates, dict):
            logger.warning(f"Config section [{section_name}] is not a table. Ignoring.")
            return instance

        valid_keys = instance.__dataclass_fields__.keys()

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Keep only values of the expected type
        filtered_updates = {}
        for k, v in updates.items():
            if k not in valid_keys:
                continue
            expected = _VALUE_TYPES[k]
            if not isinstance(v, expected):
                logger.warning(
                    f"Config error in [{section_name}].{k}: expected "
                    f"{expected.__name__}, got {type(v).__name__}. "
                    "Falling back to default."
                )
                continue
            filtered_updates[k] = v

        return replace(instance, **filtered_updates)


@dataclass(frozen=True)
class RunConfig:
    """The validated settings for a single run.

    Attributes:
        base_dir (Path): Root of the git checkout holding the stack files.
        log_file (Path): Append-only log destination.
        prune (bool): Prune unused images after redeploying.
        graceful (bool): Dry-run each stack and redeploy only on a recreate.
        branch (str): The remote branch to track.
        compose_opts (str): Extra deploy options exactly as given.
        exclude (str | None): Directory substring that skips a stack file.
        remote_name (str): The git remote to fetch and pull from.
        deploy_command (tuple[str, ...]): The base deploy command words.
        recreate_marker (str): Dry-run output substring meaning "changed".
    """

    base_dir: Path
    log_file: Path = DEFAULT_LOG_FILE
    prune: bool = False
    graceful: bool = False
    branch: str = DEFAULT_BRANCH
    compose_opts: str = ""
    exclude: str | None = None
    remote_name: str = DEFAULT_REMOTE
    deploy_command: tuple[str, ...] = tuple(DEFAULT_DEPLOY_COMMAND.split())
    recreate_marker: str = RECREATE_MARKER

    @property
    def compose_args(self) -> tuple[str, ...]:
        """The extra deploy options split into argument words."""
        return tuple(shlex.split(self.compose_opts))


class DscdArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> NoReturn:
        self.print_help(sys.stderr)
        err_console.print(f"[bold red]ERROR:[/bold red] {escape(message)}")
        sys.exit(EXIT_FAILURE)


def build_parser() -> DscdArgumentParser:
    """Creates the command-line parser."""
    parser = DscdArgumentParser(
        prog=APP_NAME,
        description=(
            "Redeploy the compose stacks of a git repository whenever its "
            "remote branch moves."
        ),
        epilog=EXAMPLE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )

    # Re-add -h only; there is no long form.
    parser.add_argument(
        "-h",
        action="help",
        default=argparse.SUPPRESS,
        help="Show this help message",
    )
    parser.add_argument(
        "-b",
        dest="branch",
        metavar="<name>",
        help=f"Specify the remote branch to track (default: {DEFAULT_BRANCH})",
    )
    parser.add_argument(
        "-d",
        dest="base_dir",
        metavar="<path>",
        required=True,
        help="Specify the base directory of the git repository (required)",
    )
    parser.add_argument(
        "-g",
        dest="graceful",
        action="store_true",
        help="Graceful, only restart containers that will be recreated",
    )
    parser.add_argument(
        "-l",
        dest="log_file",
        metavar="<path>",
        help=f"Specify the path to the log file (default: {DEFAULT_LOG_FILE})",
    )
    parser.add_argument(
        "-o",
        dest="compose_opts",
        metavar="<options>",
        help="Additional options to pass directly to the deploy command",
    )
    parser.add_argument(
        "-p",
        dest="prune",
        action="store_true",
        help="Prune unused docker images after redeploying",
    )
    parser.add_argument(
        "-x",
        dest="exclude",
        metavar="<pattern>",
        help="Exclude directories whose path contains the pattern",
    )
    return parser


def resolve(args: argparse.Namespace, defaults: Defaults) -> RunConfig:
    """Combines parsed options with the file defaults into a RunConfig.

    Command-line values always win over the defaults file.

    Args:
        args (argparse.Namespace): The parsed command line.
        defaults (Defaults): Defaults loaded from the config file.

    Returns:
        RunConfig: The immutable run settings.

    Raises:
        ConfigurationError: If the deploy command or extra options cannot be split.
    """
    compose_opts = (
        args.compose_opts
        if args.compose_opts is not None
        else defaults.deploy.compose_opts
    )
    try:
        deploy_command = tuple(shlex.split(defaults.deploy.command))
        shlex.split(compose_opts)
    except ValueError as e:
        raise ConfigurationError(f"Unable to parse deploy options: {e}") from e
    if not deploy_command:
        raise ConfigurationError("The deploy command is empty")

    return RunConfig(
        base_dir=Path(args.base_dir),
        log_file=Path(args.log_file or defaults.log.file),
        prune=args.prune or defaults.deploy.prune,
        graceful=args.graceful or defaults.deploy.graceful,
        branch=args.branch or defaults.core.branch,
        compose_opts=compose_opts,
        exclude=args.exclude or defaults.deploy.exclude or None,
        remote_name=defaults.core.remote_name,
        deploy_command=deploy_command,
        recreate_marker=defaults.deploy.recreate_marker,
    )


def attach_values(argv: list[str]) -> list[str]:
    """Joins each value-taking flag with the word that follows it.

    This mirrors getopts, where the next word is always the value, even when it
    starts with a dash (e.g. ``-o --compatibility`` becomes ``-o--compatibility``).

    Args:
        argv (list[str]): Arguments without the program name.

    Returns:
        list[str]: The arguments with values attached to their flags.
    """
    result = []
    words = iter(argv)
    for word in words:
        if word not in _VALUE_FLAGS:
            result.append(word)
            continue
        value = next(words, None)
        if value is None:
            result.append(word)  # Left for argparse to report
        elif value == "":
            result.extend([word, value])
        else:
            result.append(word + value)
    return result


def parse_args(
    argv: list[str] | None = None, defaults: Defaults | None = None
) -> RunConfig:
    """Parses the command line into a RunConfig.

    Usage errors print help to stderr and exit with status 1 before anything
    else happens.

    Args:
        argv (list[str] | None): Arguments without the program name.
            Defaults to sys.argv[1:].
        defaults (Defaults | None): Pre-loaded defaults. Loaded from the
            config file when omitted.

    Returns:
        RunConfig: The immutable run settings.
    """
    parser = build_parser()
    if argv is None:
        argv = sys.argv[1:]
    args = parser.parse_args(attach_values(argv))
    if not args.base_dir:
        parser.error("The base directory (-d) is required")

    if defaults is None:
        defaults = Defaults.load()
    return resolve(args, defaults)
