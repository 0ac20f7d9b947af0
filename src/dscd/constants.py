import os
from pathlib import Path

"""Global constants and default path definitions for dscd.

This module defines the application identifiers, default file locations
(adhering to XDG standards where applicable), and the fixed names and markers
used when discovering and redeploying stack files.
"""

# --- Identity ---
APP_NAME = "dscd"
"""str: The human-readable application name (also the logger name)."""

# --- Paths ---
_XDG_CONFIG = os.environ.get("XDG_CONFIG_HOME")
_BASE_CONFIG = Path(_XDG_CONFIG) if _XDG_CONFIG else Path.home() / ".config"

CONFIG_DIR: Path = _BASE_CONFIG / APP_NAME
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = Path(os.environ.get("DSCD_CONFIG", CONFIG_DIR / "config.toml"))
"""Path: The optional TOML file holding default option values."""

DEFAULT_LOG_FILE = Path("/tmp/dscd.log")
"""Path: The log file used when neither -l nor the config file names one."""

# --- Git / Deploy Constants ---
DEFAULT_BRANCH = "main"
"""str: The remote branch tracked when -b is not given."""

DEFAULT_REMOTE = "origin"
"""str: The git remote fetched and pulled from."""

DEFAULT_DEPLOY_COMMAND = "docker compose"
"""str: The base command every stack file is applied with."""

COMPOSE_FILENAMES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yaml",
    "compose.yml",
)
"""tuple[str, ...]: File names recognised as stack definitions."""

RECREATE_MARKER = "Recreate"
"""str: Dry-run output substring that signals a container would be recreated."""

ARTIFACT_SUFFIX = ".restart"
"""str: Suffix of the per-run file holding the latest dry-run output."""

# --- Exit Codes ---
EXIT_FAILURE = 1
EXIT_PATH_NOT_FOUND = 127

LOG_BANNER = (
    "########################################\n"
    "# Starting!\n"
    "########################################\n"
)
"""str: Written to the log file (only) at the start of every run."""
