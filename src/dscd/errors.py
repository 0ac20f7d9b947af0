"""
Exception types used across dscd.

Every failure that ends a run is a DscdError; the CLI logs its message and
exits with its ``exit_code``. Nothing is retried or recovered locally.
"""

from .constants import EXIT_FAILURE, EXIT_PATH_NOT_FOUND


class DscdError(Exception):
    """Base class for all fatal dscd errors."""

    exit_code: int = EXIT_FAILURE


class ConfigurationError(DscdError):
    """Raised when options or the defaults file are invalid."""


class PathError(DscdError):
    """Raised when the base directory does not exist."""

    exit_code = EXIT_PATH_NOT_FOUND


class RepositoryStateError(DscdError):
    """Raised when the base directory is not a repository or has local changes."""


class RemoteAccessError(DscdError):
    """Raised when fetching or pulling from the remote fails."""


class DeployError(DscdError):
    """Raised when the deploy command exits non-zero."""


class GitError(DscdError):
    """Raised when a git command fails."""
