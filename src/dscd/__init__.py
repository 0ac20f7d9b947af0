"""dscd: Continuous deployment of compose stacks from a git repository.

This package provides the command-line interface and the single-pass logic
that syncs a checkout with its remote branch and, when new commits arrive,
redeploys every stack file found in the tree.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    docker_wrapper,
    errors,
    git_wrapper,
    ops,
    stacks,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "docker_wrapper",
    "errors",
    "git_wrapper",
    "ops",
    "stacks",
]
