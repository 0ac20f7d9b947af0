import logging
import os
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from . import ops, stacks
from .config import RunConfig
from .constants import APP_NAME, ARTIFACT_SUFFIX, LOG_BANNER
from .docker_wrapper import DockerCLI

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


def setup_logging(log_file: Path) -> None:
    """Configures the logging subsystem for one run.

    Appends the start banner to the log file, then routes every record to both
    the log file (append mode, never rotated) and stdout. Handlers from a
    previous call are replaced.

    Args:
        log_file (Path): The log file to append to. Created if absent.

    Raises:
        OSError: If the log file cannot be opened for appending.
    """
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    with open(log_file, "a") as f:
        f.write(LOG_BANNER)

    formatter = logging.Formatter("%(asctime)s - %(message)s", "%Y-%m-%d %H:%M:%S")

    file_handler = logging.FileHandler(log_file, mode="a")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)


@contextmanager
def dry_run_artifact(enabled: bool) -> Iterator[Path | None]:
    """Context manager for the file holding the latest dry-run output.

    The path is unique to this process and is removed on exit, whether or not
    the run succeeded.

    Args:
        enabled (bool): Whether graceful mode needs an artifact at all.

    Yields:
        Path | None: The artifact path, or None when disabled.
    """
    if not enabled:
        yield None
        return

    name = f"{APP_NAME}.{os.getpid()}{ARTIFACT_SUFFIX}"
    artifact = Path(tempfile.gettempdir()) / name
    try:
        yield artifact
    finally:
        artifact.unlink(missing_ok=True)


def log_settings(config: RunConfig) -> None:
    """Records the effective settings at the start of a run."""
    logger.info(f"INFO:  Base directory is set to {config.base_dir}")
    logger.info(f"INFO:  The remote branch is set to {config.branch}")
    if config.compose_opts:
        logger.info(
            f"INFO:  Using additional docker compose options: {config.compose_opts}"
        )
    if config.exclude:
        logger.info(f"INFO:  Will be excluding pattern {config.exclude}")


def run(config: RunConfig, docker: DockerCLI | None = None) -> int:
    """Performs one synchronise-and-redeploy pass.

    Steps:
    1. Syncs the checkout with the remote branch (fatal on any problem).
    2. If new commits arrived, redeploys every discovered stack file in order.
    3. Prunes unused images if requested.
    4. Removes the dry-run artifact.

    Args:
        config (RunConfig): The run settings.
        docker (DockerCLI | None): The deploy command runner. Built from the
                                   config when omitted.

    Returns:
        int: The number of stack files that were actually deployed.

    Raises:
        DscdError: On the first fatal condition; later steps do not run.
    """
    if docker is None:
        docker = DockerCLI(config.base_dir, config.deploy_command)

    log_settings(config)

    deployed = 0
    with dry_run_artifact(config.graceful) as artifact:
        if ops.sync_repository(config):
            for stack_file in stacks.iter_stack_files(config.base_dir, config.exclude):
                if ops.redeploy_stack(stack_file, config, docker, artifact):
                    deployed += 1

        if config.prune:
            ops.prune_images(docker)

    logger.info("STATE: Done!")
    return deployed
