import logging
from pathlib import Path

from .config import RunConfig
from .constants import APP_NAME
from .docker_wrapper import DockerCLI
from .errors import (
    DeployError,
    GitError,
    PathError,
    RemoteAccessError,
    RepositoryStateError,
)
from .git_wrapper import GitRepo

logger = logging.getLogger(APP_NAME)


def sync_repository(config: RunConfig) -> bool:
    """Brings the checkout up to date with the tracked remote branch.

    Steps:
    1. Checks that the base directory exists and is a git repository.
    2. Fetches the remote and resolves the local and remote commits.
    3. Refuses to continue if the working tree has uncommitted changes.
    4. Pulls the remote branch if the commits differ.

    Args:
        config (RunConfig): The run settings.

    Returns:
        bool: True if new commits were pulled, False if already up to date.

    Raises:
        PathError: If the base directory does not exist.
        RepositoryStateError: If it is not a repository, or the tree is dirty.
        RemoteAccessError: If the fetch or pull fails.
    """
    base_dir = config.base_dir
    if not base_dir.is_dir():
        raise PathError(f"Directory {base_dir} doesn't exist, exiting...")

    repo = GitRepo(base_dir)
    logger.info("INFO:  Git repository found!")

    remote = config.remote_name
    try:
        repo.fetch(remote)
    except GitError as e:
        raise RemoteAccessError(
            "Unable to fetch changes from the remote repository "
            f"(the server may be offline or unreachable): {e}"
        ) from e

    local_hash = repo.rev_parse("HEAD")
    remote_ref = f"{remote}/{config.branch}"
    remote_hash = repo.rev_parse(remote_ref)
    if remote_hash is None:
        raise RemoteAccessError(f"Unable to resolve {remote_ref}, exiting...")
    logger.info(f"INFO:  Local hash is  {local_hash}")
    logger.info(f"INFO:  Remote hash is {remote_hash}")

    try:
        uncommitted = repo.status_porcelain()
    except GitError as e:
        raise RepositoryStateError(f"Unable to read status of {base_dir}: {e}") from e
    if uncommitted:
        raise RepositoryStateError(
            f"Uncommitted changes detected in {base_dir}, exiting..."
        )

    if local_hash == remote_hash:
        logger.info("STATE: Hashes match, so nothing to do")
        return False

    logger.info("STATE: Hashes don't match, updating...")
    try:
        repo.pull(remote, config.branch)
    except GitError as e:
        raise RemoteAccessError(
            "Unable to pull changes from the remote repository "
            f"(the server may be offline or unreachable): {e}"
        ) from e
    return True


def needs_recreate(dry_run_output: str, marker: str) -> bool:
    """Decides from dry-run output whether a stack would change.

    This is a plain substring test, so it depends on the deploy tool's exact
    wording.

    Args:
        dry_run_output (str): Combined output of the dry-run deploy.
        marker (str): The substring that signals a recreate.

    Returns:
        bool: True if the marker appears in the output.
    """
    return marker in dry_run_output


def redeploy_stack(
    stack_file: Path,
    config: RunConfig,
    docker: DockerCLI,
    artifact: Path | None = None,
) -> bool:
    """Applies one stack file, honouring graceful mode.

    Args:
        stack_file (Path): The stack file, relative to the base directory.
        config (RunConfig): The run settings.
        docker (DockerCLI): The command runner used for deploys.
        artifact (Path | None): Where to keep the latest dry-run output in
                                graceful mode. Not written when None.

    Returns:
        bool: True if a real deploy ran, False if it was skipped.

    Raises:
        DeployError: If the dry run or the deploy fails.
    """
    extra_args = config.compose_args

    if not config.graceful:
        logger.info(f"STATE: Redeploying compose file for {stack_file}")
        docker.deploy(stack_file, extra_args)
        return True

    output = docker.dry_run(stack_file, extra_args)
    if artifact is not None:
        try:
            artifact.write_text(output)
        except OSError as e:
            raise DeployError(
                f"Unable to write dry-run output to {artifact}: {e}"
            ) from e

    if needs_recreate(output, config.recreate_marker):
        logger.info(f"GRACEFUL: Redeploying compose file for {stack_file}")
        docker.deploy(stack_file, extra_args)
        return True

    logger.info(
        f"GRACEFUL: Skipping Redeploying compose file for {stack_file} (no change)"
    )
    return False


def prune_images(docker: DockerCLI) -> None:
    """Removes unused images. A failure is logged but does not end the run."""
    logger.info("STATE: Pruning images")
    try:
        docker.image_prune()
    except DeployError as e:
        logger.error(f"ERROR: Unable to prune images: {e}")
