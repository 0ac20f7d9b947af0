import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME
from .errors import GitError, RepositoryStateError

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    Every command runs with the repository root as its working directory, so
    the process itself never changes directory.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            RepositoryStateError: If the path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").is_dir():
            raise RepositoryStateError(
                f"Directory is not a git repository: {self.path}"
            )

    def _run(self, args: list[str], capture: bool = True) -> str:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            capture (bool, optional):   Whether to capture and return stdout.
                                        Defaults to True.

        Returns:
            str:    The stripped stdout of the command if capture is True,
                    otherwise an empty string.

        Raises:
            GitError: If the git command cannot be started or exits non-zero.
        """
        logger.debug(f"Running git {' '.join(args)} in {self.path}")
        try:
            res = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=capture,
                text=True,
                check=True,
            )
            return res.stdout.strip() if capture else ""
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.strip() if e.stderr else ""
            raise GitError(f"Git error: {stderr or e}") from e
        except OSError as e:
            raise GitError(f"Unable to run git: {e}") from e

    def fetch(self, remote: str) -> None:
        """Quietly fetches all branches of a remote.

        Args:
            remote (str): The remote name (e.g., 'origin').
        """
        self._run(["fetch", "--quiet", remote])

    def pull(self, remote: str, branch: str) -> None:
        """Quietly pulls (merges) a remote branch into the current branch.

        Args:
            remote (str): The remote name.
            branch (str): The remote branch to merge.
        """
        self._run(["pull", "--quiet", remote, branch])

    def rev_parse(self, rev: str) -> str | None:
        """Resolves a revision (tag, branch, relative ref) to a full SHA-1 hash.

        Args:
            rev (str): The revision to parse (e.g., 'HEAD', 'origin/main').

        Returns:
            Optional[str]:  The full SHA-1 hash,
                            or None if the revision could not be resolved.
        """
        try:
            return self._run(["rev-parse", rev])
        except GitError as e:
            logger.debug(f"rev-parse failed for '{rev}': {e}")
            return None

    def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the repository.

        Returns:
            list[str]: A list of status lines returned by `git status --porcelain`.
        """
        output = self._run(["status", "--porcelain"])
        return output.splitlines() if output else []
