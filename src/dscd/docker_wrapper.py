import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from .constants import APP_NAME, DEFAULT_DEPLOY_COMMAND
from .errors import DeployError

logger = logging.getLogger(APP_NAME)


class DockerCLI:
    """A wrapper around the container command-line tools.

    Commands are built as argument lists and never pass through a shell, so
    file names and extra options are not re-parsed.

    Attributes:
        path (Path): Working directory that stack file paths are relative to.
        command (tuple[str, ...]): The base deploy command (e.g. docker compose).
    """

    def __init__(
        self, path: Path, command: Sequence[str] = tuple(DEFAULT_DEPLOY_COMMAND.split())
    ):
        self.path = path
        self.command = tuple(command)

    def _run(self, args: list[str], capture: bool = False) -> str:
        """Executes a command in the working directory.

        Args:
            args (list[str]): The full argument list, program first.
            capture (bool, optional):   Whether to capture stdout and stderr
                                        together and return them. When False the
                                        output goes straight to the terminal.
                                        Defaults to False.

        Returns:
            str: The combined output if capture is True, otherwise an empty string.

        Raises:
            DeployError: If the command cannot be started or exits non-zero.
        """
        logger.debug(f"Running {' '.join(args)} in {self.path}")
        try:
            res = subprocess.run(
                args,
                cwd=self.path,
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.STDOUT if capture else None,
                text=True,
                check=True,
            )
            return res.stdout if capture else ""
        except subprocess.CalledProcessError as e:
            detail = e.stdout.strip() if e.stdout else f"exit status {e.returncode}"
            raise DeployError(f"'{' '.join(args)}' failed: {detail}") from e
        except OSError as e:
            raise DeployError(f"Unable to run {args[0]}: {e}") from e

    def _deploy_args(
        self, stack_file: Path, extra_args: Sequence[str], *flags: str
    ) -> list[str]:
        return [*self.command, *extra_args, "-f", str(stack_file), "up", "-d", *flags]

    def dry_run(self, stack_file: Path, extra_args: Sequence[str] = ()) -> str:
        """Runs the deploy in dry-run mode and returns what it would do.

        Args:
            stack_file (Path): The stack file, relative to the working directory.
            extra_args (Sequence[str]): Options inserted after the base command.

        Returns:
            str: Combined stdout and stderr of the dry run.
        """
        return self._run(
            self._deploy_args(stack_file, extra_args, "--dry-run"), capture=True
        )

    def deploy(self, stack_file: Path, extra_args: Sequence[str] = ()) -> None:
        """Deploys a stack file, pulling images quietly.

        Args:
            stack_file (Path): The stack file, relative to the working directory.
            extra_args (Sequence[str]): Options inserted after the base command.
        """
        self._run(self._deploy_args(stack_file, extra_args, "--quiet-pull"))

    def image_prune(self) -> None:
        """Removes every image not used by a container.

        The program is taken from the deploy command, so a ``podman compose``
        setup prunes with ``podman``.
        """
        self._run([self.command[0], "image", "prune", "--all", "--force"])
