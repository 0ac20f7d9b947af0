"""Tests for the deploy command wrapper."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dscd.docker_wrapper import DockerCLI
from dscd.errors import DeployError


def test_dry_run_captures_combined_output(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies the dry-run argument list and that its output is returned."""
    mock_run = mocker.patch("subprocess.run")
    mock_run.return_value.stdout = "Container app-web-1 Recreate\n"
    docker = DockerCLI(tmp_path)

    output = docker.dry_run(Path("app/compose.yml"), ("--env-file", "my.env"))

    assert output == "Container app-web-1 Recreate\n"
    mock_run.assert_called_once_with(
        [
            "docker",
            "compose",
            "--env-file",
            "my.env",
            "-f",
            "app/compose.yml",
            "up",
            "-d",
            "--dry-run",
        ],
        cwd=tmp_path,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=True,
    )


def test_deploy_streams_output(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that a real deploy pulls quietly and is not captured."""
    mock_run = mocker.patch("subprocess.run")
    docker = DockerCLI(tmp_path, ("docker", "stack", "deploy"))

    docker.deploy(Path("compose.yaml"))

    mock_run.assert_called_once_with(
        [
            "docker",
            "stack",
            "deploy",
            "-f",
            "compose.yaml",
            "up",
            "-d",
            "--quiet-pull",
        ],
        cwd=tmp_path,
        stdout=None,
        stderr=None,
        text=True,
        check=True,
    )


def test_file_names_are_not_shell_parsed(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that odd characters in a path reach the command untouched."""
    mock_run = mocker.patch("subprocess.run")
    docker = DockerCLI(tmp_path)

    docker.deploy(Path("we ird/$(rm -rf x)/compose.yml"))

    args = mock_run.call_args[0][0]
    assert "we ird/$(rm -rf x)/compose.yml" in args


def test_image_prune(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies the prune command removes all unused images without prompting."""
    mock_run = mocker.patch("subprocess.run")

    DockerCLI(tmp_path).image_prune()

    args = mock_run.call_args[0][0]
    assert args == ["docker", "image", "prune", "--all", "--force"]


def test_image_prune_follows_deploy_program(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that prune runs the same program as the deploy command."""
    mock_run = mocker.patch("subprocess.run")

    DockerCLI(tmp_path, ("podman", "compose")).image_prune()

    args = mock_run.call_args[0][0]
    assert args == ["podman", "image", "prune", "--all", "--force"]


def test_failure_raises_deploy_error(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that a non-zero exit becomes a DeployError with the output."""
    mocker.patch(
        "subprocess.run",
        side_effect=subprocess.CalledProcessError(
            1, ["docker"], output="service web: invalid image\n"
        ),
    )

    with pytest.raises(DeployError, match="invalid image"):
        DockerCLI(tmp_path).dry_run(Path("compose.yml"))


def test_missing_binary_raises_deploy_error(mocker: MagicMock, tmp_path: Path) -> None:
    """Verifies that a missing docker binary is reported as a DeployError."""
    mocker.patch("subprocess.run", side_effect=FileNotFoundError("docker"))

    with pytest.raises(DeployError, match="Unable to run docker"):
        DockerCLI(tmp_path).deploy(Path("compose.yml"))
