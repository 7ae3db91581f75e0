"""
Centralized git command runner with dubious ownership handling.

Pre-receive hooks frequently run as a service user that does not own the
repository directory, which makes git refuse to operate ("dubious
ownership"). Every git invocation goes through run_git_command() so the
repository is always marked as a safe directory.

The calling environment is passed through untouched otherwise: inside a
hook git exports GIT_DIR and the object quarantine variables
(GIT_OBJECT_DIRECTORY, GIT_ALTERNATE_OBJECT_DIRECTORIES) that make the
not-yet-accepted objects readable.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


def get_git_environment(project_dir: Path) -> Dict[str, str]:
    """
    Get environment variables for git commands to handle dubious ownership.

    Args:
        project_dir: Path to the repository (work tree or bare)

    Returns:
        Dictionary of environment variables for git commands
    """
    env = os.environ.copy()

    # Our safe.directory goes in slot 0, existing GIT_CONFIG_* entries shift up
    env["GIT_CONFIG_KEY_0"] = "safe.directory"
    env["GIT_CONFIG_VALUE_0"] = str(Path(project_dir).resolve())

    config_count = 1
    for key in os.environ:
        if not key.startswith("GIT_CONFIG_KEY_"):
            continue
        idx = key[len("GIT_CONFIG_KEY_") :]
        if not idx.isdigit():
            continue
        new_idx = int(idx) + 1
        env[f"GIT_CONFIG_KEY_{new_idx}"] = os.environ[key]
        value_key = f"GIT_CONFIG_VALUE_{idx}"
        if value_key in os.environ:
            env[f"GIT_CONFIG_VALUE_{new_idx}"] = os.environ[value_key]
        config_count = max(config_count, new_idx + 1)

    env["GIT_CONFIG_COUNT"] = str(config_count)

    return env


def run_git_command(
    cmd: List[str],
    cwd: Path,
    check: bool = True,
    capture_output: bool = True,
    text: bool = True,
    timeout: Optional[float] = None,
    **kwargs,
) -> subprocess.CompletedProcess:
    """
    Run a git command with proper environment handling for dubious ownership.

    Args:
        cmd: Git command as a list (e.g., ["git", "rev-list", "HEAD"])
        cwd: Working directory for the command
        check: Whether to raise CalledProcessError on non-zero exit
        capture_output: Whether to capture stdout and stderr
        text: Whether to decode output as text
        timeout: Optional timeout in seconds
        **kwargs: Additional arguments to pass to subprocess.run

    Returns:
        CompletedProcess instance with the command result

    Raises:
        subprocess.CalledProcessError: If check=True and command fails
        subprocess.TimeoutExpired: If timeout is exceeded
    """
    if not cmd or cmd[0] != "git":
        raise ValueError("Command must start with 'git'")

    env = get_git_environment(cwd)

    if "env" in kwargs:
        env.update(kwargs.pop("env"))

    logger.debug(f"Running {' '.join(cmd)} in {cwd}")

    return subprocess.run(
        cmd,
        cwd=cwd,
        check=check,
        capture_output=capture_output,
        text=text,
        timeout=timeout,
        env=env,
        **kwargs,
    )


def is_git_repository(project_dir: Path) -> bool:
    """
    Check if a directory is a git repository (bare or not).

    Args:
        project_dir: Path to check

    Returns:
        True if the directory is a git repository, False otherwise
    """
    try:
        run_git_command(
            ["git", "rev-parse", "--git-dir"],
            cwd=project_dir,
            check=True,
        )
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False
