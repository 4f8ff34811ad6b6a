"""Repository fetching: clone or update the application checkout locally."""

import os
import subprocess
from pathlib import Path
from typing import Callable, List, Optional

from remotedeploy.constants import COMPOSE_FILES, DOCKERFILE
from remotedeploy.exceptions import RepositoryError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.config import Credential, DeploymentConfig
from remotedeploy.models.results import Stage, StageResult

GIT_TIMEOUT = 600


def find_build_descriptor(root: Path) -> Optional[str]:
    """Return the build descriptor in ``root``; compose files take precedence."""
    for name in [*COMPOSE_FILES, DOCKERFILE]:
        if (root / name).is_file():
            return name
    return None


class RepositoryFetcher:
    """
    Clones or updates the repository with the access token.

    The token is only ever passed on the git command line; the checkout's
    remote URL is reset to the plain URL so nothing is persisted on disk.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        credential: Credential,
        logger: Optional[DeployLogger] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.config = config
        self.credential = credential
        self.logger = logger
        self.runner = runner

    def fetch(self) -> StageResult:
        """
        Bring the local checkout to the head of the configured branch.

        Returns:
            StageResult with ``commit`` and ``descriptor`` data

        Raises:
            RepositoryError: On clone/pull/checkout failure or missing build files
        """
        root = self.config.local_root
        branch = self.config.branch
        auth_url = self.credential.authenticated_url(self.config.repo_url)

        if (root / ".git").is_dir():
            self._log("Repository exists. Pulling latest changes...")
            self._git(
                ["fetch", auth_url, f"+refs/heads/{branch}:refs/remotes/origin/{branch}"],
                cwd=root,
                failure="Failed to pull repository",
            )
            self._git(["checkout", branch], cwd=root, failure=f"Failed to check out branch '{branch}'")
            self._git(
                ["merge", "--ff-only", f"origin/{branch}"],
                cwd=root,
                failure=f"Local branch '{branch}' has diverged from origin",
            )
        else:
            self._log("Cloning repository...")
            root.parent.mkdir(parents=True, exist_ok=True)
            self._git(
                ["clone", "--branch", branch, auth_url, str(root)],
                cwd=root.parent,
                failure="Failed to clone repository. Check token and URL.",
            )
            self._git(["remote", "set-url", "origin", self.config.repo_url], cwd=root, failure="Failed to reset remote URL")

        commit = self._git(["rev-parse", "--short", "HEAD"], cwd=root, failure="Failed to resolve HEAD").strip()

        descriptor = find_build_descriptor(root)
        if descriptor is None:
            raise RepositoryError(
                "No Dockerfile or docker-compose.yml found",
                context=f"Checked: {root}",
            )

        return StageResult.ok(
            Stage.REPOSITORY,
            f"On branch: {branch} (commit: {commit})",
            commit=commit,
            descriptor=descriptor,
        )

    def _git(self, args: List[str], cwd: Path, failure: str) -> str:
        env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
        if self.logger:
            self.logger.log_command("git " + self.credential.redact(" ".join(args)))
        try:
            completed = self.runner(
                ["git", *args],
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT,
                env=env,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise RepositoryError(failure, context=self.credential.redact(str(e)))

        stdout = self.credential.redact(completed.stdout or "")
        stderr = self.credential.redact(completed.stderr or "")
        if self.logger:
            self.logger.log_output(stdout, "stdout")
            self.logger.log_output(stderr, "stderr")

        if completed.returncode != 0:
            raise RepositoryError(failure, output_excerpt=f"{stdout}\n{stderr}".strip())
        return stdout

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
