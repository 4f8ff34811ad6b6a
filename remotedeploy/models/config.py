"""
Deployment Configuration Models

The immutable input consumed by every pipeline stage.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from remotedeploy.constants import (
    DEFAULT_BRANCH,
    DEFAULT_SSH_KEY_PATH,
    REDACTED,
    REMOTE_BASE_DIR,
)
from remotedeploy.exceptions import ValidationError
from remotedeploy.models.ssh import SSHConnection

APP_NAME_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")


def derive_app_name(repo_url: str) -> str:
    """
    Derive a filesystem- and DNS-safe application name from a repository URL.

    Examples:
        "https://github.com/acme/Demo.git" -> "demo"
        "https://github.com/acme/my_api"   -> "my-api"
    """
    path = urlsplit(repo_url).path.rstrip("/")
    base = path.rsplit("/", 1)[-1]
    if base.endswith(".git"):
        base = base[: -len(".git")]
    name = re.sub(r"[^a-z0-9-]+", "-", base.lower())
    name = re.sub(r"-{2,}", "-", name).strip("-")
    return name[:63].rstrip("-")


class Credential:
    """Access token held in memory only; never rendered by repr or str."""

    def __init__(self, token: str):
        self._token = token or ""

    @property
    def value(self) -> str:
        return self._token

    def __bool__(self) -> bool:
        return bool(self._token)

    def redact(self, text: str) -> str:
        """Replace every occurrence of the token in ``text``."""
        if not self._token or not text:
            return text
        return text.replace(self._token, REDACTED)

    def authenticated_url(self, repo_url: str) -> str:
        """Embed the token into an http(s) repository URL."""
        parts = urlsplit(repo_url)
        if not self._token:
            return repo_url
        netloc = parts.netloc.rsplit("@", 1)[-1]
        return urlunsplit((parts.scheme, f"{self._token}@{netloc}", parts.path, parts.query, parts.fragment))

    def __repr__(self) -> str:
        return f"Credential({REDACTED})" if self._token else "Credential(<empty>)"

    __str__ = __repr__


@dataclass(frozen=True)
class DeploymentConfig:
    """Validated deployment parameters, shared read-only by all stages."""

    repo_url: str
    ssh_user: str
    server: str
    app_port: int
    branch: str = DEFAULT_BRANCH
    ssh_key_path: str = DEFAULT_SSH_KEY_PATH
    workspace: Path = field(default_factory=Path.cwd)

    @property
    def app_name(self) -> str:
        """Application name derived from the repository URL."""
        return derive_app_name(self.repo_url)

    @property
    def remote_root(self) -> str:
        """Project directory on the remote host."""
        return f"{REMOTE_BASE_DIR}/{self.app_name}"

    @property
    def key_path_expanded(self) -> Path:
        return Path(self.ssh_key_path).expanduser()

    @property
    def local_root(self) -> Path:
        """Local checkout of the repository."""
        return Path(self.workspace) / self.app_name

    @property
    def connection(self) -> SSHConnection:
        return SSHConnection(host=self.server, user=self.ssh_user, key_path=self.ssh_key_path)

    def validate(self, require_key: bool = True) -> None:
        """
        Check the configuration shape.

        Raises:
            ValidationError: If any field is malformed
        """
        if not re.match(r"^https?://[^/]+/.+", self.repo_url or ""):
            raise ValidationError(
                f"Invalid repository URL: {self.repo_url}",
                context="Must start with http:// or https://",
            )
        if not isinstance(self.app_port, int) or not 1 <= self.app_port <= 65535:
            raise ValidationError(f"Invalid port: {self.app_port}", context="Expected 1-65535")
        if not self.ssh_user:
            raise ValidationError("SSH username cannot be empty")
        if not self.server:
            raise ValidationError("Server address cannot be empty")
        if not self.branch:
            raise ValidationError("Branch name cannot be empty")
        if not APP_NAME_PATTERN.match(self.app_name):
            raise ValidationError(
                f"Cannot derive a safe application name from {self.repo_url}",
                context=f"Derived: '{self.app_name}'",
            )
        if require_key and not self.key_path_expanded.is_file():
            raise ValidationError(f"SSH key not found at: {self.key_path_expanded}")

    def __repr__(self) -> str:
        return f"DeploymentConfig(app={self.app_name}, server={self.ssh_user}@{self.server}, port={self.app_port})"
