"""
remotedeploy Exception Hierarchy

Every failure the pipeline can surface maps to exactly one exit category.
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from remotedeploy.models.results import SSHResult


class ExitCategory(Enum):
    """Discriminated outcome of a pipeline run."""

    SUCCESS = "Success"
    VALIDATION_ERROR = "ValidationError"
    REPOSITORY_ERROR = "RepositoryError"
    CONNECTION_ERROR = "ConnectionError"
    DEPLOYMENT_ERROR = "DeploymentError"
    PROXY_CONFIG_ERROR = "ProxyConfigError"

    @property
    def exit_code(self) -> int:
        """Process exit code for this category."""
        return _EXIT_CODES[self]


_EXIT_CODES = {
    ExitCategory.SUCCESS: 0,
    ExitCategory.VALIDATION_ERROR: 1,
    ExitCategory.REPOSITORY_ERROR: 2,
    ExitCategory.CONNECTION_ERROR: 3,
    ExitCategory.DEPLOYMENT_ERROR: 4,
    ExitCategory.PROXY_CONFIG_ERROR: 5,
}


class RemoteDeployError(Exception):
    """Base exception for all remotedeploy errors."""

    category = ExitCategory.DEPLOYMENT_ERROR

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        output_excerpt: str = "",
    ):
        self.message = message
        self.context = context
        self.output_excerpt = output_excerpt
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ValidationError(RemoteDeployError):
    """Raised when the deployment configuration is malformed."""

    category = ExitCategory.VALIDATION_ERROR


class RepositoryError(RemoteDeployError):
    """Raised when fetching or checking out the repository fails."""

    category = ExitCategory.REPOSITORY_ERROR


class RemoteConnectionError(RemoteDeployError):
    """Raised when the remote host is unreachable, rejects auth, or times out."""

    category = ExitCategory.CONNECTION_ERROR

    def __init__(
        self,
        message: str,
        context: Optional[str] = None,
        output_excerpt: str = "",
        reason: str = "unreachable",
    ):
        self.reason = reason
        super().__init__(message, context, output_excerpt)


class DeploymentError(RemoteDeployError):
    """Raised when building, starting or reconciling fails."""

    category = ExitCategory.DEPLOYMENT_ERROR


class HealthCheckError(DeploymentError):
    """Raised when the container never became healthy."""

    def __init__(
        self,
        app_name: str,
        attempts: int,
        last_status: str,
        output_excerpt: str = "",
    ):
        self.app_name = app_name
        self.attempts = attempts
        self.last_status = last_status
        message = f"Container '{app_name}' failed health check after {attempts} attempts"
        context = f"Last container status: {last_status}"
        super().__init__(message, context, output_excerpt)


class ProxyConfigError(RemoteDeployError):
    """Raised when the nginx configuration cannot be validated or activated."""

    category = ExitCategory.PROXY_CONFIG_ERROR


class RemoteCommandError(RemoteDeployError):
    """Raised when a remote command exits non-zero and the caller asked to check."""

    category = ExitCategory.DEPLOYMENT_ERROR

    def __init__(self, result: "SSHResult", description: str = ""):
        self.result = result
        what = description or "Remote command"
        message = f"{what} failed with exit code {result.returncode}"
        context = f"Host: {result.host}"
        super().__init__(message, context, result.output)
