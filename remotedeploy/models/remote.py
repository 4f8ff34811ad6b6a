"""
Remote Command Model

A unit of work sent to the RemoteExecutor.
"""

from dataclasses import dataclass

from remotedeploy.constants import SSH_COMMAND_TIMEOUT


@dataclass(frozen=True)
class RemoteCommand:
    """Script body plus the timeout it must finish within."""

    script: str
    timeout: int = SSH_COMMAND_TIMEOUT
    description: str = ""

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout}")
        if not self.script.strip():
            raise ValueError("Remote command script cannot be empty")

    @property
    def label(self) -> str:
        """Short label for logs."""
        if self.description:
            return self.description
        first_line = self.script.strip().splitlines()[0]
        return first_line[:60]

    def __repr__(self) -> str:
        return f"RemoteCommand(label='{self.label}', timeout={self.timeout}s)"
