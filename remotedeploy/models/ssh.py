"""
SSH Configuration Models

Dataclass models for SSH operations.
"""

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List

from remotedeploy.constants import SSH_CONNECT_TIMEOUT


@dataclass(frozen=True)
class SSHConnection:
    """SSH connection details for the target host."""

    host: str
    user: str
    key_path: str
    connect_timeout: int = SSH_CONNECT_TIMEOUT

    @property
    def key_path_expanded(self) -> Path:
        """Get expanded key path (resolves ~)."""
        return Path(self.key_path).expanduser()

    @property
    def connection_string(self) -> str:
        """Get SSH connection string (user@host)."""
        return f"{self.user}@{self.host}"

    def ssh_options(self, connect_timeout: int = None) -> List[str]:
        """Non-interactive ssh options shared by ssh and rsync."""
        timeout = connect_timeout or self.connect_timeout
        return [
            "-i",
            str(self.key_path_expanded),
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "BatchMode=yes",
            "-o",
            f"ConnectTimeout={timeout}",
            "-o",
            "LogLevel=ERROR",
        ]

    def build_command(self, remote_command: str, connect_timeout: int = None) -> List[str]:
        """Build full SSH command with remote command."""
        return ["ssh", *self.ssh_options(connect_timeout), self.connection_string, remote_command]

    @property
    def rsync_shell(self) -> str:
        """Remote shell string for ``rsync -e``."""
        return " ".join(shlex.quote(part) for part in ["ssh", *self.ssh_options()])

    def __repr__(self) -> str:
        return f"SSHConnection(host={self.host}, user={self.user})"
