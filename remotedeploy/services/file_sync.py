"""File synchronizer: mirror the local checkout to the remote project directory."""

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from remotedeploy.constants import DEFAULT_EXCLUDES, RSYNC_TIMEOUT
from remotedeploy.exceptions import DeploymentError, RemoteConnectionError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.results import Stage, StageResult
from remotedeploy.models.ssh import SSHConnection

# rsync exit codes that mean the transport failed rather than the transfer
RSYNC_CONNECTION_EXITS = {5, 12, 255}

FILES_TRANSFERRED = re.compile(r"Number of (?:regular )?files transferred:\s*([\d,.]+)")
BYTES_TRANSFERRED = re.compile(r"Total transferred file size:\s*([\d,.]+)")


@dataclass
class SyncStats:
    """Statistics parsed from ``rsync --stats``."""

    files_transferred: int = 0
    bytes_transferred: int = 0
    changes: int = 0

    @property
    def is_noop(self) -> bool:
        return self.files_transferred == 0 and self.changes == 0

    @classmethod
    def parse(cls, output: str) -> "SyncStats":
        """Parse rsync output produced with --stats and --itemize-changes."""

        def number(pattern: re.Pattern) -> int:
            match = pattern.search(output or "")
            if not match:
                return 0
            return int(re.sub(r"[^\d]", "", match.group(1)) or 0)

        # Itemized lines start with an 11 character change summary, e.g. ">f+++++++++"
        changes = sum(
            1
            for line in (output or "").splitlines()
            if re.match(r"^(?:[<>ch][fdLDS]|\*deleting)", line)
        )
        return cls(
            files_transferred=number(FILES_TRANSFERRED),
            bytes_transferred=number(BYTES_TRANSFERRED),
            changes=changes,
        )


def build_rsync_cmd(
    *,
    local_root: Path,
    connection: SSHConnection,
    remote_root: str,
    exclude_patterns: List[str],
) -> List[str]:
    """rsync command mirroring ``local_root`` into ``remote_root`` with deletions."""
    cmd = ["rsync", "-az", "--delete", "--itemize-changes", "--stats"]
    for pattern in exclude_patterns:
        cmd.append(f"--exclude={pattern}")
    cmd.extend(["-e", connection.rsync_shell])
    # Trailing slashes copy the contents of local_root into remote_root
    cmd.extend([f"{str(local_root).rstrip('/')}/", f"{connection.connection_string}:{remote_root.rstrip('/')}/"])
    return cmd


class FileSynchronizer:
    """Transfers only changed content; a repeat sync with no changes is a no-op."""

    def __init__(
        self,
        connection: SSHConnection,
        logger: Optional[DeployLogger] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.connection = connection
        self.logger = logger
        self.runner = runner

    def sync(
        self,
        local_root: Path,
        remote_root: str,
        exclude_patterns: Optional[List[str]] = None,
    ) -> StageResult:
        """
        Mirror ``local_root`` to ``remote_root``.

        Raises:
            RemoteConnectionError: If rsync could not reach the host
            DeploymentError: If the transfer itself failed
        """
        excludes = list(DEFAULT_EXCLUDES if exclude_patterns is None else exclude_patterns)
        if not Path(local_root).is_dir():
            raise DeploymentError(f"Local project directory not found: {local_root}")

        cmd = build_rsync_cmd(
            local_root=Path(local_root),
            connection=self.connection,
            remote_root=remote_root,
            exclude_patterns=excludes,
        )
        if self.logger:
            self.logger.log_command(f"rsync {local_root}/ -> {self.connection.connection_string}:{remote_root}/")

        try:
            completed = self.runner(cmd, capture_output=True, text=True, timeout=RSYNC_TIMEOUT)
        except subprocess.TimeoutExpired:
            raise RemoteConnectionError(
                f"File transfer timed out after {RSYNC_TIMEOUT}s",
                context=f"Host: {self.connection.host}",
                reason="timeout",
            )
        except OSError as e:
            raise DeploymentError(f"Could not start rsync: {e}")

        if self.logger:
            self.logger.log_output(completed.stdout, "stdout")
            self.logger.log_output(completed.stderr, "stderr")

        if completed.returncode in RSYNC_CONNECTION_EXITS:
            raise RemoteConnectionError(
                "File transfer could not connect to the remote host",
                context=f"Host: {self.connection.host}",
                output_excerpt=completed.stderr,
            )
        if completed.returncode != 0:
            raise DeploymentError(
                f"File transfer failed with exit code {completed.returncode}",
                context=f"Destination: {remote_root}",
                output_excerpt=f"{completed.stdout}\n{completed.stderr}",
            )

        stats = SyncStats.parse(completed.stdout)
        message = (
            "No changes to transfer"
            if stats.is_noop
            else f"Transferred {stats.files_transferred} file(s), {stats.bytes_transferred} bytes"
        )
        return StageResult.ok(Stage.FILE_SYNC, message, stats=stats)
