"""Remote executor for running scripts on the target host over SSH."""

import shlex
import subprocess
import time
from typing import Callable, Optional

from remotedeploy.constants import PING_COUNT, PING_WAIT, SSH_CONNECT_TIMEOUT
from remotedeploy.exceptions import RemoteCommandError, RemoteConnectionError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.remote import RemoteCommand
from remotedeploy.models.results import SSHResult
from remotedeploy.models.ssh import SSHConnection

# ssh reserves 255 for its own failures (connect, auth, protocol)
SSH_ERROR_EXIT = 255
AUTH_FAILURE_MARKERS = ("Permission denied", "Authentication failed", "Too many authentication failures")


class RemoteExecutor:
    """
    Runs scripts on the remote host.

    Each call spawns its own ``ssh`` process; no session outlives the call.
    """

    def __init__(
        self,
        connection: SSHConnection,
        logger: Optional[DeployLogger] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        """
        Initialize remote executor.

        Args:
            connection: SSH connection details
            logger: Log sink for commands and output
            runner: subprocess.run compatible callable
        """
        self.connection = connection
        self.logger = logger
        self.runner = runner
        self.last_connection_error: Optional[RemoteConnectionError] = None

    @property
    def host(self) -> str:
        return self.connection.host

    def execute(self, command: RemoteCommand, connect_timeout: Optional[int] = None) -> SSHResult:
        """
        Execute a remote command and wait for it.

        Args:
            command: Script and timeout
            connect_timeout: Override for the ssh ConnectTimeout option

        Returns:
            SSHResult with execution details (non-zero exits included)

        Raises:
            RemoteConnectionError: On timeout, auth failure or unreachable host
        """
        remote = f"bash -c {shlex.quote(command.script)}"
        ssh_cmd = self.connection.build_command(remote, connect_timeout)

        if self.logger:
            self.logger.log_command(f"[{self.connection.connection_string}] {command.label}")

        start_time = time.time()
        try:
            completed = self.runner(
                ssh_cmd,
                capture_output=True,
                text=True,
                timeout=command.timeout,
                stdin=subprocess.DEVNULL,
            )
        except subprocess.TimeoutExpired:
            raise RemoteConnectionError(
                f"SSH command timed out after {command.timeout}s",
                context=f"Host: {self.host}, Command: {command.label}",
                reason="timeout",
            )
        except OSError as e:
            raise RemoteConnectionError(
                f"Could not start ssh: {e}",
                context=f"Host: {self.host}",
            )

        result = SSHResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            host=self.host,
            command=command.label,
            duration_seconds=time.time() - start_time,
        )

        if self.logger:
            self.logger.log_output(result.stdout, "stdout")
            self.logger.log_output(result.stderr, "stderr")

        if result.returncode == SSH_ERROR_EXIT:
            raise self._connection_error(result)

        return result

    def run(
        self,
        script: str,
        timeout: Optional[int] = None,
        description: str = "",
        check: bool = False,
    ) -> SSHResult:
        """
        Build a RemoteCommand and execute it.

        Raises:
            RemoteCommandError: If check is set and the script exits non-zero
        """
        kwargs = {"description": description}
        if timeout is not None:
            kwargs["timeout"] = timeout
        command = RemoteCommand(script, **kwargs)
        result = self.execute(command)
        if check and result.is_failure:
            raise RemoteCommandError(result, description=command.label)
        return result

    def connectivity_check(self, timeout: int = SSH_CONNECT_TIMEOUT) -> bool:
        """
        Check that an authenticated SSH session can be opened.

        The failure, if any, is kept in ``last_connection_error``.
        """
        self.last_connection_error = None
        command = RemoteCommand(
            "echo 'SSH connection successful'",
            timeout=timeout + 5,
            description="SSH connectivity check",
        )
        try:
            result = self.execute(command, connect_timeout=timeout)
        except RemoteConnectionError as e:
            self.last_connection_error = e
            return False
        return result.is_success

    def ping(self, count: int = PING_COUNT, wait: int = PING_WAIT) -> bool:
        """ICMP reachability probe from the local machine. Advisory only."""
        try:
            completed = self.runner(
                ["ping", "-c", str(count), "-W", str(wait), self.host],
                capture_output=True,
                text=True,
                timeout=count * wait + 5,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        return completed.returncode == 0

    def _connection_error(self, result: SSHResult) -> RemoteConnectionError:
        stderr = result.stderr or ""
        if any(marker in stderr for marker in AUTH_FAILURE_MARKERS):
            return RemoteConnectionError(
                "SSH authentication failed",
                context=f"Host: {self.connection.connection_string}, Key: {self.connection.key_path}",
                output_excerpt=stderr,
                reason="authentication",
            )
        return RemoteConnectionError(
            "SSH connection failed",
            context=f"Host: {self.host}",
            output_excerpt=stderr,
            reason="unreachable",
        )
