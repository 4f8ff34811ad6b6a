import subprocess

import pytest

from remotedeploy.exceptions import RemoteCommandError, RemoteConnectionError
from remotedeploy.models.remote import RemoteCommand
from remotedeploy.models.ssh import SSHConnection
from remotedeploy.services.remote_executor import RemoteExecutor

CONNECTION = SSHConnection(host="203.0.113.10", user="ubuntu", key_path="/keys/id_rsa")


class ScriptedRunner:
    def __init__(self, returncode=0, stdout="", stderr="", raises=None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.raises = raises
        self.calls = []

    def __call__(self, args, **kwargs):
        self.calls.append((args, kwargs))
        if self.raises:
            raise self.raises
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


def test_execute_wraps_script_for_bash():
    runner = ScriptedRunner(stdout="ok\n")
    executor = RemoteExecutor(CONNECTION, runner=runner)

    result = executor.execute(RemoteCommand("echo 'it''s'\necho two", timeout=42))

    args, kwargs = runner.calls[0]
    assert args[0] == "ssh"
    assert args[-2] == "ubuntu@203.0.113.10"
    assert args[-1].startswith("bash -c ")
    assert kwargs["timeout"] == 42
    assert kwargs["stdin"] == subprocess.DEVNULL
    assert result.is_success
    assert result.stdout == "ok\n"
    assert result.host == "203.0.113.10"


def test_nonzero_exit_is_returned():
    executor = RemoteExecutor(CONNECTION, runner=ScriptedRunner(returncode=1, stderr="nope"))
    result = executor.run("false")
    assert result.is_failure
    assert result.output == "nope"


def test_run_with_check_raises_command_error():
    executor = RemoteExecutor(CONNECTION, runner=ScriptedRunner(returncode=2, stdout="bad"))
    with pytest.raises(RemoteCommandError) as excinfo:
        executor.run("false", description="Do thing", check=True)
    assert "Do thing failed with exit code 2" in str(excinfo.value)
    assert excinfo.value.output_excerpt == "bad"


def test_timeout_maps_to_connection_error():
    runner = ScriptedRunner(raises=subprocess.TimeoutExpired(cmd="ssh", timeout=5))
    executor = RemoteExecutor(CONNECTION, runner=runner)
    with pytest.raises(RemoteConnectionError) as excinfo:
        executor.run("sleep 100", timeout=5)
    assert excinfo.value.reason == "timeout"


def test_permission_denied_is_authentication_failure():
    runner = ScriptedRunner(returncode=255, stderr="ubuntu@203.0.113.10: Permission denied (publickey).")
    executor = RemoteExecutor(CONNECTION, runner=runner)
    with pytest.raises(RemoteConnectionError) as excinfo:
        executor.run("true")
    assert excinfo.value.reason == "authentication"


def test_exit_255_without_auth_marker_is_unreachable():
    runner = ScriptedRunner(returncode=255, stderr="ssh: connect to host: No route to host")
    executor = RemoteExecutor(CONNECTION, runner=runner)
    with pytest.raises(RemoteConnectionError) as excinfo:
        executor.run("true")
    assert excinfo.value.reason == "unreachable"


def test_connectivity_check_keeps_last_error():
    runner = ScriptedRunner(returncode=255, stderr="Permission denied (publickey).")
    executor = RemoteExecutor(CONNECTION, runner=runner)

    assert executor.connectivity_check(timeout=7) is False
    assert executor.last_connection_error.reason == "authentication"
    args, _ = runner.calls[0]
    assert "ConnectTimeout=7" in args


def test_connectivity_check_success():
    executor = RemoteExecutor(CONNECTION, runner=ScriptedRunner(stdout="SSH connection successful\n"))
    assert executor.connectivity_check() is True
    assert executor.last_connection_error is None


def test_ping_is_local_and_tolerant():
    runner = ScriptedRunner(returncode=1)
    executor = RemoteExecutor(CONNECTION, runner=runner)
    assert executor.ping() is False
    args, _ = runner.calls[0]
    assert args == ["ping", "-c", "2", "-W", "3", "203.0.113.10"]

    missing = RemoteExecutor(CONNECTION, runner=ScriptedRunner(raises=FileNotFoundError("ping")))
    assert missing.ping() is False


def test_output_is_logged(logger):
    executor = RemoteExecutor(CONNECTION, logger=logger, runner=ScriptedRunner(stdout="hello from remote\n"))
    executor.run("echo hello", description="Greeting")
    logger.close()
    content = logger.log_path.read_text()
    assert "Greeting" in content
    assert "[stdout] hello from remote" in content
