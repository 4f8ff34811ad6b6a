import subprocess
from pathlib import Path

import pytest

from remotedeploy.exceptions import DeploymentError, RemoteConnectionError
from remotedeploy.models.ssh import SSHConnection
from remotedeploy.services.file_sync import FileSynchronizer, SyncStats, build_rsync_cmd

CONNECTION = SSHConnection(host="203.0.113.10", user="ubuntu", key_path="/keys/id_rsa")

FIRST_RUN = """\
cd+++++++++ ./
>f+++++++++ Dockerfile
>f+++++++++ app/main.py
*deleting   old.txt
.d..t...... app/

Number of files: 4 (reg: 2, dir: 2)
Number of regular files transferred: 2
Total file size: 1,234 bytes
Total transferred file size: 1,234 bytes
"""

SECOND_RUN = """\
Number of files: 4 (reg: 2, dir: 2)
Number of regular files transferred: 0
Total file size: 1,234 bytes
Total transferred file size: 0 bytes
"""


def test_parse_stats_counts_transfers_and_changes():
    stats = SyncStats.parse(FIRST_RUN)
    assert stats.files_transferred == 2
    assert stats.bytes_transferred == 1234
    assert stats.changes == 4
    assert not stats.is_noop


def test_parse_stats_noop():
    stats = SyncStats.parse(SECOND_RUN)
    assert stats.files_transferred == 0
    assert stats.bytes_transferred == 0
    assert stats.is_noop


def test_build_rsync_cmd():
    cmd = build_rsync_cmd(
        local_root=Path("/work/demo"),
        connection=CONNECTION,
        remote_root="/opt/demo",
        exclude_patterns=[".git", "node_modules"],
    )
    assert cmd[:5] == ["rsync", "-az", "--delete", "--itemize-changes", "--stats"]
    assert "--exclude=.git" in cmd
    assert "--exclude=node_modules" in cmd
    assert cmd[-2:] == ["/work/demo/", "ubuntu@203.0.113.10:/opt/demo/"]
    shell = cmd[cmd.index("-e") + 1]
    assert shell.startswith("ssh -i /keys/id_rsa")
    assert "BatchMode=yes" in shell


def runner_returning(returncode, stdout="", stderr=""):
    calls = []

    def run(args, **kwargs):
        calls.append(args)
        return subprocess.CompletedProcess(args, returncode, stdout, stderr)

    run.calls = calls
    return run


def test_sync_reports_stats(tmp_path):
    runner = runner_returning(0, FIRST_RUN)
    result = FileSynchronizer(CONNECTION, runner=runner).sync(tmp_path, "/opt/demo")
    assert result.success
    assert result.data["stats"].files_transferred == 2
    assert "--exclude=__pycache__" in runner.calls[0]


def test_sync_noop_message(tmp_path):
    result = FileSynchronizer(CONNECTION, runner=runner_returning(0, SECOND_RUN)).sync(tmp_path, "/opt/demo")
    assert result.message == "No changes to transfer"


@pytest.mark.parametrize("code", [12, 255])
def test_transport_failures_are_connection_errors(tmp_path, code):
    synchronizer = FileSynchronizer(CONNECTION, runner=runner_returning(code, stderr="connection unexpectedly closed"))
    with pytest.raises(RemoteConnectionError):
        synchronizer.sync(tmp_path, "/opt/demo")


def test_other_failures_are_deployment_errors(tmp_path):
    synchronizer = FileSynchronizer(CONNECTION, runner=runner_returning(23, stderr="some files could not be transferred"))
    with pytest.raises(DeploymentError, match="exit code 23"):
        synchronizer.sync(tmp_path, "/opt/demo")


def test_missing_local_root(tmp_path):
    with pytest.raises(DeploymentError, match="not found"):
        FileSynchronizer(CONNECTION, runner=runner_returning(0)).sync(tmp_path / "nope", "/opt/demo")
