"""Check command - reachability and SSH login test"""

import click

from remotedeploy.base import BaseCommand
from remotedeploy.constants import DEFAULT_SSH_KEY_PATH
from remotedeploy.exceptions import RemoteConnectionError, ValidationError
from remotedeploy.models.ssh import SSHConnection
from remotedeploy.services.remote_executor import RemoteExecutor


class CheckCommand(BaseCommand):
    """Ping (advisory) followed by an SSH connectivity check (decisive)."""

    def __init__(self, connection: SSHConnection, verbose: bool = False):
        super().__init__(verbose=verbose)
        self.connection = connection

    def execute(self) -> None:
        if not self.connection.key_path_expanded.is_file():
            raise ValidationError(f"SSH key not found at: {self.connection.key_path_expanded}")

        self.show_header(title="Connectivity Check", details={"Server": self.connection.connection_string})
        executor = RemoteExecutor(self.connection)

        if executor.ping():
            self.print_success(f"{self.connection.host} responds to ping")
        else:
            self.print_warning("Server not responding to ping (may be blocked by firewall)")

        if not executor.connectivity_check():
            raise executor.last_connection_error or RemoteConnectionError(
                "Cannot establish SSH connection",
                context=f"Host: {self.connection.connection_string}",
            )
        self.print_success("SSH connection successful")


@click.command()
@click.option("--user", "-u", "ssh_user", required=True, help="SSH username on the server")
@click.option("--server", "-s", required=True, help="Server IP address or hostname")
@click.option("--key", "-k", "ssh_key", default=DEFAULT_SSH_KEY_PATH, show_default=True, help="SSH private key")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
def check(ssh_user, server, ssh_key, verbose):
    """
    Check that the server is reachable over SSH

    Example:
        remotedeploy check -u ubuntu -s 203.0.113.10
    """
    connection = SSHConnection(host=server, user=ssh_user, key_path=ssh_key)
    CheckCommand(connection, verbose=verbose).run()
