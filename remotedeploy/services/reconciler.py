"""
Resource Reconciler

Ensures the remote host has the container runtime, the compose tool and the
reverse proxy installed and running. Each tool is guarded by a version probe
so installers only run for what is missing.
"""

from dataclasses import dataclass
from typing import List, Optional

from remotedeploy.constants import (
    DOCKER_COMPOSE_BIN,
    DOCKER_COMPOSE_VERSION,
    DOCKER_INSTALL_SCRIPT_URL,
    MANAGED_SERVICES,
    SSH_INSTALL_TIMEOUT,
)
from remotedeploy.exceptions import DeploymentError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.results import Stage, StageResult
from remotedeploy.services.remote_executor import RemoteExecutor


@dataclass(frozen=True)
class ManagedTool:
    """A piece of remote software with its probe and installer."""

    name: str
    version_probe: str
    installer: str
    install_timeout: int = SSH_INSTALL_TIMEOUT


DOCKER = ManagedTool(
    name="docker",
    version_probe="command -v docker >/dev/null 2>&1 && docker --version",
    installer=(
        "set -e\n"
        f"curl -fsSL {DOCKER_INSTALL_SCRIPT_URL} -o /tmp/get-docker.sh\n"
        "sudo sh /tmp/get-docker.sh >/dev/null 2>&1\n"
        'sudo usermod -aG docker "$USER"\n'
        "rm -f /tmp/get-docker.sh\n"
    ),
)

DOCKER_COMPOSE = ManagedTool(
    name="docker-compose",
    version_probe="command -v docker-compose >/dev/null 2>&1 && docker-compose --version",
    installer=(
        "set -e\n"
        "sudo curl -fsSL "
        f'"https://github.com/docker/compose/releases/download/{DOCKER_COMPOSE_VERSION}/'
        'docker-compose-$(uname -s)-$(uname -m)" '
        f"-o {DOCKER_COMPOSE_BIN}\n"
        f"sudo chmod +x {DOCKER_COMPOSE_BIN}\n"
    ),
)

NGINX = ManagedTool(
    name="nginx",
    version_probe="command -v nginx >/dev/null 2>&1 && nginx -v 2>&1",
    installer=(
        "set -e\n"
        "sudo apt-get update -qq\n"
        "sudo DEBIAN_FRONTEND=noninteractive apt-get install -y -qq nginx\n"
    ),
)

DEFAULT_TOOLS = [DOCKER, DOCKER_COMPOSE, NGINX]


class ResourceReconciler:
    """Check-then-install guard around each managed tool."""

    def __init__(
        self,
        executor: RemoteExecutor,
        logger: Optional[DeployLogger] = None,
        tools: Optional[List[ManagedTool]] = None,
        services: Optional[List[str]] = None,
    ):
        self.executor = executor
        self.logger = logger
        self.tools = tools if tools is not None else list(DEFAULT_TOOLS)
        self.services = services if services is not None else list(MANAGED_SERVICES)

    def ensure(self, tool: ManagedTool) -> bool:
        """
        Install ``tool`` unless its version probe already succeeds.

        Returns:
            True if the installer ran, False if the tool was already present

        Raises:
            DeploymentError: If the installer fails
        """
        probe = self.executor.run(tool.version_probe, description=f"Probe {tool.name}")
        if probe.is_success:
            version = probe.stdout.strip().splitlines()[0] if probe.stdout.strip() else "present"
            self._log(f"{tool.name} already installed: {version}")
            return False

        self._log(f"Installing {tool.name}...")
        result = self.executor.run(
            tool.installer,
            timeout=tool.install_timeout,
            description=f"Install {tool.name}",
        )
        if result.is_failure:
            raise DeploymentError(
                f"Failed to install {tool.name}",
                context=f"Host: {self.executor.host}",
                output_excerpt=result.output,
            )
        self._log(f"{tool.name} installed")
        return True

    def enable_services(self) -> List[str]:
        """
        Enable and start managed services.

        Returns:
            Warnings for services that could not be enabled or started
        """
        warnings = []
        enable = self.executor.run(
            f"sudo systemctl enable {' '.join(self.services)}",
            description="Enable services",
        )
        if enable.is_failure:
            warnings.append(f"Could not enable services: {', '.join(self.services)}")

        for service in self.services:
            start = self.executor.run(f"sudo systemctl start {service}", description=f"Start {service}")
            if start.is_failure:
                warnings.append(f"Could not start {service}")

        for warning in warnings:
            if self.logger:
                self.logger.warning(warning)
        return warnings

    def reconcile(self) -> StageResult:
        """Ensure every managed tool, then enable and start services."""
        installed = [tool.name for tool in self.tools if self.ensure(tool)]
        warnings = self.enable_services()

        message = f"Installed: {', '.join(installed)}" if installed else "All tools already present"
        result = StageResult.ok(Stage.ENVIRONMENT, message, installed=installed)
        for warning in warnings:
            result.add_warning(warning)
        return result

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
