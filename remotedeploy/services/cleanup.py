"""
Cleanup Orchestrator

Removes everything a deployment created for one application: its containers,
its nginx site and its project directory. Other applications are untouched.
"""

import shlex
from typing import Optional

from remotedeploy.exceptions import DeploymentError, ProxyConfigError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.proxy import ProxyConfig
from remotedeploy.models.results import Stage, StageResult
from remotedeploy.services.container_deployer import (
    compose_cmd,
    detect_compose_script,
    remove_container_script,
)
from remotedeploy.services.remote_executor import RemoteExecutor


class CleanupOrchestrator:
    """Inverse of the container, proxy and file placement stages."""

    def __init__(self, executor: RemoteExecutor, logger: Optional[DeployLogger] = None):
        self.executor = executor
        self.logger = logger

    def teardown(self, app_name: str, remote_root: str) -> StageResult:
        """
        Remove the deployment of ``app_name``. Already absent resources count as removed.

        Raises:
            DeploymentError: If containers or the project directory cannot be removed
            ProxyConfigError: If nginx rejects the configuration after removal
        """
        if remote_root.rstrip("/").rsplit("/", 1)[-1] != app_name:
            raise DeploymentError(
                f"Refusing to remove {remote_root}",
                context=f"Project directory must be named after {app_name}",
            )
        self.remove_containers(app_name, remote_root)
        self.prune_networks()
        self.remove_proxy_site(app_name)
        self.remove_project_dir(remote_root)
        return StageResult.ok(Stage.CLEANUP, "Cleanup complete", app_name=app_name, remote_root=remote_root)

    def remove_containers(self, app_name: str, remote_root: str) -> None:
        detected = self.executor.run(detect_compose_script(remote_root), description="Detect compose file")
        compose_file = detected.stdout.strip()
        if compose_file:
            self._log(f"Tearing down compose project ({compose_file}) with volumes")
            down = compose_cmd(remote_root, compose_file, "down -v --remove-orphans")
            self._check_removed(self.executor.run(down, description="Remove compose project"), app_name)
        removed = self.executor.run(remove_container_script(app_name), description="Remove containers")
        self._check_removed(removed, app_name)

    def _check_removed(self, result, app_name: str) -> None:
        if result.is_failure:
            raise DeploymentError(
                f"Failed to remove containers for {app_name}",
                context=f"Host: {self.executor.host}",
                output_excerpt=result.output,
            )

    def prune_networks(self) -> None:
        result = self.executor.run("docker network prune -f", description="Prune networks")
        if result.is_failure and self.logger:
            self.logger.warning("Could not prune unused docker networks")

    def remove_proxy_site(self, app_name: str) -> None:
        """Delete the site entries, then validate and reload so removal takes effect."""
        proxy = ProxyConfig(app_name=app_name, upstream_port=1)
        removed = self.executor.run(
            "set -e\n"
            f"sudo rm -f {shlex.quote(proxy.enabled_path)}\n"
            f"sudo rm -f {shlex.quote(proxy.available_path)}\n",
            description="Remove nginx site",
        )
        if removed.is_failure:
            raise ProxyConfigError(f"Failed to remove nginx site for {app_name}", output_excerpt=removed.output)

        syntax = self.executor.run("sudo nginx -t 2>&1", description="Nginx syntax check")
        if syntax.is_failure:
            raise ProxyConfigError(
                "Nginx configuration test failed after removing the site",
                output_excerpt=syntax.output,
            )
        reload = self.executor.run("sudo systemctl reload nginx", description="Reload nginx")
        if reload.is_failure:
            raise ProxyConfigError("Failed to reload nginx", output_excerpt=reload.output)

    def remove_project_dir(self, remote_root: str) -> None:
        result = self.executor.run(f"sudo rm -rf {shlex.quote(remote_root)}", description="Remove project directory")
        if result.is_failure:
            raise DeploymentError(f"Failed to remove {remote_root}", output_excerpt=result.output)

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
