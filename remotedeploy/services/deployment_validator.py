"""Deployment validation service."""

import shlex
from typing import Callable, Dict, Optional

import requests
import urllib3

from remotedeploy.constants import (
    EXTERNAL_ACCEPTED_CODES,
    EXTERNAL_CHECK_TIMEOUT,
    HTTP_ACCEPTED_CODES,
    HTTP_REDIRECT_CODES,
    HTTPS_ACCEPTED_CODES,
    REMOTE_BASE_DIR,
    VALIDATION_LOG_TAIL,
)
from remotedeploy.logger import DeployLogger
from remotedeploy.models.results import Stage, StageResult
from remotedeploy.services.remote_executor import RemoteExecutor

# The certificate is self-signed; external checks skip verification
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

CURL_CODE = "curl -k -s -o /dev/null --max-time 10 -w '%{http_code}'"


def external_status(url: str, timeout: int = EXTERNAL_CHECK_TIMEOUT) -> Optional[int]:
    """HTTP status of ``url`` without following redirects, or None if unreachable."""
    try:
        response = requests.get(url, timeout=timeout, verify=False, allow_redirects=False)
    except requests.RequestException:
        return None
    return response.status_code


class DeploymentValidator:
    """
    Read-only post-deployment checks.

    Failed checks become warnings; the stage itself always succeeds.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        logger: Optional[DeployLogger] = None,
        http_get: Callable[[str], Optional[int]] = external_status,
    ):
        self.executor = executor
        self.logger = logger
        self.http_get = http_get

    def validate(self, app_name: str, port: int, server: str) -> StageResult:
        """Run every check and collect warnings."""
        result = StageResult.ok(Stage.VALIDATION, "Validation complete")

        for service in ["nginx", "docker"]:
            if not self.service_active(service):
                self._warn(result, f"Service {service} is not active")

        if not self.container_listed(app_name):
            self._warn(result, f"No running container matches '{app_name}'")

        if self.port_listening(port):
            self._log(f"Port {port} is listening")
        else:
            self._warn(result, f"Port {port} not found in listening state")

        http_code = self.local_status("http://localhost:80")
        result.data["http_code"] = http_code
        if http_code in HTTP_REDIRECT_CODES:
            self._log(f"HTTP proxy redirecting (code: {http_code})")
        elif http_code in HTTP_ACCEPTED_CODES:
            self._log(f"HTTP proxy responding without redirect (code: {http_code})")
        else:
            self._warn(result, f"HTTP proxy returned code {http_code}")

        https_code = self.local_status("https://localhost:443")
        result.data["https_code"] = https_code
        if https_code in HTTPS_ACCEPTED_CODES:
            self._log(f"HTTPS proxy responding (code: {https_code})")
        else:
            self._warn(result, f"HTTPS proxy returned code {https_code}")

        self.recent_logs(app_name)

        result.data["external"] = self.external_checks(server, result)
        return result

    def service_active(self, service: str) -> bool:
        check = self.executor.run(f"systemctl is-active {shlex.quote(service)}", description=f"{service} status")
        return check.is_success and check.stdout.strip() == "active"

    def container_listed(self, app_name: str) -> bool:
        """True when a running container is named ``app_name`` or belongs to its compose project."""
        listing = self.executor.run(
            "docker ps --format '{{.Names}}|{{.Label \"com.docker.compose.project\"}}'",
            description="Running containers",
        )
        if listing.is_failure:
            return False
        for line in listing.stdout.splitlines():
            name, _, project = line.strip().partition("|")
            if app_name in (name, project):
                return True
        return False

    def port_listening(self, port: int) -> bool:
        check = self.executor.run(f"sudo ss -tlnp | grep -q ':{port}\\b'", description=f"Port {port} check")
        return check.is_success

    def local_status(self, url: str) -> str:
        check = self.executor.run(f"{CURL_CODE} {url}", description=f"Probe {url}")
        return check.stdout.strip() or "000"

    def recent_logs(self, app_name: str) -> str:
        """Recent container log lines, written to the log only."""
        name = shlex.quote(app_name)
        logs = self.executor.run(
            f"docker logs --tail {VALIDATION_LOG_TAIL} {name} 2>&1 || "
            f"(cd {REMOTE_BASE_DIR}/{name} 2>/dev/null && docker-compose logs --tail {VALIDATION_LOG_TAIL} 2>&1) || true",
            description="Recent container logs",
        )
        return logs.stdout

    def external_checks(self, server: str, result: StageResult) -> Dict[str, Optional[int]]:
        """Reachability from the deploying machine."""
        codes: Dict[str, Optional[int]] = {}
        for scheme in ["http", "https"]:
            url = f"{scheme}://{server}"
            code = self.http_get(url)
            codes[scheme] = code
            if code in EXTERNAL_ACCEPTED_CODES:
                self._log(f"External {scheme.upper()} access confirmed (code: {code})")
            else:
                shown = code if code is not None else "failed"
                self._warn(result, f"External {scheme.upper()} test returned: {shown}. Check firewall rules on server")
        return codes

    def _warn(self, result: StageResult, message: str) -> None:
        result.add_warning(message)
        if self.logger:
            self.logger.warning(message)

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
