"""
Container Deployer

Replaces the application's containers (compose project or single container)
and waits for them to become healthy within a bounded number of attempts.
"""

import shlex
import time
from typing import Callable, Optional

from remotedeploy.constants import (
    COMPOSE_FILES,
    CONTAINER_BUILD_TIMEOUT,
    CONTAINER_SETTLE_DELAY,
    FAILURE_LOG_TAIL,
    HEALTH_CHECK_INTERVAL,
    HEALTH_CHECK_MAX_ATTEMPTS,
    HEALTH_CHECK_PROBE_TIMEOUT,
)
from remotedeploy.exceptions import DeploymentError, HealthCheckError
from remotedeploy.logger import DeployLogger
from remotedeploy.models.health import HealthCheckState, STATUS_NOT_FOUND, STATUS_RUNNING
from remotedeploy.models.results import Stage, StageResult
from remotedeploy.services.remote_executor import RemoteExecutor

INSPECT_STATUS = "docker inspect --format '{{.State.Status}}'"
PS_NAMES = "docker ps -a --format '{{.Names}}'"


def detect_compose_script(remote_root: str) -> str:
    """Prints the compose file name in ``remote_root``, or nothing."""
    candidates = " ".join(COMPOSE_FILES)
    return (
        f"cd {shlex.quote(remote_root)} 2>/dev/null || exit 0\n"
        f"for f in {candidates}; do\n"
        '    if [ -f "$f" ]; then echo "$f"; break; fi\n'
        "done\n"
    )


def remove_container_script(app_name: str) -> str:
    """Stop and remove the named container if it exists."""
    name = shlex.quote(app_name)
    return (
        f"if {PS_NAMES} | grep -Fxq {name}; then\n"
        f"    docker stop {name} >/dev/null && docker rm {name} >/dev/null\n"
        f"    echo 'Removed container {app_name}'\n"
        "else\n"
        f"    echo 'No existing container {app_name}'\n"
        "fi\n"
    )


def compose_cmd(remote_root: str, compose_file: str, args: str) -> str:
    return f"cd {shlex.quote(remote_root)} && docker-compose -f {shlex.quote(compose_file)} {args}"


def parse_container_status(output: str) -> str:
    """
    Reduce ``docker inspect`` status lines to one status.

    All containers must be running; otherwise the first other status wins.
    """
    statuses = [line.strip() for line in (output or "").splitlines() if line.strip()]
    if not statuses:
        return STATUS_NOT_FOUND
    for status in statuses:
        if status != STATUS_RUNNING:
            return status
    return STATUS_RUNNING


def wait_until_healthy(
    status_probe: Callable[[], str],
    http_probe: Callable[[], bool],
    sleep: Callable[[float], None] = time.sleep,
    max_attempts: int = HEALTH_CHECK_MAX_ATTEMPTS,
    interval: float = HEALTH_CHECK_INTERVAL,
    on_attempt: Optional[Callable[[HealthCheckState], None]] = None,
) -> HealthCheckState:
    """
    Bounded retry loop over the container status and an HTTP probe.

    Status is re-probed on every attempt, so a container that starts and
    then crashes is seen as not running. The HTTP probe only runs while the
    container is running. The loop stops on the first attempt where both
    hold, or after ``max_attempts``.
    """
    state = HealthCheckState(max_attempts=max_attempts)
    while not state.exhausted:
        status = status_probe()
        probe_ok = http_probe() if status == STATUS_RUNNING else None
        state.record(status, probe_ok)
        if on_attempt:
            on_attempt(state)
        if state.is_healthy:
            break
        if not state.exhausted:
            sleep(interval)
    return state


class ContainerDeployer:
    """Stops, rebuilds, starts and health-checks the application's containers."""

    def __init__(
        self,
        executor: RemoteExecutor,
        remote_root: str,
        logger: Optional[DeployLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
        settle_delay: float = CONTAINER_SETTLE_DELAY,
        max_attempts: int = HEALTH_CHECK_MAX_ATTEMPTS,
        interval: float = HEALTH_CHECK_INTERVAL,
    ):
        self.executor = executor
        self.remote_root = remote_root
        self.logger = logger
        self.sleep = sleep
        self.settle_delay = settle_delay
        self.max_attempts = max_attempts
        self.interval = interval

    def detect_compose_file(self) -> Optional[str]:
        """Compose file in the remote root, if any. Checked before the Dockerfile."""
        result = self.executor.run(detect_compose_script(self.remote_root), description="Detect compose file")
        name = result.stdout.strip()
        return name if name in COMPOSE_FILES else None

    def deploy(self, app_name: str, port: int) -> StageResult:
        """
        Replace the running containers for ``app_name`` and wait for health.

        Raises:
            DeploymentError: On build/start failure
            HealthCheckError: If the containers never became healthy
        """
        compose_file = self.detect_compose_file()
        mode = f"compose ({compose_file})" if compose_file else "single container"
        self._log(f"Deployment mode: {mode}")

        self.stop_existing(app_name, compose_file)
        self.prune_networks()
        self.build(app_name, compose_file)
        self.start(app_name, port, compose_file)

        self._log("Waiting for container initialization...")
        self.sleep(self.settle_delay)

        state = wait_until_healthy(
            status_probe=lambda: self.container_status(app_name, compose_file),
            http_probe=lambda: self.http_probe(port),
            sleep=self.sleep,
            max_attempts=self.max_attempts,
            interval=self.interval,
            on_attempt=self._log_attempt,
        )

        if not state.is_healthy:
            logs = self.container_logs(app_name, compose_file, FAILURE_LOG_TAIL)
            raise HealthCheckError(app_name, state.attempts, state.last_status, output_excerpt=logs)

        listing = self.executor.run(
            f"docker ps --filter name={shlex.quote(app_name)} "
            "--format 'table {{.Names}}\t{{.Status}}\t{{.Ports}}'",
            description="List containers",
        )
        return StageResult.ok(
            Stage.CONTAINERS,
            f"Container healthy after {state.attempts} attempt(s)",
            attempts=state.attempts,
            compose_file=compose_file,
            listing=listing.stdout.strip(),
        )

    def stop_existing(self, app_name: str, compose_file: Optional[str]) -> None:
        """
        Stop the previous deployment. Nothing running counts as success.

        A single container left by an earlier non-compose deployment is
        removed in compose mode too, otherwise it keeps the port bound.
        """
        self._log("Cleaning up old containers...")
        if compose_file:
            down = compose_cmd(self.remote_root, compose_file, "down --remove-orphans")
            self._check(self.executor.run(down, description="Stop compose project"), "Failed to stop existing containers")
        script = remove_container_script(app_name)
        self._check(self.executor.run(script, description="Stop existing containers"), "Failed to stop existing containers")

    def prune_networks(self) -> None:
        """Remove unused networks left behind by earlier deployments."""
        result = self.executor.run("docker network prune -f", description="Prune networks")
        if result.is_failure and self.logger:
            self.logger.warning("Could not prune unused docker networks")

    def build(self, app_name: str, compose_file: Optional[str]) -> None:
        self._log("Building containers...")
        if compose_file:
            script = compose_cmd(self.remote_root, compose_file, "build")
        else:
            script = f"cd {shlex.quote(self.remote_root)} && docker build -t {shlex.quote(app_name)}:latest ."
        result = self.executor.run(script, timeout=CONTAINER_BUILD_TIMEOUT, description="Build image")
        self._check(result, "Image build failed")

    def start(self, app_name: str, port: int, compose_file: Optional[str]) -> None:
        self._log("Starting containers...")
        if compose_file:
            script = compose_cmd(self.remote_root, compose_file, "up -d")
        else:
            name = shlex.quote(app_name)
            script = f"docker run -d --name {name} -p {port}:{port} --restart always {name}:latest"
        self._check(self.executor.run(script, description="Start containers"), "Failed to start containers")

    def container_status(self, app_name: str, compose_file: Optional[str]) -> str:
        """Current status of the application's container(s)."""
        if compose_file:
            script = (
                f"ids=$({compose_cmd(self.remote_root, compose_file, 'ps -a -q')} 2>/dev/null)\n"
                '[ -z "$ids" ] && exit 0\n'
                f"{INSPECT_STATUS} $ids 2>/dev/null\n"
            )
        else:
            script = f"{INSPECT_STATUS} {shlex.quote(app_name)} 2>/dev/null || true"
        result = self.executor.run(script, timeout=HEALTH_CHECK_PROBE_TIMEOUT + 20, description="Container status")
        return parse_container_status(result.stdout)

    def http_probe(self, port: int) -> bool:
        """True when the application answers on localhost:port."""
        script = f"curl -fsS -o /dev/null --max-time {HEALTH_CHECK_PROBE_TIMEOUT} http://localhost:{port}"
        result = self.executor.run(script, timeout=HEALTH_CHECK_PROBE_TIMEOUT + 20, description="HTTP probe")
        return result.is_success

    def container_logs(self, app_name: str, compose_file: Optional[str], tail: int) -> str:
        """Last ``tail`` log lines of the application's container(s)."""
        if compose_file:
            script = compose_cmd(self.remote_root, compose_file, f"logs --tail {tail}") + " 2>&1"
        else:
            script = f"docker logs --tail {tail} {shlex.quote(app_name)} 2>&1"
        result = self.executor.run(script, description="Container logs")
        return result.stdout

    def _check(self, result, failure: str) -> None:
        if result.is_failure:
            raise DeploymentError(failure, context=f"Host: {self.executor.host}", output_excerpt=result.output)

    def _log_attempt(self, state: HealthCheckState) -> None:
        if self.logger:
            self.logger.log(f"Health check attempt {state.attempts}/{state.max_attempts}: {state}", "DEBUG")

    def _log(self, message: str) -> None:
        if self.logger:
            self.logger.log(message)
