import pytest

from remotedeploy.exceptions import DeploymentError, HealthCheckError
from remotedeploy.services.container_deployer import (
    ContainerDeployer,
    parse_container_status,
    wait_until_healthy,
)


def test_health_loop_exits_on_first_success(no_sleep):
    state = wait_until_healthy(lambda: "running", lambda: True, sleep=no_sleep)
    assert state.is_healthy
    assert state.attempts == 1
    assert no_sleep.calls == []


def test_health_loop_is_bounded_at_thirty_attempts(no_sleep):
    probes = []

    def probe():
        probes.append(1)
        return False

    state = wait_until_healthy(lambda: "running", probe, sleep=no_sleep)

    assert not state.is_healthy
    assert state.attempts == 30
    assert len(probes) == 30
    # Sleeps only between attempts, each at least the interval
    assert no_sleep.calls == [2] * 29


def test_health_loop_skips_probe_until_running(no_sleep):
    statuses = iter(["created", "restarting", "running"])
    probes = []

    def probe():
        probes.append(1)
        return True

    state = wait_until_healthy(lambda: next(statuses), probe, sleep=no_sleep)

    assert state.is_healthy
    assert state.attempts == 3
    assert len(probes) == 1


def test_health_loop_sees_crash_after_start(no_sleep):
    statuses = iter(["running"] + ["exited"] * 29)
    state = wait_until_healthy(lambda: next(statuses), lambda: False, sleep=no_sleep)
    assert not state.is_healthy
    assert state.last_status == "exited"
    assert state.last_probe_ok is None


def test_parse_container_status():
    assert parse_container_status("") == "not found"
    assert parse_container_status("running\nrunning\n") == "running"
    assert parse_container_status("running\nexited\n") == "exited"


def make_deployer(executor, no_sleep, **kwargs):
    return ContainerDeployer(executor, "/opt/demo", sleep=no_sleep, **kwargs)


def test_single_container_deploy(executor, host, no_sleep):
    host.dirs.add("/opt/demo")
    result = make_deployer(executor, no_sleep).deploy("demo", 8080)

    assert result.success
    assert result.data["compose_file"] is None
    assert result.data["attempts"] == 1
    assert host.containers == {"demo": "running"}
    assert "docker run -d --name demo -p 8080:8080 --restart always demo:latest" in executor.scripts
    assert "cd /opt/demo && docker build -t demo:latest ." in executor.scripts
    # settle delay before the loop
    assert no_sleep.calls[0] == 5


def test_redeploy_replaces_existing_container(executor, host, no_sleep):
    host.dirs.add("/opt/demo")
    deployer = make_deployer(executor, no_sleep)
    deployer.deploy("demo", 8080)
    deployer.deploy("demo", 8080)
    assert host.starts == 2
    assert host.containers == {"demo": "running"}


def test_compose_deploy(executor, host, no_sleep):
    host.dirs.add("/opt/demo")
    host.compose_files["/opt/demo"] = "docker-compose.yml"

    result = make_deployer(executor, no_sleep).deploy("demo", 8080)

    assert result.data["compose_file"] == "docker-compose.yml"
    assert "cd /opt/demo && docker-compose -f docker-compose.yml down --remove-orphans" in executor.scripts
    assert "cd /opt/demo && docker-compose -f docker-compose.yml up -d" in executor.scripts


def test_build_failure_carries_output(executor, host, no_sleep):
    host.fail_build = True
    with pytest.raises(DeploymentError, match="Image build failed") as excinfo:
        make_deployer(executor, no_sleep).deploy("demo", 8080)
    assert "npm ERR!" in excinfo.value.output_excerpt


def test_probe_failures_then_success(executor, host, no_sleep):
    host.probe_failures = 3
    result = make_deployer(executor, no_sleep).deploy("demo", 8080)
    assert result.data["attempts"] == 4


def test_unhealthy_container_raises_with_logs(executor, host, no_sleep):
    host.status_sequence = ["running"] + ["exited"] * 40
    host.probe_failures = 100
    with pytest.raises(HealthCheckError) as excinfo:
        make_deployer(executor, no_sleep, max_attempts=5).deploy("demo", 8080)

    error = excinfo.value
    assert error.attempts == 5
    assert error.last_status == "exited"
    assert "app: listening" in error.output_excerpt
    assert "docker logs --tail 50 demo 2>&1" in executor.scripts


def test_network_prune_failure_is_tolerated(executor, no_sleep, logger):
    executor.reply("docker network prune", returncode=1)
    deployer = ContainerDeployer(executor, "/opt/demo", logger=logger, sleep=no_sleep)
    assert deployer.deploy("demo", 8080).success


def test_switch_to_compose_stops_single_container(executor, host, no_sleep):
    host.dirs.add("/opt/demo")
    deployer = make_deployer(executor, no_sleep)
    deployer.deploy("demo", 8080)
    assert host.containers == {"demo": "running"}

    host.compose_files["/opt/demo"] = "docker-compose.yml"
    result = deployer.deploy("demo", 8080)

    assert result.data["compose_file"] == "docker-compose.yml"
    assert host.containers == {"demo-web-1": "running"}
    stop = max(i for i, s in enumerate(executor.scripts) if "grep -Fxq demo" in s)
    up = executor.scripts.index("cd /opt/demo && docker-compose -f docker-compose.yml up -d")
    assert stop < up
