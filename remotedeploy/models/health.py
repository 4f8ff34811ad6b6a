"""
Health Check State

Transient state of the container health-check loop.
"""

from dataclasses import dataclass
from typing import Optional

from remotedeploy.constants import HEALTH_CHECK_MAX_ATTEMPTS

STATUS_RUNNING = "running"
STATUS_NOT_FOUND = "not found"


@dataclass
class HealthCheckState:
    """Attempt counter plus the last observations of the loop."""

    max_attempts: int = HEALTH_CHECK_MAX_ATTEMPTS
    attempts: int = 0
    last_status: str = STATUS_NOT_FOUND
    last_probe_ok: Optional[bool] = None

    @property
    def is_healthy(self) -> bool:
        """Both conditions held on the most recent attempt."""
        return self.last_status == STATUS_RUNNING and bool(self.last_probe_ok)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def record(self, status: str, probe_ok: Optional[bool]) -> None:
        """Record one attempt. ``probe_ok`` is None when the probe was skipped."""
        self.attempts += 1
        self.last_status = status
        self.last_probe_ok = probe_ok

    def __repr__(self) -> str:
        return (
            f"HealthCheckState(attempts={self.attempts}/{self.max_attempts}, "
            f"status={self.last_status}, probe={self.last_probe_ok})"
        )
