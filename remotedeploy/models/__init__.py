"""
remotedeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .results import (
    Stage,
    StageResult,
    PipelineResult,
    SSHResult,
    tail_lines,
)
from .ssh import SSHConnection
from .config import (
    Credential,
    DeploymentConfig,
    derive_app_name,
)
from .remote import RemoteCommand
from .proxy import ProxyConfig
from .health import HealthCheckState

__all__ = [
    # Results
    "Stage",
    "StageResult",
    "PipelineResult",
    "SSHResult",
    "tail_lines",
    # SSH
    "SSHConnection",
    # Configuration
    "Credential",
    "DeploymentConfig",
    "derive_app_name",
    # Remote work
    "RemoteCommand",
    "ProxyConfig",
    "HealthCheckState",
]
