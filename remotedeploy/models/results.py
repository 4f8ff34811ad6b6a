"""
Result Models

Dataclass models for stage results and remote command outputs.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from enum import Enum

from remotedeploy.constants import OUTPUT_EXCERPT_LINES
from remotedeploy.exceptions import ExitCategory


class Stage(Enum):
    """Stages of the deployment pipeline, in execution order."""

    CONFIGURATION = "configuration"
    REPOSITORY = "repository"
    CONNECTIVITY = "connectivity"
    ENVIRONMENT = "environment"
    FILE_SYNC = "file_sync"
    CONTAINERS = "containers"
    PROXY = "proxy"
    VALIDATION = "validation"
    CLEANUP = "cleanup"


def tail_lines(text: str, limit: int = OUTPUT_EXCERPT_LINES) -> str:
    """Return the last ``limit`` lines of ``text``."""
    if not text:
        return ""
    lines = text.strip().splitlines()
    return "\n".join(lines[-limit:])


@dataclass
class StageResult:
    """Outcome of a single pipeline stage."""

    stage: Stage
    success: bool
    category: ExitCategory = ExitCategory.SUCCESS
    message: str = ""
    output_excerpt: str = ""
    warnings: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.output_excerpt = tail_lines(self.output_excerpt)

    @classmethod
    def ok(cls, stage: Stage, message: str = "", **data: Any) -> "StageResult":
        """Build a successful result."""
        return cls(stage=stage, success=True, message=message, data=dict(data))

    @classmethod
    def failed(
        cls,
        stage: Stage,
        category: ExitCategory,
        message: str,
        output_excerpt: str = "",
    ) -> "StageResult":
        """Build a failed result."""
        return cls(
            stage=stage,
            success=False,
            category=category,
            message=message,
            output_excerpt=output_excerpt,
        )

    def add_warning(self, warning: str) -> None:
        """Add an advisory warning to the result."""
        self.warnings.append(warning)

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def __repr__(self) -> str:
        return f"StageResult(stage={self.stage.value}, success={self.success}, category={self.category.value})"


@dataclass
class PipelineResult:
    """Aggregated outcome of a pipeline run."""

    category: ExitCategory = ExitCategory.SUCCESS
    stages: List[StageResult] = field(default_factory=list)
    commit: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.category == ExitCategory.SUCCESS

    @property
    def exit_code(self) -> int:
        return self.category.exit_code

    @property
    def failed_stage(self) -> Optional[StageResult]:
        """The stage that aborted the run, if any."""
        for result in self.stages:
            if not result.success:
                return result
        return None

    @property
    def warnings(self) -> List[str]:
        return [w for result in self.stages for w in result.warnings]

    def stage(self, stage: Stage) -> Optional[StageResult]:
        for result in self.stages:
            if result.stage == stage:
                return result
        return None

    def __repr__(self) -> str:
        return f"PipelineResult(category={self.category.value}, stages={len(self.stages)})"


@dataclass
class SSHResult:
    """Result of an SSH command execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    host: str = ""
    command: str = ""
    duration_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if SSH command succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if SSH command failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"SSHResult(host={self.host}, returncode={self.returncode}, duration={self.duration_seconds:.2f}s)"
