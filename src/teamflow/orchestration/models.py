"""Core data models for coder/reviewer orchestration."""
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from teamflow.errors import InvalidStatusTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(str, Enum):
    """Lifecycle status of a task"""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class _CamelModel(BaseModel):
    """Persisted models use camelCase keys on disk"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class WorktreeInfo(_CamelModel):
    """Location of a task sandbox"""

    path: str = ""
    branch_name: str = ""
    base_branch: str = ""

    def is_empty(self) -> bool:
        return not self.path


class TaskState(_CamelModel):
    """Authoritative record of one orchestration run"""

    task_id: str = Field(min_length=1)
    spec_or_issue: str
    spec_content: str = ""
    team_type: str
    current_iteration: int = Field(default=0, ge=0)
    max_iterations: int = Field(ge=1)
    branch_name: str = ""
    worktree_info: WorktreeInfo = Field(default_factory=WorktreeInfo)
    status: TaskStatus = TaskStatus.RUNNING
    coder_responses: list[str] = Field(default_factory=list)
    reviewer_responses: list[str] = Field(default_factory=list)
    error: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_iteration_bound(self) -> "TaskState":
        if self.current_iteration > self.max_iterations:
            raise ValueError(
                f"currentIteration ({self.current_iteration}) exceeds "
                f"maxIterations ({self.max_iterations})"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status != TaskStatus.RUNNING

    def mark_completed(self) -> None:
        self._transition(TaskStatus.COMPLETED)

    def mark_failed(self, error: str | None = None) -> None:
        self._transition(TaskStatus.FAILED)
        self.error = error

    def _transition(self, target: TaskStatus) -> None:
        if self.status != TaskStatus.RUNNING:
            raise InvalidStatusTransitionError(self.status.value, target.value)
        self.status = target

    def to_json(self) -> str:
        """Serialize with the on-disk field names"""
        return self.model_dump_json(by_alias=True, indent=2)


@dataclass
class PRInfo:
    """Pull request metadata returned by the completion detector"""
    number: int
    title: str
    url: str
    state: str
    head_branch: str
    base_branch: str


@dataclass(frozen=True)
class TeamResult:
    """Final result from a team workflow"""
    success: bool
    iterations: int
    task_id: str
    pr_url: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        """Convert to dict for JSON output"""
        return asdict(self)
