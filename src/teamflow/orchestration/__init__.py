"""Task state and workflow orchestration."""
from teamflow.orchestration.models import PRInfo, TaskState, TaskStatus, TeamResult, WorktreeInfo
from teamflow.orchestration.state import TaskStateStore, resolve_specification

__all__ = [
    "PRInfo",
    "TaskState",
    "TaskStateStore",
    "TaskStatus",
    "TeamResult",
    "WorktreeInfo",
    "resolve_specification",
]
