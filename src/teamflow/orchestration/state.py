"""Durable task state store.

One JSON file per task, ``<state_dir>/task-<task_id>.json``. Every write goes
to a ``.tmp`` sibling first and is renamed into place, so readers only ever
see a complete old record or a complete new one.
"""
import json
import logging
import os
import re
import time
import uuid
from pathlib import Path

from pydantic import ValidationError

from teamflow.config.defaults import DEFAULT_BRANCH_PREFIX
from teamflow.errors import (
    EmptySpecificationError,
    SpecFileNotFoundError,
    SpecificationError,
    StateManagementError,
    StateParseError,
    StateValidationError,
    TaskNotFoundError,
)
from teamflow.orchestration.models import TaskState, TaskStatus, utcnow

logger = logging.getLogger(__name__)

# "#12", "owner/repo#12" or a GitHub issue URL
ISSUE_REFERENCE_PATTERN = re.compile(
    r"^(?:[\w.-]+/[\w.-]+)?#\d+$"
    r"|^https?://github\.com/[^/\s]+/[^/\s]+/issues/\d+/?$"
)


def generate_task_id() -> str:
    """Millisecond timestamp plus a short random suffix"""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def default_branch_name(task_id: str) -> str:
    return f"{DEFAULT_BRANCH_PREFIX}/{task_id}"


def is_issue_reference(spec_or_issue: str) -> bool:
    return bool(ISSUE_REFERENCE_PATTERN.match(spec_or_issue.strip()))


def resolve_specification(spec_or_issue: str) -> str:
    """Return the specification text for a file path or issue reference.

    Issue references are passed through verbatim; the agents resolve them.
    Anything else is read as a file.

    Raises:
        EmptySpecificationError: The argument or the file content is blank.
        SpecFileNotFoundError: The file does not exist.
        SpecificationError: The file exists but cannot be read.
    """
    if not spec_or_issue or not spec_or_issue.strip():
        raise EmptySpecificationError("<empty argument>")

    if is_issue_reference(spec_or_issue):
        return spec_or_issue.strip()

    spec_path = Path(spec_or_issue).expanduser()
    if not spec_path.is_file():
        raise SpecFileNotFoundError(spec_or_issue)

    try:
        content = spec_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SpecificationError(f"Cannot read specification {spec_or_issue}: {e}") from e

    if not content.strip():
        raise EmptySpecificationError(spec_or_issue)
    return content


class TaskStateStore:
    """Reads and writes task state records"""

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    def path_for(self, task_id: str) -> Path:
        return self.state_dir / f"task-{task_id}.json"

    def initialize(
        self,
        spec_or_issue: str,
        *,
        team_type: str,
        max_iterations: int,
        task_id: str | None = None,
        branch_name: str | None = None,
    ) -> TaskState:
        """Create and persist the initial state for a new task.

        The specification is resolved first, so a missing or empty source
        fails before anything is written.
        """
        spec_content = resolve_specification(spec_or_issue)

        task_id = task_id or generate_task_id()
        try:
            state = TaskState(
                task_id=task_id,
                spec_or_issue=spec_or_issue,
                spec_content=spec_content,
                team_type=team_type,
                max_iterations=max_iterations,
                branch_name=branch_name or default_branch_name(task_id),
                status=TaskStatus.RUNNING,
            )
        except ValidationError as e:
            raise StateValidationError(str(e)) from e

        self._write(state)
        logger.debug("Initialized task state %s", self.path_for(task_id))
        return state

    def get(self, task_id: str) -> TaskState:
        """Load a task state.

        Raises:
            TaskNotFoundError: No record exists.
            StateParseError: The record is not valid JSON.
            StateValidationError: The record does not match the schema.
        """
        path = self.path_for(task_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise TaskNotFoundError(task_id) from None
        except OSError as e:
            raise StateManagementError(f"Failed to read state for {task_id}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateParseError(task_id, e) from e

        if not isinstance(data, dict):
            raise StateValidationError("task state must be a JSON object")

        try:
            return TaskState.model_validate(data)
        except ValidationError as e:
            raise StateValidationError(str(e)) from e

    def update(self, state: TaskState) -> None:
        """Refresh ``updatedAt``, re-validate and atomically persist."""
        state.updated_at = utcnow()
        try:
            TaskState.model_validate(state.model_dump())
        except ValidationError as e:
            raise StateValidationError(str(e)) from e
        self._write(state)

    def cleanup(self, task_id: str) -> None:
        """Remove the persisted record. Missing records are not an error."""
        path = self.path_for(task_id)
        for candidate in (path, self._tmp_path(path)):
            try:
                candidate.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StateManagementError(f"Failed to cleanup task state for {task_id}: {e}") from e

    def list_tasks(self) -> list[TaskState]:
        """All readable task states, oldest first"""
        if not self.state_dir.exists():
            return []

        states = []
        for path in sorted(self.state_dir.glob("task-*.json")):
            task_id = path.stem[len("task-"):]
            try:
                states.append(self.get(task_id))
            except StateManagementError as e:
                logger.warning("Skipping unreadable task state %s: %s", path.name, e)
        return sorted(states, key=lambda s: s.created_at)

    def _write(self, state: TaskState) -> None:
        path = self.path_for(state.task_id)
        tmp_path = self._tmp_path(path)
        try:
            self.state_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(state.to_json())
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            raise StateManagementError(f"Failed to write state for {state.task_id}: {e}") from e
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    logger.warning("Could not remove temporary state file %s", tmp_path)

    @staticmethod
    def _tmp_path(path: Path) -> Path:
        return path.with_name(path.name + ".tmp")
