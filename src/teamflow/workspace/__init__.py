"""Git sandboxes for task isolation."""
from teamflow.workspace.git import GitClient, WorktreeEntry
from teamflow.workspace.sandbox import SandboxManager

__all__ = ["GitClient", "SandboxManager", "WorktreeEntry"]
