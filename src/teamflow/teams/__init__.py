"""Coder/reviewer team definitions."""
from teamflow.teams.registry import PromptTemplate, Team, TeamRegistry, load_team_file

__all__ = ["PromptTemplate", "Team", "TeamRegistry", "load_team_file"]
