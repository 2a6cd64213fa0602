"""Role prompts built from a team's templates."""

from teamflow.errors import PromptFormattingError
from teamflow.teams.registry import Team

FEEDBACK_HEADER = "## Reviewer feedback from the previous iteration"
HANDOFF_HEADER = "## Coder handoff"


def build_coder_prompt(team: Team, spec: str, feedback: str | None = None) -> str:
    """Coder prompt for one iteration.

    From the second iteration on, the previous reviewer response is appended
    so the coder addresses it before anything else.
    """
    prompt = _render(team.coder, spec, "coder", team.name)
    if feedback and feedback.strip():
        prompt = (
            f"{prompt.rstrip()}\n\n{FEEDBACK_HEADER}\n\n{feedback.strip()}\n\n"
            "Address every point above before handing the work back for review."
        )
    return prompt


def build_reviewer_prompt(team: Team, spec: str, coder_output: str) -> str:
    """Reviewer prompt: the original specification plus the coder's handoff."""
    prompt = _render(team.reviewer, spec, "reviewer", team.name)
    if coder_output and coder_output.strip():
        prompt = f"{prompt.rstrip()}\n\n{HANDOFF_HEADER}\n\n{coder_output.strip()}"
    return prompt


def _render(builder, spec: str, role: str, team_name: str) -> str:
    if not spec or not spec.strip():
        raise PromptFormattingError("Specification content cannot be empty")
    try:
        prompt = builder(spec)
    except Exception as e:
        raise PromptFormattingError(f"Failed to format {role} prompt for team {team_name}: {e}") from e
    if not isinstance(prompt, str) or not prompt.strip():
        raise PromptFormattingError(f"Team {team_name} produced an empty {role} prompt")
    return prompt
