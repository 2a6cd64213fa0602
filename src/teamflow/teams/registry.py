"""Team registry for discovering and loading coder/reviewer teams."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from string import Template

import toml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from teamflow.errors import TeamDefinitionError, TeamNotFoundError

logger = logging.getLogger(__name__)

BUILTIN_TEAMS_DIR = Path(__file__).parent / "builtin"

SPEC_PLACEHOLDER = "spec_or_issue"

PromptBuilder = Callable[[str], str]


class PromptTemplate:
    """Prompt builder backed by a `string.Template`.

    Only ``${spec_or_issue}`` is substituted; any other ``$`` or braces in
    the prompt text are left untouched.
    """

    def __init__(self, template: str):
        self.source = template
        self._template = Template(template)

    def __call__(self, spec_or_issue: str) -> str:
        return self._template.safe_substitute({SPEC_PLACEHOLDER: spec_or_issue})

    def __repr__(self) -> str:
        return f"<PromptTemplate {len(self.source)} chars>"


@dataclass(frozen=True)
class Team:
    """A named pair of prompt builders for the two roles."""

    name: str
    coder: PromptBuilder
    reviewer: PromptBuilder
    source: str | None = None


class TeamDefinition(BaseModel):
    """On-disk team file: exactly a CODER and a REVIEWER template."""

    model_config = ConfigDict(extra="forbid")

    CODER: str
    REVIEWER: str

    @field_validator("CODER", "REVIEWER")
    @classmethod
    def _must_reference_spec(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt template must not be empty")
        if f"${{{SPEC_PLACEHOLDER}}}" not in value and f"${SPEC_PLACEHOLDER}" not in value:
            raise ValueError(f"prompt template must reference ${{{SPEC_PLACEHOLDER}}}")
        return value

    def to_team(self, name: str, source: str | None = None) -> Team:
        return Team(
            name=name,
            coder=PromptTemplate(self.CODER),
            reviewer=PromptTemplate(self.REVIEWER),
            source=source,
        )


def load_team_file(path: Path) -> Team:
    """Load and validate a single team definition file.

    Raises:
        TeamDefinitionError: The file is unreadable or does not match the
            team contract.
    """
    try:
        data = toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        raise TeamDefinitionError(path.name, f"cannot parse TOML: {e}") from e

    try:
        definition = TeamDefinition.model_validate(data)
    except ValidationError as e:
        reasons = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'file'}: {err['msg']}"
            for err in e.errors()
        )
        raise TeamDefinitionError(path.name, reasons) from e

    return definition.to_team(path.stem, source=str(path))


class TeamRegistry:
    """Resolves teams by name.

    Teams are discovered from, in order (later entries override earlier):
    1. Built-in teams shipped with teamflow
    2. Each extra directory given to the constructor (user teams)
    3. Teams registered programmatically with register()
    """

    def __init__(self, search_dirs: Sequence[Path] = ()):
        self.search_dirs: list[Path] = [BUILTIN_TEAMS_DIR, *(Path(d) for d in search_dirs)]
        self._registered: dict[str, Team] = {}

    def load_all(self) -> dict[str, Team]:
        """Scan every search directory. Invalid files are skipped with a warning."""
        teams: dict[str, Team] = {}

        for directory in self.search_dirs:
            if not directory.is_dir():
                logger.debug("Team directory %s does not exist, skipping", directory)
                continue

            for team_file in sorted(directory.glob("*.toml")):
                if team_file.name.startswith("_"):
                    continue
                try:
                    team = load_team_file(team_file)
                except TeamDefinitionError as e:
                    logger.warning("Skipping team %s: %s", team_file.stem, e)
                    continue
                teams[team.name] = team

        teams.update(self._registered)
        return teams

    def load(self, name: str) -> Team:
        """Get a team by name.

        Raises:
            TeamNotFoundError: No team with that name, with the available names.
        """
        teams = self.load_all()
        team = teams.get(name)
        if team is None:
            raise TeamNotFoundError(name, sorted(teams))
        return team

    def names(self) -> list[str]:
        """Sorted names of all loadable teams."""
        return sorted(self.load_all())

    def register(self, team: Team) -> None:
        """Manually register a team.

        Useful for testing or programmatic registration.
        """
        if not callable(team.coder) or not callable(team.reviewer):
            raise TeamDefinitionError(team.name, "coder and reviewer must be callable")
        self._registered[team.name] = team
