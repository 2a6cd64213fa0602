"""First-run setup: default config file and editable copies of the built-in teams."""

import logging
import shutil
from pathlib import Path

import toml

from teamflow.config.schema import TeamflowConfig
from teamflow.errors import ConfigurationError
from teamflow.teams.registry import BUILTIN_TEAMS_DIR

logger = logging.getLogger(__name__)


def write_default_config(path: Path, force: bool = False) -> bool:
    """Write the default configuration to `path`.

    Returns False when the file already exists and `force` is not set.
    """
    if path.exists() and not force:
        return False

    config_dict = TeamflowConfig.default().model_dump(by_alias=True, exclude_none=True, mode="json")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            toml.dump(config_dict, f)
    except OSError as e:
        raise ConfigurationError(f"Failed to write {path}: {e}") from e

    logger.debug("Wrote default config to %s", path)
    return True


def copy_builtin_teams(teams_dir: Path, force: bool = False) -> list[Path]:
    """Copy the built-in team definitions into `teams_dir`.

    Existing files are left alone unless `force` is set. Returns the files written.
    """
    written: list[Path] = []
    try:
        teams_dir.mkdir(parents=True, exist_ok=True)
        for source in sorted(BUILTIN_TEAMS_DIR.glob("*.toml")):
            target = teams_dir / source.name
            if target.exists() and not force:
                logger.debug("Keeping existing team file %s", target)
                continue
            shutil.copyfile(source, target)
            written.append(target)
    except OSError as e:
        raise ConfigurationError(f"Failed to copy teams into {teams_dir}: {e}") from e
    return written
