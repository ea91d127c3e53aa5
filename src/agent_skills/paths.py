"""Filesystem layout and user configuration.

Layout under the (overridable) home directory:

    ~/.agents/skills/               # canonical store (source of truth)
    ├── <skill>/SKILL.md
    └── .skills-lock                # provenance ledger
    ~/.skills-manager/
    ├── config.json                 # user settings
    ├── custom-agents.json          # user-defined agents
    ├── agents.json                 # agents adopted from the remote catalog
    └── agent-update-cache.json
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from agent_skills.errors import SkillsError

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "AGENT_SKILLS_HOME"
MANIFEST_NAME = "SKILL.md"
LOCK_FILE_NAME = ".skills-lock"


def is_safe_name(name: str) -> bool:
    """True when `name` is a single path component that stays inside its parent."""
    if not name or name in (".", ".."):
        return False
    return not any(sep in name for sep in ("/", "\\", "\0"))


def check_skill_name(name: str) -> str:
    if not is_safe_name(name or ""):
        raise SkillsError(f"invalid skill name: {name!r}")
    return name


@dataclass(frozen=True)
class SkillsPaths:
    """Resolved locations of every state file, relative to one home directory."""

    home: Path

    @classmethod
    def from_env(cls) -> "SkillsPaths":
        """Use $AGENT_SKILLS_HOME when set, else the user's home directory."""
        override = os.environ.get(HOME_ENV_VAR, "").strip()
        return cls(Path(override) if override else Path.home())

    @property
    def store_dir(self) -> Path:
        return self.home / ".agents" / "skills"

    @property
    def lock_file(self) -> Path:
        return self.store_dir / LOCK_FILE_NAME

    @property
    def config_dir(self) -> Path:
        return self.home / ".skills-manager"

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.json"

    @property
    def custom_agents_file(self) -> Path:
        return self.config_dir / "custom-agents.json"

    @property
    def known_agents_file(self) -> Path:
        return self.config_dir / "agents.json"

    @property
    def agent_update_cache_file(self) -> Path:
        return self.config_dir / "agent-update-cache.json"

    def skill_dir(self, name: str) -> Path:
        """Canonical directory of a skill; rejects names that escape the store."""
        return self.store_dir / check_skill_name(name)


def default_config() -> Dict[str, Any]:
    return {
        "default_agents": [],
        "github_token": None,
    }


def load_config(paths: SkillsPaths) -> Dict[str, Any]:
    """Load the agent-skills configuration, falling back to defaults."""
    config = default_config()
    config_path = paths.config_file
    if config_path.exists():
        try:
            with open(config_path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Ignoring unreadable config %s: %s", config_path, e)
            return config
        if isinstance(data, dict):
            config.update(data)
    return config


def save_config(paths: SkillsPaths, config: Dict[str, Any]):
    """Save the agent-skills configuration."""
    config_path = paths.config_file
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        json.dump(config, f, indent=2)
