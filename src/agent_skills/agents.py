"""Agent registry: the consumer tools that read skills from their own directories.

The registry is a plain value built once from a fixed built-in table, the
agents adopted from the remote catalog (agents.json) and the user's custom
agents (custom-agents.json). It is passed explicitly to every component.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from agent_skills.errors import AgentConflictError, AgentNotFoundError, SkillsError
from agent_skills.paths import SkillsPaths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgentDescriptor:
    """One consumer tool and where it expects skills to live."""

    name: str
    global_path: str  # relative to the home directory
    local_path: str   # relative to a project root
    is_custom: bool = False

    def global_dir(self, home: Path) -> Path:
        return home / self.global_path

    def local_dir(self, project_root: Path) -> Path:
        return Path(project_root) / self.local_path

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "globalPath": self.global_path,
            "localPath": self.local_path,
        }


# Folder conventions follow the skills CLI agent table (vercel-labs/skills).
# Several agents share a directory; paths are not unique across agents.
BUILTIN_AGENTS: Tuple[AgentDescriptor, ...] = tuple(
    AgentDescriptor(name, global_path, local_path)
    for name, global_path, local_path in [
        ("Amp", ".config/agents/skills", ".amp/skills"),
        ("Kimi Code CLI", ".config/agents/skills", ".kimi/skills"),
        ("Replit", ".config/agents/skills", ".replit/skills"),
        ("Antigravity", ".gemini/antigravity/skills", ".gemini/skills"),
        ("Augment", ".augment/skills", ".augment/skills"),
        ("Claude Code", ".claude/skills", ".claude/skills"),
        ("OpenClaw", ".moltbot/skills", ".moltbot/skills"),
        ("Cline", ".cline/skills", ".cline/skills"),
        ("CodeBuddy", ".codebuddy/skills", ".codebuddy/skills"),
        ("Codex", ".codex/skills", ".codex/skills"),
        ("Command Code", ".commandcode/skills", ".commandcode/skills"),
        ("Continue", ".continue/skills", ".continue/skills"),
        ("Crush", ".config/crush/skills", ".crush/skills"),
        ("Cursor", ".cursor/skills", ".cursor/skills"),
        ("Droid", ".factory/skills", ".factory/skills"),
        ("Gemini CLI", ".gemini/skills", ".gemini/skills"),
        ("GitHub Copilot", ".copilot/skills", ".copilot/skills"),
        ("Goose", ".config/goose/skills", ".goose/skills"),
        ("Junie", ".junie/skills", ".junie/skills"),
        ("iFlow CLI", ".iflow/skills", ".iflow/skills"),
        ("Kilo Code", ".kilocode/skills", ".kilocode/skills"),
        ("Kiro CLI", ".kiro/skills", ".kiro/skills"),
        ("Kode", ".kode/skills", ".kode/skills"),
        ("MCPJam", ".mcpjam/skills", ".mcpjam/skills"),
        ("Mistral Vibe", ".vibe/skills", ".vibe/skills"),
        ("Mux", ".mux/skills", ".mux/skills"),
        ("OpenCode", ".config/opencode/skills", ".opencode/skills"),
        ("OpenHands", ".openhands/skills", ".openhands/skills"),
        ("Pi", ".pi/agent/skills", ".pi/skills"),
        ("Qoder", ".qoder/skills", ".qoder/skills"),
        ("Qwen Code", ".qwen/skills", ".qwen/skills"),
        ("Roo Code", ".roo/skills", ".roo/skills"),
        ("Trae", ".trae/skills", ".trae/skills"),
        ("Trae CN", ".trae-cn/skills", ".trae-cn/skills"),
        ("Windsurf", ".codeium/windsurf/skills", ".windsurf/skills"),
        ("Zencoder", ".zencoder/skills", ".zencoder/skills"),
        ("Neovate", ".neovate/skills", ".neovate/skills"),
        ("Pochi", ".pochi/skills", ".pochi/skills"),
        ("AdaL", ".adal/skills", ".adal/skills"),
        ("Cortex Code", ".cortex/skills", ".snowflake/cortex/skills"),
        ("Universal", ".agents/skills", ".config/agents/skills"),
    ]
)


def custom_agent_paths(name: str) -> str:
    """Default relative path for a custom agent: '.<slug>/skills'."""
    slug = name.strip().replace(" ", "-").lower()
    return f".{slug}/skills"


def _read_agent_list(path: Path, is_custom: bool) -> List[AgentDescriptor]:
    """Read a JSON array of {name, globalPath, localPath}.

    A missing file is an empty list. A malformed file is logged and treated as
    empty so a bad hand edit never takes the whole registry down.
    """
    if not path.exists():
        return []
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning("Ignoring unreadable agent file %s: %s", path, e)
        return []
    if not isinstance(data, list):
        logger.warning("Ignoring agent file %s: expected a JSON array", path)
        return []

    agents = []
    for item in data:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        local_path = item.get("localPath") or custom_agent_paths(item["name"])
        agents.append(AgentDescriptor(
            name=item["name"],
            global_path=item.get("globalPath") or local_path,
            local_path=local_path,
            is_custom=is_custom,
        ))
    return agents


def _write_agent_list(path: Path, agents: Sequence[AgentDescriptor]):
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump([a.to_dict() for a in agents], f, indent=2)


class AgentRegistry:
    """Ordered, case-insensitively unique collection of agent descriptors."""

    def __init__(
        self,
        builtins: Sequence[AgentDescriptor] = BUILTIN_AGENTS,
        known: Sequence[AgentDescriptor] = (),
        customs: Sequence[AgentDescriptor] = (),
        custom_file: Optional[Path] = None,
    ):
        self._agents: List[AgentDescriptor] = []
        self._custom_file = custom_file
        for agent in list(builtins) + list(known) + list(customs):
            existing = self.find(agent.name, case_sensitive=False)
            if existing is not None:
                logger.warning(
                    "Skipping agent %r: name collides with %r", agent.name, existing.name
                )
                continue
            self._agents.append(agent)

    @classmethod
    def load(cls, paths: SkillsPaths) -> "AgentRegistry":
        """Built-ins, then catalog-adopted agents, then the user's custom agents."""
        return cls(
            builtins=BUILTIN_AGENTS,
            known=_read_agent_list(paths.known_agents_file, is_custom=False),
            customs=_read_agent_list(paths.custom_agents_file, is_custom=True),
            custom_file=paths.custom_agents_file,
        )

    def __iter__(self) -> Iterator[AgentDescriptor]:
        return iter(list(self._agents))

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not None

    @property
    def names(self) -> List[str]:
        return [a.name for a in self._agents]

    @property
    def customs(self) -> List[AgentDescriptor]:
        return [a for a in self._agents if a.is_custom]

    def find(self, name: str, case_sensitive: bool = True) -> Optional[AgentDescriptor]:
        for agent in self._agents:
            if agent.name == name:
                return agent
            if not case_sensitive and agent.name.lower() == name.lower():
                return agent
        return None

    def get(self, name: str) -> AgentDescriptor:
        """Return the agent called `name` or raise AgentNotFoundError."""
        agent = self.find(name)
        if agent is None:
            raise AgentNotFoundError(name)
        return agent

    def resolve_names(self, names) -> List[AgentDescriptor]:
        """Map agent names to descriptors, rejecting any unknown name."""
        return [self.get(name) for name in names]

    # -------------------------------------------------------------------------
    # Custom agents
    # -------------------------------------------------------------------------

    def add_custom(
        self,
        name: str,
        global_path: Optional[str] = None,
        local_path: Optional[str] = None,
    ) -> AgentDescriptor:
        """Register and persist a user-defined agent.

        Collisions are checked case-insensitively against every known agent
        (built-in, adopted or custom) and rejected, never overwritten.
        """
        name = (name or "").strip()
        if not name:
            raise SkillsError("agent name must not be empty")
        existing = self.find(name, case_sensitive=False)
        if existing is not None:
            raise AgentConflictError(name, existing.name)

        default_path = custom_agent_paths(name)
        agent = AgentDescriptor(
            name=name,
            global_path=global_path or default_path,
            local_path=local_path or default_path,
            is_custom=True,
        )
        self._agents.append(agent)
        self._save_customs()
        logger.info("Added custom agent %s (%s)", agent.name, agent.global_path)
        return agent

    def remove_custom(self, name: str) -> AgentDescriptor:
        """Remove a custom agent; built-in agents cannot be removed."""
        agent = self.find(name)
        if agent is None or not agent.is_custom:
            raise AgentNotFoundError(name)
        self._agents.remove(agent)
        self._save_customs()
        logger.info("Removed custom agent %s", name)
        return agent

    def _save_customs(self):
        if self._custom_file is not None:
            _write_agent_list(self._custom_file, self.customs)


def read_known_agents(paths: SkillsPaths) -> List[AgentDescriptor]:
    return _read_agent_list(paths.known_agents_file, is_custom=False)


def write_known_agents(paths: SkillsPaths, agents: Sequence[AgentDescriptor]):
    _write_agent_list(paths.known_agents_file, agents)
