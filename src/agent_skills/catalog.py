"""Remote agent catalog: discover agents added to the upstream skills CLI.

The upstream table is TypeScript source, not JSON, so it is scraped block
by block: every `key: {` opens a block, brace depth closes it, and the
`displayName`, `skillsDir` and `globalSkillsDir` fields are read from it.
"""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from agent_skills.agents import AgentDescriptor, AgentRegistry, read_known_agents, write_known_agents
from agent_skills.errors import FetchError
from agent_skills.paths import SkillsPaths

logger = logging.getLogger(__name__)

REMOTE_AGENTS_URL = "https://raw.githubusercontent.com/vercel-labs/skills/main/src/agents.ts"

_BLOCK_START = re.compile(r"(?:'([^']+)'|(\w[\w-]*))\s*:\s*\{")
_DISPLAY_NAME = re.compile(r"displayName:\s*['\"]([^'\"]+)['\"]")
_SKILLS_DIR = re.compile(r"skillsDir:\s*['\"]([^'\"]+)['\"]")
_GLOBAL_DIR_STR = re.compile(r"globalSkillsDir:\s*['\"]([^'\"]+)['\"]")
_GLOBAL_DIR_JOIN = re.compile(r"globalSkillsDir:\s*join\([^,]+,\s*['\"]([^'\"]+)['\"]\)")


def _parse_block(block: str) -> Optional[AgentDescriptor]:
    display_name = _DISPLAY_NAME.search(block)
    skills_dir = _SKILLS_DIR.search(block)
    if not display_name or not skills_dir:
        return None

    local_path = skills_dir.group(1)
    global_path = ""
    m = _GLOBAL_DIR_STR.search(block)
    if m:
        global_path = m.group(1)
        if global_path.startswith("~/"):
            global_path = global_path[2:]
    else:
        m = _GLOBAL_DIR_JOIN.search(block)
        if m:
            global_path = m.group(1)
            if not global_path.startswith("."):
                global_path = "." + global_path

    return AgentDescriptor(
        name=display_name.group(1),
        global_path=global_path or local_path,
        local_path=local_path,
    )


def parse_agents_from_typescript(content: str) -> List[AgentDescriptor]:
    """Extract agent descriptors from the upstream agents.ts source."""
    agents = []
    block_lines: List[str] = []
    depth = 0
    in_block = False

    for line in content.splitlines():
        trimmed = line.strip()
        if not in_block:
            if not _BLOCK_START.search(trimmed):
                continue
            in_block = True
            block_lines = [trimmed]
            depth = trimmed.count("{") - trimmed.count("}")
        else:
            block_lines.append(trimmed)
            depth += trimmed.count("{") - trimmed.count("}")

        if depth <= 0:
            agent = _parse_block("\n".join(block_lines))
            if agent is not None:
                agents.append(agent)
            in_block = False
            block_lines = []

    return agents


@dataclass
class AgentUpdateInfo:
    has_update: bool
    new_agents: List[AgentDescriptor] = field(default_factory=list)
    last_check_time: int = 0


@dataclass
class AgentUpdateCache:
    last_check_time: int = 0
    dismissed_at: int = 0
    new_agent_names: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentUpdateCache":
        return cls(
            last_check_time=int(data.get("lastCheckTime") or 0),
            dismissed_at=int(data.get("dismissedAt") or 0),
            new_agent_names=list(data.get("newAgentNames") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"lastCheckTime": self.last_check_time}
        if self.dismissed_at:
            data["dismissedAt"] = self.dismissed_at
        if self.new_agent_names:
            data["newAgentNames"] = self.new_agent_names
        return data


class AgentCatalog:
    """Compare the upstream agent table against the local registry."""

    def __init__(self, paths: SkillsPaths, registry: AgentRegistry,
                 client: Optional[httpx.Client] = None, url: str = REMOTE_AGENTS_URL):
        self.paths = paths
        self.registry = registry
        self.client = client
        self.url = url

    def fetch_remote(self) -> List[AgentDescriptor]:
        try:
            if self.client is not None:
                response = self.client.get(self.url, timeout=15, follow_redirects=True)
            else:
                response = httpx.get(self.url, timeout=15, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"cannot fetch agent catalog: {e}")
        return parse_agents_from_typescript(response.text)

    def _new_agents(self, remote: List[AgentDescriptor]) -> List[AgentDescriptor]:
        known = {name.lower() for name in self.registry.names}
        new = []
        for agent in remote:
            if agent.name.lower() in known:
                continue
            known.add(agent.name.lower())
            new.append(agent)
        return new

    def cached(self) -> AgentUpdateCache:
        path = self.paths.agent_update_cache_file
        if not path.exists():
            return AgentUpdateCache()
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.debug("Ignoring unreadable update cache %s: %s", path, e)
            return AgentUpdateCache()
        return AgentUpdateCache.from_dict(data) if isinstance(data, dict) else AgentUpdateCache()

    def _save_cache(self, cache: AgentUpdateCache):
        path = self.paths.agent_update_cache_file
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(cache.to_dict(), f, indent=2)

    def check_updates(self) -> AgentUpdateInfo:
        remote = self.fetch_remote()
        new_agents = self._new_agents(remote)
        cache = AgentUpdateCache(
            last_check_time=int(time.time()),
            new_agent_names=[a.name for a in new_agents],
        )
        self._save_cache(cache)
        logger.info("Agent catalog: %d remote, %d local, %d new",
                    len(remote), len(self.registry), len(new_agents))
        return AgentUpdateInfo(
            has_update=bool(new_agents),
            new_agents=new_agents,
            last_check_time=cache.last_check_time,
        )

    def apply_updates(self) -> List[AgentDescriptor]:
        """Adopt every new upstream agent into agents.json; returns the added agents."""
        new_agents = self._new_agents(self.fetch_remote())
        if new_agents:
            write_known_agents(self.paths, read_known_agents(self.paths) + new_agents)
            for agent in new_agents:
                logger.info("Adopted agent %s (local: %s, global: %s)",
                            agent.name, agent.local_path, agent.global_path)

        cache = self.cached()
        cache.new_agent_names = []
        cache.dismissed_at = 0
        self._save_cache(cache)
        return new_agents

    def dismiss(self):
        cache = self.cached()
        cache.dismissed_at = int(time.time())
        cache.new_agent_names = []
        self._save_cache(cache)
