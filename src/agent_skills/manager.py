"""Wires paths, registry, store, project and health components together."""

from typing import Optional

import httpx

from agent_skills.agents import AgentRegistry
from agent_skills.catalog import AgentCatalog
from agent_skills.fetch import GitFetcher, get_github_token
from agent_skills.health import HealthChecker
from agent_skills.paths import SkillsPaths, load_config
from agent_skills.project import ProjectSkills
from agent_skills.store import SkillStore


class SkillsManager:
    """One process-wide context: every component shares the same registry."""

    def __init__(self, paths: SkillsPaths, registry: Optional[AgentRegistry] = None,
                 fetcher=None, token: Optional[str] = None):
        self.paths = paths
        self.config = load_config(paths)
        self.registry = registry if registry is not None else AgentRegistry.load(paths)
        self.token = get_github_token(token) or self.config.get("github_token")
        if fetcher is None:
            fetcher = GitFetcher(self.token)
        self.fetcher = fetcher
        self.store = SkillStore(paths, self.registry, fetcher, token=self.token)
        self.projects = ProjectSkills(paths, self.registry, fetcher)
        self.health = HealthChecker(paths, self.registry)

    @classmethod
    def from_env(cls, token: Optional[str] = None) -> "SkillsManager":
        return cls(SkillsPaths.from_env(), token=token)

    @property
    def default_agents(self):
        return [a for a in self.config.get("default_agents") or [] if a in self.registry]

    def catalog(self, client: Optional[httpx.Client] = None) -> AgentCatalog:
        return AgentCatalog(self.paths, self.registry, client=client)
