"""Shared test fixtures for agent-skills tests.

Every test runs against a temporary home directory and a small explicit
agent registry; nothing touches the real home or the network.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from agent_skills.agents import AgentDescriptor, AgentRegistry
from agent_skills.errors import FetchError
from agent_skills.fetch import FetchedSkill, find_skill_in_repo
from agent_skills.paths import SkillsPaths
from agent_skills.project import ProjectSkills
from agent_skills.store import SkillStore

SKILL = "react-best-practices"

TEST_AGENTS = (
    AgentDescriptor("Cursor", ".cursor/skills", ".cursor/skills"),
    AgentDescriptor("Claude Code", ".claude/skills", ".claude/skills"),
    AgentDescriptor("Codex", ".codex/skills", ".codex/skills"),
    # Amp and Replit share one global directory
    AgentDescriptor("Amp", ".config/agents/skills", ".amp/skills"),
    AgentDescriptor("Replit", ".config/agents/skills", ".replit/skills"),
    # global directory is the canonical store itself
    AgentDescriptor("Universal", ".agents/skills", ".universal/skills"),
)


def skill_md(name: str = "", description: str = "", **extra: str) -> str:
    lines = ["---"]
    if name:
        lines.append(f"name: {name}")
    if description:
        lines.append(f"description: {description}")
    for key, value in extra.items():
        lines.append(f"{key}: {value}")
    lines += ["---", "", f"# {name or 'Skill'}", ""]
    return "\n".join(lines)


class FakeFetcher:
    """Serves skills from local directories standing in for GitHub repos."""

    def __init__(self, repos: Optional[Dict[str, Path]] = None):
        self.repos: Dict[str, Path] = dict(repos or {})
        self.calls: List[str] = []

    @contextmanager
    def fetch(self, source):
        self.calls.append(source.full_name)
        repo = self.repos.get(source.owner_repo)
        if repo is None:
            raise FetchError(f"failed to clone {source.url}")
        skill_dir = find_skill_in_repo(repo, source.skill_name)
        if skill_dir is None:
            raise FetchError(f"skill not found in repository {source.owner_repo}: {source.skill_name}")
        relative = skill_dir.relative_to(repo).as_posix()
        yield FetchedSkill(path=skill_dir, path_in_repo=f"{relative}/SKILL.md")


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def paths(home: Path) -> SkillsPaths:
    return SkillsPaths(home)


@pytest.fixture
def registry() -> AgentRegistry:
    return AgentRegistry(builtins=TEST_AGENTS)


@pytest.fixture
def make_skill():
    """Factory writing a skill directory with a SKILL.md.

    Usage:
        skill_dir = make_skill(some_dir, "my-skill", description="Does things")
    """

    def _make(parent: Path, name: str, description: str = "", files: Optional[Dict[str, str]] = None,
              **extra: str) -> Path:
        skill_dir = parent / name
        skill_dir.mkdir(parents=True, exist_ok=True)
        (skill_dir / "SKILL.md").write_text(skill_md(name, description, **extra))
        for rel, content in (files or {}).items():
            target = skill_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return skill_dir

    return _make


@pytest.fixture
def canonical(paths: SkillsPaths, make_skill) -> Path:
    """The canonical copy of react-best-practices."""
    return make_skill(paths.store_dir, SKILL, description="React performance rules", language="typescript")


@pytest.fixture
def remote_repo(tmp_path: Path, make_skill) -> Path:
    """A checked-out 'vercel-labs/agent-skills' repository."""
    repo = tmp_path / "repos" / "agent-skills"
    make_skill(repo / "skills", SKILL, description="React performance rules",
               files={"references/rules.md": "# Rules\n"})
    make_skill(repo / "skills", "web-design-guidelines", description="Design review")
    return repo


@pytest.fixture
def fetcher(remote_repo: Path) -> FakeFetcher:
    return FakeFetcher({"vercel-labs/agent-skills": remote_repo})


@pytest.fixture
def store(paths: SkillsPaths, registry: AgentRegistry, fetcher: FakeFetcher) -> SkillStore:
    return SkillStore(paths, registry, fetcher)


@pytest.fixture
def projects(paths: SkillsPaths, registry: AgentRegistry, fetcher: FakeFetcher) -> ProjectSkills:
    return ProjectSkills(paths, registry, fetcher)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root
