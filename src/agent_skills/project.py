"""Project scope: skills inside `<project>/<agent local path>/`.

Global skills are linked into projects, skills fetched straight into a
project are copied. Agents are "enabled" in a project simply by having
their directory exist.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from agent_skills.agents import AgentRegistry
from agent_skills.errors import AgentDirectoryNotEmptyError, SkillNotFoundError, SkillsError
from agent_skills.fetch import GitFetcher, parse_remote_source
from agent_skills.links import (
    classify_origin,
    copy_tree,
    create_link,
    lexists,
    remove_entry,
    same_dir,
)
from agent_skills.paths import SkillsPaths, check_skill_name
from agent_skills.propagate import PropagationReport, propagate_existing_skills
from agent_skills.scanner import ProjectSkillRecord, scan_project
from agent_skills.sync import ProjectSynchronizer, SyncReport, group_by_directory, materialize

logger = logging.getLogger(__name__)


@dataclass
class ProjectAgentInfo:
    name: str
    local_path: str
    is_custom: bool = False
    skill_count: int = 0


@dataclass
class CloneReport:
    added: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass
class DisableResult:
    agent: str
    removed_entries: int = 0
    removed_parent: bool = False


def count_entries(directory: Path) -> int:
    try:
        return sum(1 for name in os.listdir(directory) if not name.startswith("."))
    except OSError:
        return 0


class ProjectSkills:
    def __init__(self, paths: SkillsPaths, registry: AgentRegistry, fetcher=None):
        self.paths = paths
        self.registry = registry
        self.fetcher = fetcher or GitFetcher()
        self.sync = ProjectSynchronizer(paths, registry)

    def _targets(self, project_root: Path, agents: Iterable[str]):
        """Directory groups of the requested agents.

        With no agents given, the agents already enabled in the project are
        used.
        """
        agents = list(agents)
        if agents:
            descriptors = self.registry.resolve_names(agents)
        else:
            descriptors = [self.registry.get(info.name) for info in self.agents(project_root)]
        if not descriptors:
            raise SkillsError(f"no agents enabled in project {project_root}; pass --agent")
        return group_by_directory(descriptors, lambda a: a.local_dir(project_root))

    # =========================================================================
    # Skills
    # =========================================================================

    def skills(self, project_root: Path) -> List[ProjectSkillRecord]:
        return scan_project(self.paths, self.registry, Path(project_root))

    def skill_agents(self, project_root: Path, name: str) -> List[str]:
        return self.sync.linked_agents(Path(project_root), name)

    def set_skill_agents(self, project_root: Path, name: str, agents: Iterable[str]) -> SyncReport:
        return self.sync.set_desired_agents(Path(project_root), name, agents)

    def install(self, project_root: Path, name: str, agents: Iterable[str] = ()) -> SyncReport:
        """Link a canonical skill into the project for the given agents.

        An existing link is replaced; a real directory of the same name is
        left alone and reported as skipped.
        """
        project_root = Path(project_root)
        canonical = self.paths.skill_dir(name)
        if not canonical.is_dir():
            raise SkillNotFoundError(name)

        report = SyncReport(skill=name)
        for directory, group in self._targets(project_root, agents):
            names = [a.name for a in group]
            path = directory / name
            if lexists(path) and not path.is_symlink():
                report.skipped.extend(names)
                continue
            try:
                if path.is_symlink():
                    path.unlink()
                create_link(canonical, path)
            except OSError as e:
                logger.warning("Failed to link %s into %s: %s", name, directory, e)
                report.fail(names, str(e))
                continue
            logger.info("Linked %s -> %s", path, canonical)
            report.added.extend(names)
        return report

    def install_remote(self, project_root: Path, full_name: str,
                       agents: Iterable[str] = ()) -> SyncReport:
        """Fetch `owner/repo@skill` and copy it into the project, bypassing the store."""
        project_root = Path(project_root)
        source = parse_remote_source(full_name)
        targets = self._targets(project_root, agents)

        report = SyncReport(skill=source.skill_name)
        with self.fetcher.fetch(source) as fetched:
            for directory, group in targets:
                names = [a.name for a in group]
                path = directory / source.skill_name
                try:
                    if lexists(path):
                        remove_entry(path)
                    copy_tree(fetched.path, path)
                except OSError as e:
                    logger.warning("Failed to copy %s into %s: %s", source.skill_name, directory, e)
                    report.fail(names, str(e))
                    continue
                logger.info("Copied %s into %s", source.full_name, directory)
                report.added.extend(names)
        return report

    def remove(self, project_root: Path, name: str) -> SyncReport:
        """Remove the skill from every agent directory of the project."""
        project_root = Path(project_root)
        check_skill_name(name)
        report = SyncReport(skill=name)
        found = False
        for directory, group in self.sync.groups(project_root):
            path = directory / name
            if not lexists(path):
                continue
            found = True
            names = [a.name for a in group]
            try:
                remove_entry(path)
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path, e)
                report.fail(names, str(e))
                continue
            report.removed.extend(names)
        if not found:
            raise SkillNotFoundError(name, where=f"project {project_root}")
        return report

    # =========================================================================
    # Agents
    # =========================================================================

    def agents(self, project_root: Path) -> List[ProjectAgentInfo]:
        """Agents whose project directory exists."""
        project_root = Path(project_root)
        result = []
        for agent in self.registry:
            directory = agent.local_dir(project_root)
            if directory.is_dir():
                result.append(ProjectAgentInfo(
                    name=agent.name,
                    local_path=agent.local_path,
                    is_custom=agent.is_custom,
                    skill_count=count_entries(directory),
                ))
        return result

    def agent_skill_count(self, project_root: Path, agent_name: str) -> int:
        agent = self.registry.get(agent_name)
        return count_entries(agent.local_dir(Path(project_root)))

    def enable_agent(self, project_root: Path, agent_name: str) -> PropagationReport:
        """Create the agent's directory and seed it with the project's existing skills."""
        project_root = Path(project_root)
        agent = self.registry.get(agent_name)
        agent.local_dir(project_root).mkdir(parents=True, exist_ok=True)
        return propagate_existing_skills(self.paths, self.registry, project_root, agent)

    def disable_agent(self, project_root: Path, agent_name: str, force: bool = False) -> DisableResult:
        """Delete the agent's project directory.

        A non-empty directory is refused unless `force` is set. An emptied
        dot-prefixed parent (e.g. `.codebuddy` after `.codebuddy/skills`) is
        removed too, never the project root itself.
        """
        project_root = Path(project_root)
        agent = self.registry.get(agent_name)
        directory = agent.local_dir(project_root)
        result = DisableResult(agent=agent.name)
        if not lexists(directory):
            return result
        if not directory.is_dir():
            raise SkillsError(f"path is not a directory: {directory}")

        entries = os.listdir(directory)
        if entries:
            if not force:
                raise AgentDirectoryNotEmptyError(directory, len(entries))
            logger.info("Force-disabling %s, removing %d entries", agent.name, len(entries))
            try:
                for entry in entries:
                    remove_entry(directory / entry)
            except OSError as e:
                raise SkillsError(f"failed to empty {directory}: {e}")
            result.removed_entries = len(entries)
        try:
            directory.rmdir()
        except OSError as e:
            raise SkillsError(f"failed to remove {directory}: {e}")

        parent = directory.parent
        if not same_dir(parent, project_root) and parent.name.startswith("."):
            try:
                if not os.listdir(parent):
                    parent.rmdir()
                    result.removed_parent = True
                    logger.info("Removed empty directory %s", parent)
            except OSError as e:
                logger.debug("Keeping %s: %s", parent, e)
        return result

    def clone(self, source_root: Path, target_root: Path) -> CloneReport:
        """Reproduce one project's skills in another.

        Entries already present in the target are left alone and reported as
        skipped. Entries are keyed by their path relative to the project root.
        """
        source_root = Path(source_root)
        target_root = Path(target_root)
        report = CloneReport()
        for record in self.skills(source_root):
            for directory, _ in self.sync.groups(source_root):
                origin = classify_origin(directory / record.name, self.paths.store_dir)
                if origin is None:
                    continue
                target_dir = target_root / os.path.relpath(directory, source_root)
                target = target_dir / record.name
                key = target.relative_to(target_root).as_posix()
                if lexists(target):
                    report.skipped.append(key)
                    continue
                try:
                    target_dir.mkdir(parents=True, exist_ok=True)
                    materialize(origin, target)
                except OSError as e:
                    logger.warning("Failed to clone %s into %s: %s", record.name, target_dir, e)
                    report.failed[key] = str(e)
                    continue
                report.added.append(key)
        return report