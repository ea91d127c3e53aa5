"""Fan-out synchronizer: converge a skill's consumer entries to a desired agent set.

Global scope links every agent directory back to the canonical store.
Project scope links when the project's copy is itself a link into the
store, and copies otherwise.

Agents that resolve to the same directory are converged together: the
entry exists if any agent of the group is desired. Convergence is a
read-then-write loop without locking, so callers must not run it
concurrently for the same skill name.
"""

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Tuple

from agent_skills.agents import AgentDescriptor, AgentRegistry
from agent_skills.errors import SkillNotFoundError
from agent_skills.links import (
    SkillOrigin,
    classify_origin,
    copy_tree,
    create_link,
    lexists,
    link_target,
    remove_entry,
    same_dir,
)
from agent_skills.paths import SkillsPaths, check_skill_name

logger = logging.getLogger(__name__)

AgentGroup = Tuple[Path, List[AgentDescriptor]]


@dataclass
class SyncReport:
    """Per-agent outcome of one convergence call.

    Failures are reported here and never raised: successful agents are
    kept even when others fail.
    """

    skill: str
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)

    def fail(self, agents: Iterable[str], reason: str):
        for name in agents:
            self.failed[name] = reason


def group_by_directory(
    agents: Iterable[AgentDescriptor],
    directory_of: Callable[[AgentDescriptor], Path],
) -> List[AgentGroup]:
    """Group agents sharing one directory, keeping registry order."""
    groups: "OrderedDict[str, AgentGroup]" = OrderedDict()
    for agent in agents:
        directory = directory_of(agent)
        key = os.path.normpath(os.fspath(directory))
        if key not in groups:
            groups[key] = (directory, [])
        groups[key][1].append(agent)
    return list(groups.values())


# Link states at <agent dir>/<skill>
ABSENT = "absent"
VALID = "valid"      # symlink resolving to the expected target
STALE = "stale"      # symlink pointing elsewhere, or dangling
FOREIGN = "foreign"  # real directory or file, not under our control


def link_state(path: Path, expected: Path) -> str:
    if path.is_symlink():
        try:
            target = link_target(path)
        except OSError:
            return STALE
        if same_dir(target, expected) and target.exists():
            return VALID
        return STALE
    if lexists(path):
        return FOREIGN
    return ABSENT


class GlobalSynchronizer:
    """Converges `<home>/<agent global path>/<skill>` symlinks."""

    def __init__(self, paths: SkillsPaths, registry: AgentRegistry):
        self.paths = paths
        self.registry = registry

    def groups(self) -> List[AgentGroup]:
        """Agent directories that can hold links, excluding the store itself."""
        groups = group_by_directory(self.registry, lambda a: a.global_dir(self.paths.home))
        return [g for g in groups if not same_dir(g[0], self.paths.store_dir)]

    def _canonical(self, skill_name: str) -> Path:
        canonical = self.paths.skill_dir(skill_name)
        if not canonical.is_dir():
            raise SkillNotFoundError(skill_name)
        return canonical

    def linked_agents(self, skill_name: str) -> List[str]:
        """Agents whose link currently resolves to the canonical skill."""
        canonical = self._canonical(skill_name)
        linked = []
        for directory, group in self.groups():
            if link_state(directory / skill_name, canonical) == VALID:
                linked.extend(a.name for a in group)
        return linked

    def set_desired_agents(self, skill_name: str, desired: Iterable[str]) -> SyncReport:
        """Create or remove links so exactly the desired agents see the skill.

        Idempotent: a second call with the same set reports no changes. A real
        directory at a link path is left untouched, whether enabling or
        disabling.
        """
        canonical = self._canonical(skill_name)
        desired = set(desired)
        self.registry.resolve_names(desired)

        report = SyncReport(skill=skill_name)
        for directory, group in self.groups():
            wanted = [a.name for a in group if a.name in desired]
            path = directory / skill_name
            state = link_state(path, canonical)

            if wanted:
                if state == VALID:
                    continue
                if state == FOREIGN:
                    if path.is_dir():
                        logger.debug("Keeping user directory %s", path)
                        report.skipped.extend(wanted)
                    else:
                        report.fail(wanted, f"path is occupied by a file: {path}")
                    continue
                try:
                    if state == STALE:
                        path.unlink()
                    create_link(canonical, path)
                except OSError as e:
                    logger.warning("Failed to link %s for %s: %s", skill_name, ", ".join(wanted), e)
                    report.fail(wanted, str(e))
                    continue
                logger.info("Linked %s -> %s", path, canonical)
                report.added.extend(wanted)

            elif state in (VALID, STALE):
                names = [a.name for a in group]
                try:
                    path.unlink()
                except OSError as e:
                    logger.warning("Failed to unlink %s: %s", path, e)
                    report.fail(names, str(e))
                    continue
                logger.info("Unlinked %s", path)
                report.removed.extend(names)

        return report

    def add_agents(self, skill_name: str, agents: Iterable[str]) -> SyncReport:
        """Additive variant: keep current links and add the given agents."""
        current = set(self.linked_agents(skill_name))
        return self.set_desired_agents(skill_name, current | set(agents))

    def unlink_all(self, skill_name: str) -> SyncReport:
        return self.set_desired_agents(skill_name, set())


class ProjectSynchronizer:
    """Converges `<project>/<agent local path>/<skill>` links and copies."""

    def __init__(self, paths: SkillsPaths, registry: AgentRegistry):
        self.paths = paths
        self.registry = registry

    def groups(self, project_root: Path) -> List[AgentGroup]:
        return group_by_directory(self.registry, lambda a: a.local_dir(project_root))

    def locate_source(self, project_root: Path, skill_name: str) -> SkillOrigin:
        """Origin of the first copy or link of the skill found in the project."""
        check_skill_name(skill_name)
        for directory, _ in self.groups(project_root):
            origin = classify_origin(directory / skill_name, self.paths.store_dir)
            if origin is not None:
                return origin
        raise SkillNotFoundError(skill_name, where=f"project {project_root}")

    def linked_agents(self, project_root: Path, skill_name: str) -> List[str]:
        check_skill_name(skill_name)
        linked = []
        for directory, group in self.groups(project_root):
            if (directory / skill_name).is_dir():
                linked.extend(a.name for a in group)
        return linked

    def set_desired_agents(self, project_root: Path, skill_name: str,
                           desired: Iterable[str]) -> SyncReport:
        """Converge the project's entries for one skill to the desired agents.

        The source is located once and used as the template for every added
        agent. Additions run before removals so the source is never removed
        while it is still needed.
        """
        project_root = Path(project_root)
        desired = set(desired)
        self.registry.resolve_names(desired)
        origin = self.locate_source(project_root, skill_name)

        report = SyncReport(skill=skill_name)
        groups = self.groups(project_root)

        for directory, group in groups:
            wanted = [a.name for a in group if a.name in desired]
            path = directory / skill_name
            if not wanted or path.is_dir():
                continue
            try:
                if lexists(path):
                    # dangling link or stray file in the way
                    remove_entry(path)
                materialize(origin, path)
            except OSError as e:
                logger.warning("Failed to add %s for %s: %s", skill_name, ", ".join(wanted), e)
                report.fail(wanted, str(e))
                continue
            report.added.extend(wanted)

        for directory, group in groups:
            if any(a.name in desired for a in group):
                continue
            path = directory / skill_name
            if not lexists(path):
                continue
            names = [a.name for a in group]
            try:
                remove_entry(path)
            except OSError as e:
                logger.warning("Failed to remove %s: %s", path, e)
                report.fail(names, str(e))
                continue
            logger.info("Removed %s", path)
            report.removed.extend(names)

        return report


def materialize(origin: SkillOrigin, path: Path):
    """Project one skill entry: link to the store, or copy local content."""
    if origin.is_global:
        create_link(origin.path, path)
        logger.info("Linked %s -> %s", path, origin.path)
    else:
        copy_tree(origin.path, path)
        logger.info("Copied %s -> %s", origin.path, path)
