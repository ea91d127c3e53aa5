"""Health checker: find broken links, orphan skills and stray files.

Drift is only ever detected here, never by write paths. Repair removes
broken links and nothing else; orphans and unknown files need a human
decision.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Set

from agent_skills.agents import AgentRegistry
from agent_skills.links import link_target, same_dir
from agent_skills.paths import SkillsPaths
from agent_skills.sync import group_by_directory

logger = logging.getLogger(__name__)


@dataclass
class BrokenLink:
    agent_name: str
    skill_name: str
    link_path: str
    target: str
    reason: str


@dataclass
class UnknownFile:
    agent_name: str
    file_name: str
    file_path: str


@dataclass
class HealthReport:
    broken_links: List[BrokenLink] = field(default_factory=list)
    orphan_skills: List[str] = field(default_factory=list)
    unknown_files: List[UnknownFile] = field(default_factory=list)
    total_links: int = 0
    healthy_links: int = 0

    @property
    def healthy(self) -> bool:
        return not self.broken_links

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class HealthChecker:
    def __init__(self, paths: SkillsPaths, registry: AgentRegistry):
        self.paths = paths
        self.registry = registry

    def check(self) -> HealthReport:
        """Classify every entry of every agent's global directory.

        Directories shared by several agents are walked once and reported
        under the first agent that uses them.
        """
        report = HealthReport()
        consumers: Set[str] = set()

        groups = group_by_directory(self.registry, lambda a: a.global_dir(self.paths.home))
        for directory, group in groups:
            if same_dir(directory, self.paths.store_dir):
                continue
            agent_name = group[0].name
            try:
                names = sorted(os.listdir(directory))
            except OSError:
                continue

            for name in names:
                if name.startswith("."):
                    continue
                path = directory / name
                try:
                    is_link = path.is_symlink()
                    is_dir = path.is_dir()
                except OSError:
                    continue

                if is_link:
                    report.total_links += 1
                    self._check_link(report, consumers, agent_name, name, path)
                elif not is_dir:
                    report.unknown_files.append(UnknownFile(
                        agent_name=agent_name,
                        file_name=name,
                        file_path=str(path),
                    ))

        store = self.paths.store_dir
        try:
            store_names = sorted(os.listdir(store))
        except OSError:
            store_names = []
        for name in store_names:
            if name.startswith(".") or not (store / name).is_dir():
                continue
            if name not in consumers:
                report.orphan_skills.append(name)

        return report

    @staticmethod
    def _check_link(report: HealthReport, consumers: Set[str], agent_name: str,
                    name: str, path: Path):
        try:
            target = link_target(path)
        except OSError as e:
            report.broken_links.append(BrokenLink(
                agent_name=agent_name,
                skill_name=name,
                link_path=str(path),
                target="",
                reason=f"cannot read link: {e}",
            ))
            return

        if not target.exists():
            report.broken_links.append(BrokenLink(
                agent_name=agent_name,
                skill_name=name,
                link_path=str(path),
                target=str(target),
                reason="target does not exist",
            ))
            return

        report.healthy_links += 1
        consumers.add(name)

    def repair(self) -> int:
        """Remove every link currently classified as broken; returns the count."""
        repaired = 0
        for broken in self.check().broken_links:
            try:
                os.unlink(broken.link_path)
            except OSError as e:
                logger.warning("Could not remove broken link %s: %s", broken.link_path, e)
                continue
            logger.info("Removed broken link %s", broken.link_path)
            repaired += 1
        return repaired
