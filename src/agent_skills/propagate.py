"""Cross-agent propagation: seed a newly enabled project agent with the
skills other agents of the same project already have."""

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from agent_skills.agents import AgentDescriptor, AgentRegistry
from agent_skills.links import SkillOrigin, classify_origin, lexists, same_dir
from agent_skills.paths import SkillsPaths
from agent_skills.sync import materialize

logger = logging.getLogger(__name__)


@dataclass
class PropagationReport:
    agent: str
    added: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def collect_project_sources(paths: SkillsPaths, registry: AgentRegistry, project_root: Path,
                            exclude: AgentDescriptor) -> "OrderedDict[str, SkillOrigin]":
    """First-seen origin of every skill in the other agents' project directories."""
    target_dir = exclude.local_dir(project_root)
    sources: "OrderedDict[str, SkillOrigin]" = OrderedDict()
    for agent in registry:
        if agent.name == exclude.name:
            continue
        directory = agent.local_dir(project_root)
        if same_dir(directory, target_dir):
            continue
        try:
            names = sorted(os.listdir(directory))
        except OSError:
            continue
        for name in names:
            if name.startswith(".") or name in sources:
                continue
            origin = classify_origin(directory / name, paths.store_dir)
            if origin is not None:
                sources[name] = origin
    return sources


def propagate_existing_skills(paths: SkillsPaths, registry: AgentRegistry, project_root: Path,
                              agent: AgentDescriptor) -> PropagationReport:
    """Give `agent` every skill the project's other agents already have.

    Names already present in the agent's directory are skipped, never
    overwritten. Global-origin skills are linked, local ones copied.
    """
    project_root = Path(project_root)
    report = PropagationReport(agent=agent.name)
    sources = collect_project_sources(paths, registry, project_root, agent)
    if not sources:
        return report

    target_dir = agent.local_dir(project_root)
    logger.info("Propagating %d skills to %s", len(sources), agent.name)
    for name, origin in sources.items():
        path = target_dir / name
        if lexists(path):
            report.skipped.append(name)
            continue
        try:
            materialize(origin, path)
        except OSError as e:
            logger.warning("Failed to propagate %s to %s: %s", name, agent.name, e)
            report.failed[name] = str(e)
            continue
        report.added.append(name)
    return report
