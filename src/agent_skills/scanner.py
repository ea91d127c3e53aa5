"""Discovery scanner: rebuild the logical skill list from agent directories.

Both scans are pure reads. An entry is a skill when it is a directory
(links to directories count) holding a readable SKILL.md. Records are keyed
by directory name; the first sighting provides the descriptive fields and
later sightings only add their agents. Any per-directory or per-entry
I/O error drops that directory or entry, never the whole scan.
"""

import logging
import os
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from agent_skills.agents import AgentRegistry
from agent_skills.ledger import Ledger
from agent_skills.links import classify_origin, same_dir
from agent_skills.manifest import has_manifest, read_manifest
from agent_skills.paths import SkillsPaths
from agent_skills.sync import group_by_directory

logger = logging.getLogger(__name__)


@dataclass
class AggregatedSkillRecord:
    name: str
    display_name: str
    description: str
    language: str
    framework: str
    path: Path
    agents: List[str] = field(default_factory=list)
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["path"] = str(self.path)
        return data


@dataclass
class ProjectSkillRecord(AggregatedSkillRecord):
    is_global: bool = False


def list_skill_entries(directory: Path) -> List[Path]:
    """Non-hidden directory entries (following links) of an agent directory."""
    try:
        names = sorted(os.listdir(directory))
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", directory, e)
        return []
    entries = []
    for name in names:
        if name.startswith("."):
            continue
        entry = directory / name
        try:
            if not entry.is_dir():
                continue
        except OSError:
            continue
        entries.append(entry)
    return entries


class _Aggregator:
    """Merge per-directory sightings into records keyed by skill name."""

    def __init__(self, record_type=AggregatedSkillRecord, ledger: Optional[Ledger] = None):
        self.record_type = record_type
        self.ledger = ledger
        self.records: "OrderedDict[str, AggregatedSkillRecord]" = OrderedDict()

    def visit(self, directory: Path, agent_names: Sequence[str],
              classify: Optional[Callable[[AggregatedSkillRecord, Path], None]] = None):
        if not directory.is_dir():
            return
        for entry in list_skill_entries(directory):
            name = entry.name
            record = self.records.get(name)
            if record is not None:
                if has_manifest(entry):
                    record.agents.extend(n for n in agent_names if n not in record.agents)
                continue

            manifest = read_manifest(entry)
            if manifest is None:
                logger.debug("Skipping %s: no readable SKILL.md", entry)
                continue

            record = self.record_type(
                name=name,
                display_name=manifest.name or name,
                description=manifest.description,
                language=manifest.language,
                framework=manifest.framework,
                path=entry,
                agents=list(agent_names),
                source=self.ledger.source_of(name) if self.ledger else "",
            )
            if classify is not None:
                classify(record, entry)
            self.records[name] = record

    def results(self) -> List[AggregatedSkillRecord]:
        return list(self.records.values())


def scan_global(paths: SkillsPaths, registry: AgentRegistry,
                ledger: Optional[Ledger] = None) -> List[AggregatedSkillRecord]:
    """Every skill visible in the canonical store or any agent's global directory.

    The canonical store is visited first so its copy supplies the record's
    fields and path. Agents whose global directory is the store itself are
    not consumers and never appear in `agents`.
    """
    if ledger is None:
        ledger = Ledger.load(paths.lock_file)
    aggregator = _Aggregator(AggregatedSkillRecord, ledger)
    aggregator.visit(paths.store_dir, [])

    for directory, group in group_by_directory(registry, lambda a: a.global_dir(paths.home)):
        if same_dir(directory, paths.store_dir):
            continue
        aggregator.visit(directory, [a.name for a in group])
    return aggregator.results()


def scan_project(paths: SkillsPaths, registry: AgentRegistry, project_root: Path,
                 ledger: Optional[Ledger] = None) -> List[ProjectSkillRecord]:
    """Skills inside one project, tagged global- or local-origin."""
    project_root = Path(project_root)
    if ledger is None:
        ledger = Ledger.load(paths.lock_file)

    def classify(record, entry):
        origin = classify_origin(entry, paths.store_dir)
        record.is_global = bool(origin is not None and origin.is_global)

    aggregator = _Aggregator(ProjectSkillRecord, ledger)
    for directory, group in group_by_directory(registry, lambda a: a.local_dir(project_root)):
        aggregator.visit(directory, [a.name for a in group], classify=classify)
    return aggregator.results()
