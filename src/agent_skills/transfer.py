"""Configuration export/import: move a skill setup between machines.

An export lists every skill in the ledger as `source@name` together with the
agents it is linked to, plus the user's custom agents. Files ending in
`.yaml`/`.yml` are written and read as YAML, everything else as JSON.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import yaml

from agent_skills.errors import AgentConflictError, SkillsError
from agent_skills.ledger import LOCAL_SOURCE
from agent_skills.paths import is_safe_name
from agent_skills.store import SkillStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1
YAML_SUFFIXES = (".yaml", ".yml")


@dataclass
class ImportResult:
    installed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


def export_config(store: SkillStore) -> Dict[str, Any]:
    skills = []
    for name, entry in sorted(store.ledger().entries.items()):
        if not store.exists(name):
            continue
        skills.append({
            "fullName": f"{entry.source or LOCAL_SOURCE}@{name}",
            "linkedAgents": store.linked_agents(name),
        })
    return {
        "version": EXPORT_VERSION,
        "exportedAt": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "skills": skills,
        "customAgents": [a.to_dict() for a in store.registry.customs],
    }


def write_export(data: Dict[str, Any], path: Path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        else:
            json.dump(data, f, indent=2)


def read_export(path: Path) -> Dict[str, Any]:
    path = Path(path)
    try:
        with open(path, "r") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except OSError as e:
        raise SkillsError(f"cannot read {path}: {e}")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise SkillsError(f"invalid config format: {e}")
    if not isinstance(data, dict):
        raise SkillsError("invalid config format: expected a mapping")
    return data


def import_config(store: SkillStore, data: Dict[str, Any]) -> ImportResult:
    """Restore custom agents, then links of installed skills, then missing skills.

    Skills already in the store are re-linked and counted as skipped. Missing
    remote skills are installed; missing local skills cannot be restored and
    count as failed.
    """
    for item in data.get("customAgents") or []:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        if store.registry.find(item["name"]) is not None:
            continue
        try:
            store.registry.add_custom(item["name"], item.get("globalPath"), item.get("localPath"))
        except AgentConflictError as e:
            logger.warning("Skipping custom agent %s: %s", item["name"], e)

    result = ImportResult()
    for item in data.get("skills") or []:
        if not isinstance(item, dict):
            continue
        full_name = str(item.get("fullName") or "")
        source, _, name = full_name.rpartition("@")
        if not source or not is_safe_name(name):
            result.failed[full_name or "?"] = "invalid skill name format"
            continue
        # agents unknown on this machine are dropped
        agents = [a for a in (item.get("linkedAgents") or []) if a in store.registry]

        if store.exists(name):
            if agents:
                store.set_agents(name, agents)
            result.skipped.append(name)
            continue

        if source == LOCAL_SOURCE:
            result.failed[name] = "local skill is not installed"
            continue
        try:
            store.install_remote(full_name, agents)
        except SkillsError as e:
            logger.warning("Failed to import %s: %s", full_name, e)
            result.failed[name] = str(e)
            continue
        result.installed.append(name)
    return result
