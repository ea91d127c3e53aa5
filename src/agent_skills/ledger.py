"""Provenance ledger: where each canonical skill came from and when.

Stored as `.skills-lock` inside the canonical store:

    {
      "version": 3,
      "skills": {
        "<name>": {"source": "owner/repo", "sourceType": "github",
                   "sourceUrl": "...", "skillPath": "skills/<name>/SKILL.md",
                   "installedAt": "...", "updatedAt": "..."}
      }
    }

The file is shared with other tools, so reading tolerates trailing commas and
falls back to an empty ledger rather than failing.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

LEDGER_VERSION = 3
LOCAL_SOURCE = "local"

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def now_rfc3339() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_rfc3339(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; None when empty or malformed. Naive values are UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def github_url(source: str) -> str:
    return f"https://github.com/{source}.git"


@dataclass
class ProvenanceEntry:
    source: str = ""
    source_type: str = ""
    source_url: str = ""
    skill_path: str = ""
    installed_at: str = ""
    updated_at: str = ""

    @property
    def is_local(self) -> bool:
        return self.source == LOCAL_SOURCE or self.source_type == LOCAL_SOURCE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProvenanceEntry":
        return cls(
            source=str(data.get("source") or ""),
            source_type=str(data.get("sourceType") or ""),
            source_url=str(data.get("sourceUrl") or ""),
            skill_path=str(data.get("skillPath") or ""),
            installed_at=str(data.get("installedAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "source": self.source,
            "sourceType": self.source_type,
            "sourceUrl": self.source_url,
            "skillPath": self.skill_path,
            "installedAt": self.installed_at,
            "updatedAt": self.updated_at,
        }


def parse_ledger_text(text: str) -> Dict[str, Any]:
    """Parse ledger JSON, retrying once with trailing commas stripped.

    Raises json.JSONDecodeError (the original error) when both attempts fail.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as original:
        try:
            return json.loads(_TRAILING_COMMA.sub(r"\1", text))
        except json.JSONDecodeError:
            raise original


class Ledger:
    """In-memory view of `.skills-lock`; call save() to persist changes."""

    def __init__(self, path: Path, entries: Optional[Dict[str, ProvenanceEntry]] = None,
                 version: int = LEDGER_VERSION):
        self.path = Path(path)
        self.version = version
        self.entries: Dict[str, ProvenanceEntry] = dict(entries or {})

    @classmethod
    def load(cls, path: Path) -> "Ledger":
        """Load the ledger; a missing or unparsable file yields an empty ledger."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls(path)
        except OSError as e:
            logger.warning("Cannot read ledger %s: %s", path, e)
            return cls(path)

        try:
            data = parse_ledger_text(text)
        except json.JSONDecodeError as e:
            logger.warning("Malformed ledger %s, using an empty one: %s", path, e)
            return cls(path)
        if not isinstance(data, dict):
            logger.warning("Malformed ledger %s, using an empty one", path)
            return cls(path)

        entries = {}
        skills = data.get("skills") or {}
        if isinstance(skills, dict):
            for name, raw in skills.items():
                if isinstance(raw, dict):
                    entries[name] = ProvenanceEntry.from_dict(raw)
        version = data.get("version")
        return cls(path, entries, version if isinstance(version, int) else LEDGER_VERSION)

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": self.version,
            "skills": {name: e.to_dict() for name, e in self.entries.items()},
        }
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def get(self, name: str) -> Optional[ProvenanceEntry]:
        return self.entries.get(name)

    def source_of(self, name: str) -> str:
        entry = self.entries.get(name)
        return entry.source if entry else ""

    def _record(self, name: str, entry: ProvenanceEntry) -> ProvenanceEntry:
        now = now_rfc3339()
        previous = self.entries.get(name)
        entry.installed_at = previous.installed_at if previous and previous.installed_at else now
        entry.updated_at = now
        self.entries[name] = entry
        return entry

    def record_remote(self, name: str, source: str, skill_path: str = "",
                      source_url: str = "") -> ProvenanceEntry:
        """Record (or refresh) a skill fetched from a GitHub repository.

        installedAt survives re-records; only updatedAt moves.
        """
        return self._record(name, ProvenanceEntry(
            source=source,
            source_type="github",
            source_url=source_url or github_url(source),
            skill_path=skill_path or f"skills/{name}/SKILL.md",
        ))

    def record_local(self, name: str) -> ProvenanceEntry:
        """Record a locally authored or locally imported skill."""
        return self._record(name, ProvenanceEntry(
            source=LOCAL_SOURCE,
            source_type=LOCAL_SOURCE,
        ))

    def remove(self, name: str) -> bool:
        return self.entries.pop(name, None) is not None
