"""SKILL.md manifest header parsing.

The header is a leading block delimited by `---` lines holding flat
`key: value` pairs. Only name, description, language and framework are
recognized; nested structures and multi-line values are not supported.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from agent_skills.paths import MANIFEST_NAME

HEADER_DELIMITER = "---"
RECOGNIZED_KEYS = ("name", "description", "language", "framework")


@dataclass
class SkillManifest:
    name: str = ""
    description: str = ""
    language: str = ""
    framework: str = ""


def parse_manifest(content: str) -> SkillManifest:
    """Parse the header block of a SKILL.md document.

    Lines before the first delimiter are ignored, parsing stops at the second
    one. Lines without a colon and unrecognized keys are skipped.
    """
    manifest = SkillManifest()
    in_header = False
    for line in content.splitlines():
        if line.strip() == HEADER_DELIMITER:
            if in_header:
                break
            in_header = True
            continue
        if not in_header or ":" not in line:
            continue

        key, value = line.split(":", 1)
        key = key.strip()
        if key in RECOGNIZED_KEYS:
            setattr(manifest, key, value.strip())
    return manifest


def manifest_path(skill_dir: Path) -> Path:
    return Path(skill_dir) / MANIFEST_NAME


def has_manifest(skill_dir: Path) -> bool:
    return manifest_path(skill_dir).is_file()


def read_manifest(skill_dir: Path) -> Optional[SkillManifest]:
    """Read and parse a skill's manifest; None when missing or unreadable."""
    try:
        content = manifest_path(skill_dir).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return parse_manifest(content)


def render_manifest(name: str, description: str = "") -> str:
    """Blank SKILL.md used when authoring a new local skill."""
    return (
        f"{HEADER_DELIMITER}\n"
        f"name: {name}\n"
        f"description: {description}\n"
        f"{HEADER_DELIMITER}\n"
        f"\n"
        f"# {name}\n"
        f"\n"
        f"{description}\n"
        f"\n"
        f"## Instructions\n"
        f"\n"
        f"Describe when and how an agent should apply this skill.\n"
    )
