"""Remote skill retrieval: shallow git clones of `owner/repo` repositories.

Skill sources are written `owner/repo@skill-name`. The skill name reported
by a registry does not always match the directory inside the repository
(e.g. "vercel-react-best-practices" vs "react-best-practices"), so lookup
falls back to suffix matching.
"""

import os
import re
import subprocess
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

from agent_skills.errors import FetchError, InvalidSourceError
from agent_skills.ledger import github_url
from agent_skills.manifest import has_manifest
from agent_skills.paths import is_safe_name

_OWNER_REPO = re.compile(r"^[\w.-]+/[\w.-]+$")
_SKIPPED_DIRS = {".git", ".github"}

GITHUB_API_URL = "https://api.github.com"


# =============================================================================
# GitHub Helpers
# =============================================================================

def get_github_token(cli_token: Optional[str] = None) -> Optional[str]:
    """Return GitHub token from CLI arg, GH_TOKEN, or GITHUB_TOKEN env var."""
    token = (cli_token or os.getenv("GH_TOKEN") or os.getenv("GITHUB_TOKEN") or "").strip()
    return token if token else None


def get_authenticated_git_url(url: str, token: Optional[str] = None) -> str:
    """Embed a token into a GitHub HTTPS URL for git clone, when one is available."""
    token = get_github_token(token)
    if not token:
        return url
    if url.startswith("https://github.com/"):
        return url.replace("https://github.com/", f"https://{token}@github.com/")
    return url


def github_api_headers(token: Optional[str] = None) -> Dict[str, str]:
    """Headers for GitHub REST calls, authenticated when a token is available."""
    headers = {"Accept": "application/vnd.github.v3+json"}
    token = get_github_token(token)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


# =============================================================================
# Sources
# =============================================================================

@dataclass(frozen=True)
class RemoteSource:
    owner_repo: str
    skill_name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner_repo}@{self.skill_name}"

    @property
    def url(self) -> str:
        return github_url(self.owner_repo)


def parse_remote_source(full_name: str) -> RemoteSource:
    """Parse 'owner/repo@skill-name'."""
    parts = (full_name or "").strip().split("@")
    if len(parts) != 2 or not is_safe_name(parts[1]) or not _OWNER_REPO.match(parts[0]):
        raise InvalidSourceError(f"invalid skill source (expected owner/repo@skill): {full_name}")
    return RemoteSource(owner_repo=parts[0], skill_name=parts[1])


def is_remote_source(value: str) -> bool:
    try:
        parse_remote_source(value)
    except InvalidSourceError:
        return False
    return True


@dataclass(frozen=True)
class FetchedSkill:
    path: Path          # skill directory inside the checkout
    path_in_repo: str   # e.g. "skills/react-best-practices/SKILL.md"


# =============================================================================
# Repository lookup
# =============================================================================

def _suffix_match(a: str, b: str) -> bool:
    return a.endswith(b) or b.endswith(a)


def _visible_subdirs(directory: Path):
    try:
        return sorted(
            (p for p in directory.iterdir() if p.is_dir() and not p.name.startswith(".")),
            key=lambda p: p.name,
        )
    except OSError:
        return []


def find_skill_in_repo(repo_dir: Path, skill_name: str) -> Optional[Path]:
    """Locate a skill directory inside a checked-out repository.

    Lookup order:
    1. <repo>/<name>/ with a SKILL.md
    2. <repo>/skills/<name>/
    3. the repository root, when it has a SKILL.md
    4. suffix match among <repo>/skills/*
    5. recursive search: exact name first, else first suffix match with a SKILL.md
    6. the only visible subdirectory of the repository
    """
    repo_dir = Path(repo_dir)

    candidate = repo_dir / skill_name
    if candidate.is_dir() and has_manifest(candidate):
        return candidate

    candidate = repo_dir / "skills" / skill_name
    if candidate.is_dir():
        return candidate

    if has_manifest(repo_dir):
        return repo_dir

    for entry in _visible_subdirs(repo_dir / "skills"):
        if _suffix_match(skill_name, entry.name):
            return entry

    suffix_found = None
    for root, dirs, _ in os.walk(repo_dir):
        dirs[:] = sorted(d for d in dirs if d not in _SKIPPED_DIRS)
        for d in dirs:
            path = Path(root) / d
            if d == skill_name:
                return path
            if suffix_found is None and _suffix_match(skill_name, d) and has_manifest(path):
                suffix_found = path
    if suffix_found is not None:
        return suffix_found

    subdirs = _visible_subdirs(repo_dir)
    if len(subdirs) == 1:
        return subdirs[0]

    return None


# =============================================================================
# Fetcher
# =============================================================================

class GitFetcher:
    """Fetch skill content by cloning the source repository into a temp dir."""

    def __init__(self, token: Optional[str] = None):
        self.token = token

    def clone(self, url: str, target: Path):
        clone_url = get_authenticated_git_url(url, self.token)
        try:
            subprocess.run(
                ["git", "clone", "--depth", "1", clone_url, str(target)],
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise FetchError("git is not installed")
        except subprocess.CalledProcessError as e:
            raise FetchError(f"failed to clone {url}: {(e.stderr or '').strip()[:200]}")

    @contextmanager
    def fetch(self, source: RemoteSource) -> Iterator[FetchedSkill]:
        """Yield the fetched skill; the checkout is removed on exit."""
        with tempfile.TemporaryDirectory(prefix="agent-skills-") as tmp:
            repo_dir = Path(tmp) / "repo"
            self.clone(source.url, repo_dir)
            skill_dir = find_skill_in_repo(repo_dir, source.skill_name)
            if skill_dir is None:
                raise FetchError(f"skill not found in repository {source.owner_repo}: {source.skill_name}")
            relative = skill_dir.relative_to(repo_dir).as_posix()
            path_in_repo = "SKILL.md" if relative == "." else f"{relative}/SKILL.md"
            yield FetchedSkill(path=skill_dir, path_in_repo=path_in_repo)
