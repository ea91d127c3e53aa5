"""Canonical store: install, author, update and delete skills in ~/.agents/skills.

Every write keeps the store, the provenance ledger and the global agent
links consistent: content is replaced in place (so existing links stay
valid), the ledger is re-recorded, and links are converged through the
GlobalSynchronizer.
"""

import logging
import os
import posixpath
import re
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import httpx

from agent_skills.agents import AgentRegistry
from agent_skills.errors import SkillExistsError, SkillNotFoundError, SkillsError
from agent_skills.fetch import GITHUB_API_URL, GitFetcher, RemoteSource, github_api_headers, parse_remote_source
from agent_skills.ledger import Ledger, ProvenanceEntry, parse_rfc3339
from agent_skills.links import copy_tree
from agent_skills.manifest import has_manifest, manifest_path, parse_manifest, render_manifest
from agent_skills.paths import MANIFEST_NAME, SkillsPaths, is_safe_name
from agent_skills.scanner import AggregatedSkillRecord, scan_global
from agent_skills.sync import GlobalSynchronizer, SyncReport

logger = logging.getLogger(__name__)

_VALID_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_skill_name(name: str) -> str:
    name = (name or "").strip()
    if not _VALID_NAME.match(name):
        raise SkillsError(f"invalid skill name: {name!r}")
    return name


@dataclass
class SkillDetail:
    name: str
    description: str
    path: Path
    language: str
    framework: str
    content: str
    source: str = ""
    installed_at: str = ""
    updated_at: str = ""
    agents: List[str] = field(default_factory=list)


@dataclass
class SkillFile:
    name: str  # path relative to the skill directory
    is_dir: bool
    size: int
    content: str = ""


@dataclass
class InstallResult:
    name: str
    source: str
    links: SyncReport


@dataclass
class SkillUpdateInfo:
    name: str
    source: str
    has_update: bool = False
    latest_sha: str = ""
    latest_date: str = ""
    error: str = ""


@dataclass
class BatchResult:
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


class SkillStore:
    def __init__(self, paths: SkillsPaths, registry: AgentRegistry, fetcher=None,
                 token: Optional[str] = None):
        self.paths = paths
        self.registry = registry
        self.fetcher = fetcher or GitFetcher(token)
        self.token = token
        self.links = GlobalSynchronizer(paths, registry)

    # =========================================================================
    # Queries
    # =========================================================================

    def ledger(self) -> Ledger:
        return Ledger.load(self.paths.lock_file)

    def exists(self, name: str) -> bool:
        return is_safe_name(name) and self.paths.skill_dir(name).is_dir()

    def _require(self, name: str) -> Path:
        skill_dir = self.paths.skill_dir(name)
        if not skill_dir.is_dir():
            raise SkillNotFoundError(name)
        return skill_dir

    def list(self) -> List[AggregatedSkillRecord]:
        return scan_global(self.paths, self.registry, self.ledger())

    def detail(self, name: str) -> SkillDetail:
        skill_dir = self._require(name)
        try:
            content = manifest_path(skill_dir).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise SkillsError(f"failed to read SKILL.md of {name}: {e}")

        manifest = parse_manifest(content)
        entry = self.ledger().get(name)
        return SkillDetail(
            name=name,
            description=manifest.description,
            path=skill_dir,
            language=manifest.language,
            framework=manifest.framework,
            content=content,
            source=entry.source if entry else "",
            installed_at=entry.installed_at if entry else "",
            updated_at=entry.updated_at if entry else "",
            agents=self.links.linked_agents(name),
        )

    def files(self, name: str) -> List[SkillFile]:
        """Every file and directory inside the skill, with text content of files."""
        skill_dir = self._require(name)
        result = []
        for root, dirs, files in os.walk(skill_dir):
            dirs.sort()
            root_path = Path(root)
            for d in dirs:
                rel = (root_path / d).relative_to(skill_dir).as_posix()
                result.append(SkillFile(name=rel, is_dir=True, size=0))
            for f in sorted(files):
                path = root_path / f
                try:
                    size = path.stat().st_size
                    content = path.read_text(encoding="utf-8", errors="replace")
                except OSError:
                    size, content = 0, ""
                result.append(SkillFile(
                    name=path.relative_to(skill_dir).as_posix(),
                    is_dir=False,
                    size=size,
                    content=content,
                ))
        return result

    def linked_agents(self, name: str) -> List[str]:
        return self.links.linked_agents(name)

    # =========================================================================
    # Links
    # =========================================================================

    def set_agents(self, name: str, agents: Iterable[str]) -> SyncReport:
        return self.links.set_desired_agents(name, agents)

    def add_agents(self, name: str, agents: Iterable[str]) -> SyncReport:
        return self.links.add_agents(name, agents)

    def batch_set_agents(self, names: Iterable[str], agents: Iterable[str]) -> BatchResult:
        agents = list(agents)
        result = BatchResult()
        for name in names:
            try:
                report = self.set_agents(name, agents)
            except SkillsError as e:
                result.failed[name] = str(e)
                continue
            if report.ok:
                result.succeeded.append(name)
            else:
                result.failed[name] = "; ".join(f"{a}: {r}" for a, r in report.failed.items())
        return result

    # =========================================================================
    # Writes
    # =========================================================================

    def _replace_content(self, name: str, source: Path):
        """Copy `source` over the canonical directory, keeping its path stable."""
        store = self.paths.store_dir
        store.mkdir(parents=True, exist_ok=True)
        canonical = self.paths.skill_dir(name)

        staging = Path(tempfile.mkdtemp(prefix=f".{name}.", dir=store))
        try:
            staged = staging / name
            copy_tree(source, staged)
            if canonical.is_symlink() or canonical.is_file():
                canonical.unlink()
            elif canonical.is_dir():
                shutil.rmtree(canonical)
            os.replace(staged, canonical)
        finally:
            shutil.rmtree(staging, ignore_errors=True)
        logger.info("Wrote %s", canonical)

    def install_remote(self, full_name: str, agents: Iterable[str] = ()) -> InstallResult:
        """Install `owner/repo@skill` into the store and link it to `agents`.

        An existing skill of the same name is replaced. Linking is additive:
        agents already linked stay linked.
        """
        source = parse_remote_source(full_name)
        agents = list(agents)
        self.registry.resolve_names(agents)
        name = validate_skill_name(source.skill_name)

        with self.fetcher.fetch(source) as fetched:
            self._replace_content(name, fetched.path)
            path_in_repo = fetched.path_in_repo

        ledger = self.ledger()
        ledger.record_remote(name, source.owner_repo, skill_path=path_in_repo, source_url=source.url)
        ledger.save()
        return InstallResult(name=name, source=source.owner_repo, links=self.add_agents(name, agents))

    def install_local(self, path: Path, name: Optional[str] = None,
                      agents: Iterable[str] = ()) -> InstallResult:
        """Copy a local skill directory (or its SKILL.md) into the store."""
        path = Path(path).expanduser()
        if path.is_file() and path.name == MANIFEST_NAME:
            path = path.parent
        if not path.is_dir() or not has_manifest(path):
            raise SkillsError(f"not a skill directory (no SKILL.md): {path}")
        agents = list(agents)
        self.registry.resolve_names(agents)
        name = validate_skill_name(name or path.resolve().name)

        self._replace_content(name, path)
        ledger = self.ledger()
        ledger.record_local(name)
        ledger.save()
        return InstallResult(name=name, source=ledger.source_of(name), links=self.add_agents(name, agents))

    def create(self, name: str, description: str = "", agents: Iterable[str] = ()) -> InstallResult:
        """Author a new local skill from the blank template."""
        name = validate_skill_name(name)
        agents = list(agents)
        self.registry.resolve_names(agents)
        skill_dir = self.paths.skill_dir(name)
        if os.path.lexists(skill_dir):
            raise SkillExistsError(name)

        skill_dir.mkdir(parents=True)
        try:
            manifest_path(skill_dir).write_text(render_manifest(name, description), encoding="utf-8")
        except OSError as e:
            shutil.rmtree(skill_dir, ignore_errors=True)
            raise SkillsError(f"failed to write SKILL.md: {e}")

        ledger = self.ledger()
        ledger.record_local(name)
        ledger.save()
        logger.info("Created skill %s", name)
        return InstallResult(name=name, source=ledger.source_of(name), links=self.add_agents(name, agents))

    def save_content(self, name: str, content: str):
        skill_dir = self._require(name)
        if not has_manifest(skill_dir):
            raise SkillNotFoundError(name)
        manifest_path(skill_dir).write_text(content, encoding="utf-8")

    def update(self, name: str) -> str:
        """Re-fetch a remote skill from its recorded source; returns the source."""
        self._require(name)
        ledger = self.ledger()
        entry = ledger.get(name)
        if entry is None:
            raise SkillNotFoundError(name, where="lock file")
        if entry.is_local or not entry.source:
            raise SkillsError(f"skill {name} is local and has no remote source")

        source = RemoteSource(owner_repo=entry.source, skill_name=name)
        with self.fetcher.fetch(source) as fetched:
            self._replace_content(name, fetched.path)
            path_in_repo = fetched.path_in_repo

        ledger.record_remote(name, entry.source, skill_path=path_in_repo,
                             source_url=entry.source_url or source.url)
        ledger.save()
        logger.info("Updated %s from %s", name, entry.source)
        return entry.source

    def update_all(self) -> BatchResult:
        """Update every installed skill with a remote source."""
        result = BatchResult()
        for name, entry in sorted(self.ledger().entries.items()):
            if entry.is_local or not entry.source or not self.exists(name):
                continue
            try:
                self.update(name)
            except SkillsError as e:
                logger.warning("Failed to update %s: %s", name, e)
                result.failed[name] = str(e)
                continue
            result.succeeded.append(name)
        return result

    # =========================================================================
    # Update checks
    # =========================================================================

    def _get_commits(self, client: Optional[httpx.Client], owner_repo: str,
                     path: str = "") -> List[Dict[str, Any]]:
        url = f"{GITHUB_API_URL}/repos/{owner_repo}/commits"
        params = {"per_page": "1"}
        if path:
            params["path"] = path
        headers = github_api_headers(self.token)
        if client is not None:
            response = client.get(url, params=params, headers=headers, timeout=10, follow_redirects=True)
        else:
            response = httpx.get(url, params=params, headers=headers, timeout=10, follow_redirects=True)
        response.raise_for_status()
        commits = response.json()
        return commits if isinstance(commits, list) else []

    def _check_one(self, client: Optional[httpx.Client], name: str,
                   entry: ProvenanceEntry) -> SkillUpdateInfo:
        info = SkillUpdateInfo(name=name, source=entry.source)
        # the directory holding SKILL.md; empty when the skill is the repository root
        skill_path = posixpath.dirname(entry.skill_path) if entry.skill_path else f"skills/{name}"
        try:
            commits = self._get_commits(client, entry.source, skill_path) if skill_path else []
            if not commits:
                commits = self._get_commits(client, entry.source)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Cannot check %s for updates: %s", name, e)
            info.error = str(e)
            return info
        if not commits:
            info.error = "no commits found"
            return info

        latest = commits[0]
        info.latest_sha = str(latest.get("sha") or "")
        info.latest_date = str(((latest.get("commit") or {}).get("committer") or {}).get("date") or "")
        local_time = parse_rfc3339(entry.updated_at)
        remote_time = parse_rfc3339(info.latest_date)
        if local_time is not None and remote_time is not None:
            info.has_update = remote_time > local_time
        return info

    def check_updates(self, names: Optional[Iterable[str]] = None,
                      client: Optional[httpx.Client] = None) -> List[SkillUpdateInfo]:
        """Compare each remote skill's updatedAt against the latest upstream commit.

        Local skills and ledger entries without a canonical directory are
        skipped. A failed lookup is reported in the entry's `error` and never
        marks the skill as updatable.
        """
        ledger = self.ledger()
        if names is None:
            names = sorted(ledger.entries)
        results = []
        for name in names:
            entry = ledger.get(name)
            if entry is None:
                if not self.exists(name):
                    raise SkillNotFoundError(name)
                raise SkillNotFoundError(name, where="lock file")
            if entry.is_local or not entry.source or not self.exists(name):
                continue
            results.append(self._check_one(client, name, entry))
        return results

    def delete(self, name: str) -> SyncReport:
        """Remove every consumer link, the canonical directory and the ledger entry."""
        skill_dir = self._require(name)
        report = self.links.unlink_all(name)
        try:
            shutil.rmtree(skill_dir)
        except OSError as e:
            raise SkillsError(f"failed to delete {skill_dir}: {e}")

        ledger = self.ledger()
        if ledger.remove(name):
            ledger.save()
        logger.info("Deleted skill %s", name)
        return report

    def batch_delete(self, names: Iterable[str]) -> BatchResult:
        result = BatchResult()
        for name in names:
            try:
                self.delete(name)
            except (SkillsError, OSError) as e:
                result.failed[name] = str(e)
                continue
            result.succeeded.append(name)
        return result
