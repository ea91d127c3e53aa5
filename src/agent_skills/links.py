"""Filesystem primitives shared by the synchronizer, scanner and checker.

Also owns the single classification of where a consumer entry comes from:
a symlink resolving under the canonical store is global-origin, anything
else that is a directory is local-origin.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GlobalOrigin:
    """Entry is a link into the canonical store."""

    canonical_path: Path

    is_global = True

    @property
    def path(self) -> Path:
        return self.canonical_path


@dataclass(frozen=True)
class LocalOrigin:
    """Entry is (or resolves to) project-local content."""

    real_path: Path

    is_global = False

    @property
    def path(self) -> Path:
        return self.real_path


SkillOrigin = Union[GlobalOrigin, LocalOrigin]


def link_target(link: Path) -> Path:
    """Absolute, cleaned target of a symlink.

    Relative targets are resolved against the link's own directory. Only the
    link itself is read; the target is not required to exist.
    """
    target = os.readlink(link)
    if not os.path.isabs(target):
        target = os.path.join(os.path.dirname(os.fspath(link)), target)
    return Path(os.path.normpath(target))


def is_within(path: Path, root: Path) -> bool:
    """True when `path` equals `root` or lies below it (component-wise)."""
    path = os.path.normpath(os.fspath(path))
    root = os.path.normpath(os.fspath(root))
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False


def same_dir(a: Path, b: Path) -> bool:
    return os.path.normpath(os.fspath(a)) == os.path.normpath(os.fspath(b))


def classify_origin(entry: Path, store_dir: Path) -> Optional[SkillOrigin]:
    """Classify a skill entry found in an agent directory.

    Returns None when the entry is missing, is not a directory (following
    links) or is an unreadable link.
    """
    try:
        if not entry.is_dir():
            return None
        if entry.is_symlink():
            target = link_target(entry)
            if is_within(target, store_dir):
                return GlobalOrigin(target)
            return LocalOrigin(Path(os.path.realpath(entry)))
    except OSError as e:
        logger.debug("Cannot classify %s: %s", entry, e)
        return None
    return LocalOrigin(Path(os.path.realpath(entry)))


def lexists(path: Path) -> bool:
    return os.path.lexists(path)


def create_link(source: Path, target: Path):
    """Create a directory symlink at `target` pointing to `source`.

    The parent directory is created when needed. Errors propagate to the
    caller, which records them per agent.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    target.symlink_to(source, target_is_directory=True)


def copy_tree(source: Path, target: Path):
    """Recursively copy a skill directory, preserving mode bits.

    Symlinks inside the source are followed so the copy is self-contained.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, target, symlinks=False, copy_function=shutil.copy2)


def remove_entry(path: Path):
    """Remove a symlink (never its target) or a real directory tree."""
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)
