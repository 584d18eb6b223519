# path: assocreset/core/discovery.py
"""
assocreset/core/discovery.py — Directory enumerator

Responsibilities
- Lazy filesystem traversal (os.scandir, explicit stack, no recursion)
- Regular files only, tagged with the first matching category (caller order wins)
- Restartable: every call to enumerate() is a fresh walk
- Cancellation-aware
- Symlinked directories are entered at most once (loops are cut by device/inode)
- Deterministic ordering when requested
- No exceptions leak upward for unreadable entries (they are skipped)
"""

from __future__ import annotations

import os
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Sequence, Set, Tuple

from .errors import ConfigurationError
from .models import CandidatePath


class Cancellable(Protocol):
    def is_cancelled(self) -> bool: ...


class _NeverCancelled:
    def is_cancelled(self) -> bool:
        return False


def normalize_category(category: str) -> str:
    """'.PDF' -> 'pdf'. Raises ConfigurationError for an empty suffix."""
    norm = str(category or "").strip().lstrip(".").lower()
    if not norm:
        raise ConfigurationError(f"Invalid category: {category!r}")
    return norm


def normalize_categories(categories: Iterable[str]) -> List[str]:
    """Normalize and de-duplicate, keeping the first occurrence's position."""
    out: List[str] = []
    for c in categories or []:
        norm = normalize_category(c)
        if norm not in out:
            out.append(norm)
    if not out:
        raise ConfigurationError("At least one category is required")
    return out


def validate_root(root: os.PathLike | str) -> Path:
    p = Path(root).expanduser()
    if not p.exists():
        raise ConfigurationError(f"Target directory does not exist: {p}")
    if not p.is_dir():
        raise ConfigurationError(f"Target is not a directory: {p}")
    if not os.access(p, os.R_OK | os.X_OK):
        raise ConfigurationError(f"Target directory is not readable: {p}")
    return p.resolve()


def match_category(name: str, suffixes: Sequence[Tuple[str, str]]) -> Optional[str]:
    """suffixes: (category, '.category') pairs in priority order."""
    lowered = name.lower()
    for category, dotted in suffixes:
        if lowered.endswith(dotted):
            return category
    return None


class DirectoryEnumerator:
    def __init__(
        self,
        *,
        include_hidden: bool = True,
        follow_symlinks: bool = False,
        exclude_dirs: Optional[Iterable[str]] = None,
        deterministic: bool = False,
    ):
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.exclude_dirs = set(exclude_dirs or [])
        self.deterministic = deterministic

    def enumerate(
        self,
        root: os.PathLike | str,
        categories: Iterable[str],
        cancel: Optional[Cancellable] = None,
    ) -> Iterator[CandidatePath]:
        # Validation happens eagerly; the walk itself is lazy.
        root_path = validate_root(root)
        cats = normalize_categories(categories)
        return self._walk(root_path, cats, cancel or _NeverCancelled())

    def count_for_category(self, root: os.PathLike | str, category: str) -> int:
        return sum(1 for _ in self.enumerate(root, [category]))

    def count_by_category(
        self,
        root: os.PathLike | str,
        categories: Iterable[str],
        cancel: Optional[Cancellable] = None,
    ) -> Dict[str, int]:
        """One walk, counts for every category (zero-count categories included, caller order kept)."""
        cats = normalize_categories(categories)
        counts: Dict[str, int] = OrderedDict((c, 0) for c in cats)
        for cand in self.enumerate(root, cats, cancel):
            counts[cand.category] += 1
        return dict(counts)

    def _walk(self, root: Path, cats: List[str], cancel: Cancellable) -> Iterator[CandidatePath]:
        suffixes = [(c, "." + c) for c in cats]
        stack: List[Path] = [root]
        visited: Set[Tuple[int, int]] = set()
        if self.follow_symlinks:
            try:
                st = root.stat()
                visited.add((st.st_dev, st.st_ino))
            except OSError:
                pass

        while stack:
            if cancel.is_cancelled():
                return

            cur = stack.pop()
            try:
                with os.scandir(cur) as it:
                    entries = list(it)
            except OSError:
                continue

            if self.deterministic:
                entries.sort(key=lambda e: e.name)

            subdirs: List[Path] = []
            for entry in entries:
                if cancel.is_cancelled():
                    return

                name = entry.name
                if not self.include_hidden and name.startswith("."):
                    continue

                try:
                    if entry.is_dir(follow_symlinks=self.follow_symlinks):
                        if name in self.exclude_dirs:
                            continue
                        if self.follow_symlinks:
                            st = entry.stat(follow_symlinks=True)
                            key = (st.st_dev, st.st_ino)
                            if key in visited:
                                continue
                            visited.add(key)
                        subdirs.append(Path(entry.path))
                        continue

                    if not entry.is_file(follow_symlinks=self.follow_symlinks):
                        continue
                except OSError:
                    # unreadable entry (permissions, broken symlink, etc.)
                    continue

                category = match_category(name, suffixes)
                if category is None:
                    continue
                yield CandidatePath(path=Path(entry.path), category=category)

            # Reversed so that popping visits sibling directories in listing order.
            stack.extend(reversed(subdirs))


__all__ = [
    "Cancellable",
    "DirectoryEnumerator",
    "match_category",
    "normalize_categories",
    "normalize_category",
    "validate_root",
]
