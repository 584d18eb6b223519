# path: assocreset/core/attributes.py
"""
assocreset/core/attributes.py — Metadata accessor (per-file extended attribute check/clear)

- has_override(path) -> bool; raises AttributeAccessError for anything but "no such attribute"
- clear_override(path) -> ClearResult; idempotent, expected failures are returned, not raised
- Stateless: one instance may be shared by every worker thread
- Never touches file content or timestamps
- check_and_clear(store, candidate) -> OutcomeRecord; the unit of work shared by sampler and pool
"""

from __future__ import annotations

import errno
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import xattr

from .errors import AttributeAccessError, ErrorKind
from .models import CandidatePath, OutcomeAction, OutcomeRecord

LAUNCH_SERVICES_ATTR = "com.apple.LaunchServices.OpenWith"

# macOS reports ENOATTR, Linux ENODATA; both mean "attribute not set".
_MISSING_ATTR_ERRNOS = frozenset(
    e for e in (getattr(errno, "ENOATTR", None), getattr(errno, "ENODATA", None)) if e is not None
)

PathLike = Union[str, Path]


@dataclass(frozen=True, slots=True)
class ClearResult:
    """Result of a single clear attempt."""
    success: bool
    path: Path
    removed: bool = False
    error: Optional[AttributeAccessError] = None


class AttributePort:
    """Port interface for the per-file attribute store."""

    attribute: str = LAUNCH_SERVICES_ATTR

    def has_override(self, path: PathLike) -> bool:
        raise NotImplementedError

    def clear_override(self, path: PathLike) -> ClearResult:
        raise NotImplementedError


class XattrAttributeStore(AttributePort):
    """
    Extended-attribute backed store (macOS and Linux via the xattr library).

    By default a symlink's own attributes are used; with follow_symlinks the
    link target is checked and cleared instead.
    """

    def __init__(self, attribute: str = LAUNCH_SERVICES_ATTR, *, follow_symlinks: bool = False):
        if not attribute:
            raise ValueError("attribute name must not be empty")
        self.attribute = attribute
        self.follow_symlinks = follow_symlinks

    def has_override(self, path: PathLike) -> bool:
        try:
            xattr.getxattr(str(path), self.attribute, symlink=not self.follow_symlinks)
        except OSError as e:
            if e.errno in _MISSING_ATTR_ERRNOS:
                return False
            raise AttributeAccessError.from_os_error(path, e) from e
        return True

    def clear_override(self, path: PathLike) -> ClearResult:
        p = Path(path)
        try:
            xattr.removexattr(str(p), self.attribute, symlink=not self.follow_symlinks)
        except OSError as e:
            if e.errno in _MISSING_ATTR_ERRNOS:
                return ClearResult(success=True, path=p, removed=False)
            return ClearResult(success=False, path=p, error=AttributeAccessError.from_os_error(p, e))
        return ClearResult(success=True, path=p, removed=True)

    def list_attributes(self, path: PathLike) -> List[str]:
        try:
            return list(xattr.listxattr(str(path), symlink=not self.follow_symlinks))
        except OSError as e:
            raise AttributeAccessError.from_os_error(path, e) from e

    def is_available(self, check_dir: PathLike = ".") -> bool:
        """True when the filesystem under check_dir answers attribute queries at all."""
        try:
            xattr.listxattr(str(check_dir))
            return True
        except OSError:
            return False


def check_and_clear(
    store: AttributePort,
    candidate: CandidatePath,
    *,
    dry_run: bool,
    index: int = -1,
) -> OutcomeRecord:
    """
    Check one candidate and, unless dry_run, clear its override.
    Always returns exactly one OutcomeRecord; failures become ERROR records.
    """
    path, category = candidate.path, candidate.category

    try:
        present = store.has_override(path)
    except AttributeAccessError as e:
        return OutcomeRecord(path, category, False, OutcomeAction.ERROR, e.detail, e.kind, index)
    except Exception as e:
        return OutcomeRecord(path, category, False, OutcomeAction.ERROR, str(e), ErrorKind.IO_ERROR, index)

    if not present:
        return OutcomeRecord(path, category, False, OutcomeAction.SKIPPED, index=index)

    if dry_run:
        return OutcomeRecord(path, category, True, OutcomeAction.WOULD_CLEAR, index=index)

    try:
        res = store.clear_override(path)
    except Exception as e:
        return OutcomeRecord(path, category, True, OutcomeAction.ERROR, str(e), ErrorKind.IO_ERROR, index)

    if res.success:
        # removed=False means it vanished between check and clear; the end state is the same.
        return OutcomeRecord(path, category, True, OutcomeAction.CLEARED, index=index)

    err = res.error
    return OutcomeRecord(
        path,
        category,
        True,
        OutcomeAction.ERROR,
        err.detail if err else "clear failed",
        err.kind if err else ErrorKind.IO_ERROR,
        index,
    )


__all__ = [
    "AttributePort",
    "ClearResult",
    "LAUNCH_SERVICES_ATTR",
    "XattrAttributeStore",
    "check_and_clear",
]
