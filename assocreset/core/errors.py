# path: assocreset/core/errors.py
"""
assocreset/core/errors.py — Error taxonomy

- ConfigurationError: invalid inputs to the core API (fatal, raised before work starts)
- AttributeAccessError: a per-file check/clear failure (recorded, never fatal)

"Attribute absent" is deliberately not represented here: it is the normal
no-override case and flows back as a plain False.
"""

from __future__ import annotations

import errno
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    UNSUPPORTED = "unsupported"
    IO_ERROR = "io_error"


_ERRNO_KINDS = {
    errno.ENOENT: ErrorKind.NOT_FOUND,
    errno.ENOTDIR: ErrorKind.NOT_FOUND,
    errno.EACCES: ErrorKind.PERMISSION_DENIED,
    errno.EPERM: ErrorKind.PERMISSION_DENIED,
    errno.EROFS: ErrorKind.PERMISSION_DENIED,
    errno.ENOTSUP: ErrorKind.UNSUPPORTED,
    errno.EOPNOTSUPP: ErrorKind.UNSUPPORTED,
}


class ResetError(Exception):
    """Base class for every error raised by assocreset."""


class ConfigurationError(ResetError, ValueError):
    """Invalid configuration or API arguments. Carries every problem found."""

    def __init__(self, message: str, problems: Optional[list] = None):
        super().__init__(message)
        self.problems = list(problems or [message])


class AttributeAccessError(ResetError):
    """A check or clear on a single file failed for a reason other than 'no such attribute'."""

    def __init__(self, path: Union[str, Path], kind: ErrorKind, detail: str = ""):
        self.path = Path(path)
        self.kind = kind
        self.detail = detail or kind.value
        super().__init__(f"{self.kind.value}: {self.path}: {self.detail}")

    @classmethod
    def from_os_error(cls, path: Union[str, Path], exc: OSError) -> "AttributeAccessError":
        kind = _ERRNO_KINDS.get(exc.errno or 0, ErrorKind.IO_ERROR)
        detail = exc.strerror or str(exc)
        return cls(path, kind, detail)


__all__ = [
    "AttributeAccessError",
    "ConfigurationError",
    "ErrorKind",
    "ResetError",
]
