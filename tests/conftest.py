import sys
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

# Make the project root importable when the package is not installed.
repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from assocreset.core.attributes import AttributePort, ClearResult  # noqa: E402
from assocreset.core.errors import AttributeAccessError, ErrorKind  # noqa: E402


class FakeAttributeStore(AttributePort):
    """
    In-memory attribute store keyed by str(path).

    fail_check / fail_clear map a path to the ErrorKind to report for it.
    on_check is called (outside the lock) with every checked path.
    """

    def __init__(
        self,
        overrides: Iterable = (),
        *,
        fail_check: Optional[Dict] = None,
        fail_clear: Optional[Dict] = None,
        on_check=None,
    ):
        self._lock = threading.Lock()
        self.overrides = {str(p) for p in overrides}
        self.fail_check = {str(k): v for k, v in (fail_check or {}).items()}
        self.fail_clear = {str(k): v for k, v in (fail_clear or {}).items()}
        self.on_check = on_check
        self.checks: Counter = Counter()
        self.clears: Counter = Counter()

    def add(self, *paths) -> None:
        with self._lock:
            self.overrides.update(str(p) for p in paths)

    def has_override(self, path) -> bool:
        key = str(path)
        with self._lock:
            self.checks[key] += 1
        if self.on_check is not None:
            self.on_check(key)
        if key in self.fail_check:
            raise AttributeAccessError(path, self.fail_check[key], "injected check failure")
        with self._lock:
            return key in self.overrides

    def clear_override(self, path) -> ClearResult:
        key = str(path)
        with self._lock:
            self.clears[key] += 1
        if key in self.fail_clear:
            err = AttributeAccessError(path, self.fail_clear[key], "injected clear failure")
            return ClearResult(success=False, path=Path(path), error=err)
        with self._lock:
            removed = key in self.overrides
            self.overrides.discard(key)
        return ClearResult(success=True, path=Path(path), removed=removed)


@pytest.fixture
def fake_store_cls():
    return FakeAttributeStore


@pytest.fixture
def fake_store():
    return FakeAttributeStore()


@pytest.fixture
def make_files(tmp_path: Path):
    """make_files(["a.pdf", "sub/b.jpg"]) -> [Path, ...] created under tmp_path."""

    def _make(names: Iterable[str], root: Optional[Path] = None) -> List[Path]:
        base = root or tmp_path
        out: List[Path] = []
        for name in names:
            p = base / name
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(b"x")
            out.append(p)
        return out

    return _make


@pytest.fixture
def permission_denied():
    return ErrorKind.PERMISSION_DENIED
