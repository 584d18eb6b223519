# path: assocreset/config.py
"""
Run configuration.

Precedence (lowest first): dataclass defaults, YAML config file,
environment variables, explicit overrides (CLI flags).
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from assocreset.core.attributes import LAUNCH_SERVICES_ATTR
from assocreset.core.decision import DEFAULT_MAX_FILES, DEFAULT_MIN_SAMPLE
from assocreset.core.errors import ConfigurationError

DEFAULT_CATEGORIES = [
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "jpg", "jpeg", "png", "gif", "bmp", "tiff",
    "mp4", "mov", "avi", "mkv", "mp3", "wav",
    "zip", "tar", "gz", "7z", "rar",
    "txt", "md", "rtf", "html", "css", "js",
]

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "WARNING", "ERROR")

ENV_PREFIX = "ASSOCRESET_"


@dataclass
class ResetConfig:
    target_dir: str = "."
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    attribute: str = LAUNCH_SERVICES_ATTR

    # Ceilings and sampling policy
    max_files: int = DEFAULT_MAX_FILES
    # Per-extension file ceiling; None follows max_files, 0 disables it.
    category_limit: Optional[int] = None
    sample_size: int = 100
    min_sample: int = DEFAULT_MIN_SAMPLE
    seed: Optional[int] = None

    # Execution
    workers: int = 0  # 0 = auto
    parallel: bool = True
    dry_run: bool = False
    skip_sampling: bool = False
    no_confirm: bool = False
    halt_on_error: bool = False

    # Discovery
    include_hidden: bool = True
    follow_symlinks: bool = False
    exclude_dirs: List[str] = field(default_factory=list)

    # Output
    log_level: str = "INFO"
    log_dir: str = ""
    report_path: str = ""
    verbose: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResetConfig":
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Configuration must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}", unknown)
        return cls(**dict(data))

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: List[str] = []

        if not self.categories:
            errors.append("categories cannot be empty")
        elif any(not str(c or "").strip().lstrip(".") for c in self.categories):
            errors.append("categories cannot contain empty suffixes")

        if not self.attribute:
            errors.append("attribute cannot be empty")

        minimums = {"max_files": 1, "sample_size": 0, "min_sample": 0, "workers": 0}
        for name, minimum in minimums.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                errors.append(f"{name} must be an integer, got {value!r}")
            elif value < minimum:
                errors.append(f"{name} must be at least {minimum}")

        if self.category_limit is not None:
            if isinstance(self.category_limit, bool) or not isinstance(self.category_limit, int):
                errors.append(f"category_limit must be an integer, got {self.category_limit!r}")
            elif self.category_limit < 0:
                errors.append("category_limit must be at least 0")

        if str(self.log_level).upper() not in VALID_LOG_LEVELS:
            errors.append(f"Invalid log_level: {self.log_level}")

        target = Path(self.target_dir).expanduser()
        if not target.is_dir():
            errors.append(f"target_dir is not a directory: {self.target_dir}")

        return errors

    def effective_category_limit(self) -> int:
        return self.max_files if self.category_limit is None else self.category_limit

    def merged(self, overrides: Mapping[str, Any]) -> "ResetConfig":
        """Return a copy with every non-None override applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return ResetConfig.from_dict(data)


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    p = Path(path).expanduser()
    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {p}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {p}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {p} must contain a mapping")
    return data


def env_overrides(env: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if env is None else env
    out: Dict[str, Any] = {}

    workers = str(env.get(ENV_PREFIX + "WORKERS", "") or "").strip()
    if workers:
        if not workers.isdigit():
            raise ConfigurationError(f"{ENV_PREFIX}WORKERS must be a non-negative integer: {workers!r}")
        out["workers"] = int(workers)

    level = str(env.get(ENV_PREFIX + "LOG_LEVEL", "") or "").strip()
    if level:
        out["log_level"] = level.upper()
    if str(env.get(ENV_PREFIX + "DEBUG", "")).strip().lower() in ("1", "true", "yes"):
        out["log_level"] = "DEBUG"

    log_dir = str(env.get(ENV_PREFIX + "LOG_DIR", "") or "").strip()
    if log_dir:
        out["log_dir"] = log_dir

    return out


def load_config(
    path: Optional[Union[str, Path]] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ResetConfig:
    """
    Build the effective configuration and validate it.

    Raises:
        ConfigurationError listing every problem found.
    """
    data: Dict[str, Any] = {}
    if path:
        data.update(read_config_file(path))

    config = ResetConfig.from_dict(data).merged(env_overrides(env))
    if overrides:
        config = config.merged(overrides)

    if isinstance(config.categories, str):
        config.categories = config.categories.split(",")
    config.categories = [str(c).strip().lstrip(".").lower() for c in (config.categories or [])]
    errors = config.validate()
    if errors:
        raise ConfigurationError("Invalid configuration: " + "; ".join(errors), errors)
    return config


def save_config(config: ResetConfig, path: Union[str, Path]) -> Path:
    p = Path(path).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    return p


__all__ = [
    "DEFAULT_CATEGORIES",
    "ResetConfig",
    "env_overrides",
    "load_config",
    "read_config_file",
    "save_config",
]
