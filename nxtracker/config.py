"""
config.py

Responsibility: Load the tracker's YAML configuration into typed, immutable values.

Two files are read per collector run:
- `projects.yml`: the ordered list of repositories to track (required)
- `firmware.yml`: minimum firmware per project name plus a default (optional)

A broken project list is fatal. A broken firmware file is not: the collector
logs a warning and continues with an empty map and the built-in default.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from nxtracker.errors import TrackerError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_FIRMWARE = "20.2.0"
DEFAULT_DELAY = 0.1  # seconds between entries

DEFAULT_PROJECTS_PATH = Path("config") / "projects.yml"
DEFAULT_FIRMWARE_PATH = Path("config") / "firmware.yml"
DEFAULT_OUTPUT_PATH = Path("output") / "projects.json"


class ConfigLoadError(TrackerError):
    pass


class InvalidRepoFormat(TrackerError, ValueError):
    pass


@dataclass(frozen=True)
class RepoRef:
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class FirmwareMap:
    """Minimum firmware per project name, with a fallback for unlisted projects."""

    requirements: dict[str, str] = field(default_factory=dict)
    default: str = DEFAULT_FIRMWARE

    def resolve(self, project_name: str) -> str:
        return self.requirements.get(project_name) or self.default


@dataclass(frozen=True)
class Settings:
    """Runtime settings for one collector run."""

    projects_path: Path = DEFAULT_PROJECTS_PATH
    firmware_path: Path = DEFAULT_FIRMWARE_PATH
    output_path: Path = DEFAULT_OUTPUT_PATH
    api_base: str = DEFAULT_API_BASE
    token: str | None = None
    delay: float = DEFAULT_DELAY

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides: Any) -> "Settings":
        env = os.environ if environ is None else environ
        token = overrides.pop("token", None) or env.get("GITHUB_TOKEN") or None
        values = {k: v for k, v in overrides.items() if v is not None}
        return cls(token=token, **values)


def parse_repo_string(repo_string: str) -> RepoRef:
    """
    Split an `owner/repo` identifier.

    Exactly one `/` with non-empty text on both sides is accepted.
    """
    parts = str(repo_string).split("/")
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        raise InvalidRepoFormat(f'Invalid repo format: "{repo_string}". Expected format: "owner/repo"')
    return RepoRef(owner=parts[0].strip(), repo=parts[1].strip())


def _load_yaml(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigLoadError(f"Failed to read {path}: {e}") from e
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse {path}: {e}") from e


def load_projects(path: str | Path) -> list[str]:
    """
    Load the ordered list of `owner/repo` strings from `projects.yml`.

    Expected shape:

        projects:
          - repo: Atmosphere-NX/Atmosphere
          - repo: XorTroll/Goldleaf

    Entries are returned as written; format validation happens per entry in the
    collector so that one bad line does not abort the run.
    """
    data = _load_yaml(Path(path))
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{path} must be a mapping at the top level.")

    entries = data.get("projects")
    if not isinstance(entries, list):
        raise ConfigLoadError(f"{path} must define a `projects` list.")

    repos: list[str] = []
    for i, entry in enumerate(entries):
        if isinstance(entry, dict) and entry.get("repo"):
            repos.append(str(entry["repo"]).strip())
        elif isinstance(entry, str):
            repos.append(entry.strip())
        else:
            raise ConfigLoadError(f"{path}: projects[{i}] must have a `repo` key.")
    return repos


def load_firmware_map(path: str | Path, default: str = DEFAULT_FIRMWARE) -> FirmwareMap:
    """
    Load `firmware.yml`, falling back to an empty map on any problem.
    """
    try:
        data = _load_yaml(Path(path))
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigLoadError(f"{path} must be a mapping at the top level.")
        reqs_raw = data.get("firmware_requirements") or {}
        if not isinstance(reqs_raw, dict):
            raise ConfigLoadError("`firmware_requirements` must be a mapping when provided.")
    except ConfigLoadError as e:
        logger.warning("Error loading firmware config: %s", e)
        logger.info("Using default firmware configuration (%s)", default)
        return FirmwareMap(requirements={}, default=default)

    requirements = {str(k): str(v) for k, v in reqs_raw.items() if v is not None}
    fw_default = str(data.get("default_firmware") or default)
    logger.info("Loaded %d firmware requirements", len(requirements))
    return FirmwareMap(requirements=requirements, default=fw_default)
