"""
collector.py

Responsibility: Turn the configured repository list into `projects.json`.

Entries are processed one at a time, in configured order, with a fixed pause
after each one to stay inside the API rate budget. A failing entry is logged
and skipped; it never aborts the run.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from collections import Counter
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from nxtracker.config import FirmwareMap, InvalidRepoFormat, parse_repo_string
from nxtracker.errors import TrackerError
from nxtracker.github_client import ApiError, GitHubClient, ReleaseNotFound, RepositoryNotFound

logger = logging.getLogger(__name__)


class FatalWriteError(TrackerError):
    pass


# ProjectRecord attribute -> projects.json key
_JSON_FIELDS = {
    "author_avatar": "authorAvatar",
    "author_url": "authorUrl",
    "project_url": "projectUrl",
    "project_full_url": "projectFullUrl",
    "last_updated": "lastUpdated",
    "created_at": "createdAt",
    "latest_version": "latestVersion",
    "latest_release_url": "latestReleaseUrl",
    "latest_release_date": "latestReleaseDate",
    "required_firmware": "requiredFirmware",
}


@dataclass(frozen=True)
class ProjectRecord:
    name: str
    author: str
    author_avatar: str
    author_url: str
    project_url: str
    project_full_url: str
    description: str
    language: str
    stars: int
    forks: int
    last_updated: str
    created_at: str
    latest_version: str | None
    latest_release_url: str | None
    latest_release_date: str | None
    required_firmware: str

    def to_dict(self) -> dict[str, Any]:
        """Map to the camelCase field names of projects.json."""
        return {_JSON_FIELDS.get(k, k): v for k, v in asdict(self).items()}


@dataclass(frozen=True)
class SkippedEntry:
    repo: str
    reason: str  # invalid-format | not-found | api-error
    detail: str = ""


@dataclass
class CollectionResult:
    records: list[ProjectRecord] = field(default_factory=list)
    skipped: list[SkippedEntry] = field(default_factory=list)

    def skip_counts(self) -> dict[str, int]:
        return dict(Counter(s.reason for s in self.skipped))


def build_record(
    slug: str,
    repo_info: dict[str, Any],
    release: dict[str, Any] | None,
    firmware: FirmwareMap,
) -> ProjectRecord:
    owner = repo_info.get("owner") or {}
    name = repo_info.get("name") or slug.split("/", 1)[-1]
    return ProjectRecord(
        name=name,
        author=owner.get("login", ""),
        author_avatar=owner.get("avatar_url", ""),
        author_url=owner.get("html_url", ""),
        project_url=slug,
        project_full_url=repo_info.get("html_url", ""),
        description=repo_info.get("description") or "",
        language=repo_info.get("language") or "",
        stars=int(repo_info.get("stargazers_count") or 0),
        forks=int(repo_info.get("forks_count") or 0),
        last_updated=repo_info.get("updated_at", ""),
        created_at=repo_info.get("created_at", ""),
        latest_version=release.get("tag_name") if release else None,
        latest_release_url=release.get("html_url") if release else None,
        latest_release_date=release.get("published_at") if release else None,
        required_firmware=firmware.resolve(name),
    )


def _fetch_release(client: GitHubClient, owner: str, repo: str) -> dict[str, Any] | None:
    try:
        return client.get_latest_release(owner, repo)
    except ReleaseNotFound:
        return None
    except ApiError as e:
        logger.error("Error fetching latest release for %s/%s: %s", owner, repo, e)
        return None


def collect_project(
    repo_string: str,
    client: GitHubClient,
    firmware: FirmwareMap,
) -> ProjectRecord:
    """
    Fetch one repository and its latest release and assemble the record.

    Raises InvalidRepoFormat, RepositoryNotFound or ApiError; release failures
    never propagate.
    """
    ref = parse_repo_string(repo_string)
    logger.info("Processing: %s", ref.slug)

    repo_info = client.get_repo(ref.owner, ref.repo)
    release = _fetch_release(client, ref.owner, ref.repo)

    record = build_record(ref.slug, repo_info, release, firmware)
    logger.info("Added: %s (%s) - %s", record.name, record.required_firmware, record.author)
    return record


def collect_projects(
    repos: Iterable[str],
    client: GitHubClient,
    firmware: FirmwareMap,
    *,
    delay: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
) -> CollectionResult:
    result = CollectionResult()
    for repo_string in repos:
        try:
            result.records.append(collect_project(repo_string, client, firmware))
        except InvalidRepoFormat as e:
            logger.error("Error processing project %s: %s", repo_string, e)
            result.skipped.append(SkippedEntry(repo_string, "invalid-format", str(e)))
        except RepositoryNotFound:
            logger.warning("Repository not found: %s", repo_string)
            result.skipped.append(SkippedEntry(repo_string, "not-found"))
        except ApiError as e:
            if e.status == 401:
                logger.error("Error fetching %s: %s (check GITHUB_TOKEN)", repo_string, e)
            else:
                logger.error("Error fetching %s: %s", repo_string, e)
            result.skipped.append(SkippedEntry(repo_string, "api-error", str(e)))

        if delay > 0:
            sleep(delay)
    return result


def _output_mode(path: Path) -> int:
    """
    Mode for the written file: the existing file's mode, else 0o666 minus the umask.

    NamedTemporaryFile always creates 0o600.
    """
    try:
        return path.stat().st_mode & 0o777
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_projects_json(records: Iterable[ProjectRecord], output_path: str | Path) -> Path:
    """
    Write `{"projects": [...]}` to output_path, replacing any previous file in one step.

    The file keeps the permissions of the file it replaces, or gets the
    umask default for a new file.
    """
    path = Path(output_path)
    payload = {"projects": [r.to_dict() for r in records]}
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as fh:
            tmp_name = fh.name
            json.dump(payload, fh, indent=2, ensure_ascii=False)
            fh.write("\n")
        os.chmod(tmp_name, _output_mode(path))
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise FatalWriteError(f"Cannot write {path}: {e}") from e
    return path
