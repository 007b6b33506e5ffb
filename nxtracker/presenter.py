"""
presenter.py

Responsibility: Compute what the project list page shows for a given filter state.

`compute_view` is a pure function of (collection, filter state, page): it
filters the full collection, sorts the result, cuts out one page and reports
statistics over the *unfiltered* collection. Anything that draws cards (the
static web page, the `view` CLI command) sits on top of it.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Sequence

import requests

from nxtracker.errors import TrackerError

ITEMS_PER_PAGE = 12
MAX_VISIBLE_PAGES = 5
ELLIPSIS = None  # placeholder in page_numbers() output

SORT_KEYS = ("stars", "forks", "name", "author", "latest", "created")

Project = dict[str, Any]


class ArtifactLoadError(TrackerError):
    pass


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    language: str = "all"
    sort_by: str = "stars"


@dataclass(frozen=True)
class Stats:
    total_projects: int
    total_stars: int
    total_forks: int
    total_languages: int


@dataclass(frozen=True)
class PageInfo:
    page: int
    total_pages: int
    total_items: int
    start_item: int
    end_item: int
    page_numbers: list[int | None] = field(default_factory=list)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass(frozen=True)
class View:
    items: list[Project]
    page_info: PageInfo
    stats: Stats


def _parse_timestamp(value: Any) -> datetime:
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _collation_key(value: Any) -> tuple[str, str]:
    # Case-insensitive first, original text as tie-breaker, like localeCompare.
    text = str(value or "")
    return text.casefold(), text


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


# sort_by -> (key function, descending)
_SORTERS: dict[str, tuple[Callable[[Project], Any], bool]] = {
    "stars": (lambda p: _count(p.get("stars")), True),
    "forks": (lambda p: _count(p.get("forks")), True),
    "name": (lambda p: _collation_key(p.get("name")), False),
    "author": (lambda p: _collation_key(p.get("author")), False),
    "latest": (lambda p: _parse_timestamp(p.get("lastUpdated")), True),
    "created": (lambda p: _parse_timestamp(p.get("createdAt")), True),
}


def _matches_search(project: Project, term: str) -> bool:
    for key in ("name", "author", "description"):
        value = project.get(key)
        if value and term in str(value).lower():
            return True
    return False


def filter_projects(projects: Sequence[Project], state: FilterState) -> list[Project]:
    filtered = list(projects)

    if state.search:
        term = state.search.lower()
        filtered = [p for p in filtered if _matches_search(p, term)]

    if state.language != "all":
        filtered = [p for p in filtered if p.get("language") == state.language]

    return filtered


def sort_projects(projects: Sequence[Project], sort_by: str) -> list[Project]:
    """Stable sort; unknown keys sort by stars."""
    key, descending = _SORTERS.get(sort_by, _SORTERS["stars"])
    return sorted(projects, key=key, reverse=descending)


def total_pages(total_items: int, items_per_page: int = ITEMS_PER_PAGE) -> int:
    if items_per_page < 1:
        raise ValueError("items_per_page must be >= 1")
    return math.ceil(total_items / items_per_page)


def clamp_page(page: int, pages: int) -> int:
    return min(max(1, int(page)), max(1, pages))


def paginate(projects: Sequence[Project], page: int, items_per_page: int = ITEMS_PER_PAGE) -> list[Project]:
    start = (page - 1) * items_per_page
    return list(projects[start : start + items_per_page])


def page_numbers(current: int, pages: int, max_visible: int = MAX_VISIBLE_PAGES) -> list[int | None]:
    """
    Page buttons to show, with None marking an ellipsis.

    Up to `max_visible` pages are listed in full. Beyond that the first and last
    page are always shown, plus the first three, the last three, or the pages
    around `current`, depending on where `current` sits.
    """
    if pages <= 1:
        return [1]
    if pages <= max_visible:
        return list(range(1, pages + 1))
    if current <= 3:
        return [1, 2, 3, ELLIPSIS, pages]
    if current >= pages - 2:
        return [1, ELLIPSIS, pages - 2, pages - 1, pages]
    return [1, ELLIPSIS, current - 1, current, current + 1, ELLIPSIS, pages]


def available_languages(projects: Sequence[Project]) -> list[str]:
    return sorted({p["language"] for p in projects if p.get("language")})


def compute_stats(projects: Sequence[Project]) -> Stats:
    return Stats(
        total_projects=len(projects),
        total_stars=sum(_count(p.get("stars")) for p in projects),
        total_forks=sum(_count(p.get("forks")) for p in projects),
        total_languages=len(available_languages(projects)),
    )


def compute_view(
    projects: Sequence[Project],
    state: FilterState,
    page: int = 1,
    items_per_page: int = ITEMS_PER_PAGE,
) -> View:
    """
    Filter, sort and paginate `projects`.

    The page is clamped into the valid range; an empty result still reports
    page 1 of 0 with no items.
    """
    ordered = sort_projects(filter_projects(projects, state), state.sort_by)
    pages = total_pages(len(ordered), items_per_page)
    current = clamp_page(page, pages)
    items = paginate(ordered, current, items_per_page)

    start_item = (current - 1) * items_per_page + 1 if ordered else 0
    end_item = min(current * items_per_page, len(ordered))
    info = PageInfo(
        page=current,
        total_pages=pages,
        total_items=len(ordered),
        start_item=start_item,
        end_item=end_item,
        page_numbers=page_numbers(current, pages) if ordered else [],
    )
    return View(items=items, page_info=info, stats=compute_stats(projects))


class ViewSession:
    """
    Mutable filter state for an interactive front end.

    Changing search, language or sort order goes back to page 1; moving between
    pages keeps the filter state as it is.
    """

    def __init__(self, projects: Sequence[Project], items_per_page: int = ITEMS_PER_PAGE) -> None:
        self.projects = list(projects)
        self.items_per_page = items_per_page
        self.state = FilterState()
        self.page = 1

    def view(self) -> View:
        return compute_view(self.projects, self.state, self.page, self.items_per_page)

    def set_search(self, search: str) -> View:
        return self._update(search=search.strip())

    def set_language(self, language: str) -> View:
        return self._update(language=language or "all")

    def set_sort(self, sort_by: str) -> View:
        return self._update(sort_by=sort_by)

    def clear_search(self) -> View:
        return self._update(search="")

    def go_to_page(self, page: int) -> View:
        view = compute_view(self.projects, self.state, page, self.items_per_page)
        self.page = view.page_info.page
        return view

    def next_page(self) -> View:
        return self.go_to_page(self.page + 1)

    def prev_page(self) -> View:
        return self.go_to_page(self.page - 1)

    def _update(self, **changes: str) -> View:
        self.state = replace(self.state, **changes)
        self.page = 1
        return self.view()


def format_date(value: Any) -> str:
    """`YYYY-MM-DD` for an ISO timestamp, "N/A" when absent or unparseable."""
    parsed = _parse_timestamp(value)
    if parsed == datetime.min.replace(tzinfo=timezone.utc):
        return "N/A"
    return parsed.date().isoformat()


def find_project(projects: Sequence[Project], project_url: str) -> Project | None:
    """Look up a record by its `owner/repo` identifier (case-insensitive, like GitHub)."""
    wanted = project_url.strip().casefold()
    for p in projects:
        if str(p.get("projectUrl") or "").casefold() == wanted:
            return p
    return None


def project_details(project: Project) -> list[tuple[str, str]]:
    """Label/value rows for the detail view of one project."""
    return [
        ("Name", str(project.get("name") or "")),
        ("Author", str(project.get("author") or "")),
        ("Author URL", str(project.get("authorUrl") or "N/A")),
        ("Description", str(project.get("description") or "N/A")),
        ("Stars", str(_count(project.get("stars")))),
        ("Forks", str(_count(project.get("forks")))),
        ("Language", str(project.get("language") or "N/A")),
        ("Firmware", str(project.get("requiredFirmware") or "N/A")),
        ("Repository", str(project.get("projectUrl") or "")),
        ("GitHub", str(project.get("projectFullUrl") or "N/A")),
        ("Latest Version", str(project.get("latestVersion") or "N/A")),
        ("Latest Release", format_date(project.get("latestReleaseDate"))),
        ("Release URL", str(project.get("latestReleaseUrl") or "N/A")),
        ("Last Updated", format_date(project.get("lastUpdated"))),
        ("Created", format_date(project.get("createdAt"))),
    ]


def load_collection(source: str | Path, timeout: float = 30) -> list[Project]:
    """
    Load the `projects` array from a local path or an http(s) URL.

    Every failure (unreachable, missing, malformed) is reported as
    ArtifactLoadError.
    """
    src = str(source)
    try:
        if src.startswith(("http://", "https://")):
            r = requests.get(src, timeout=timeout)
            r.raise_for_status()
            data = r.json()
        else:
            data = json.loads(Path(src).read_text(encoding="utf-8"))
    except (OSError, ValueError, requests.RequestException) as e:
        raise ArtifactLoadError(f"Failed to load projects from {src}: {e}") from e

    projects = data.get("projects") if isinstance(data, dict) else None
    if not isinstance(projects, list):
        raise ArtifactLoadError(f"Failed to load projects from {src}: missing `projects` list")
    return [p for p in projects if isinstance(p, dict)]
