"""
cli.py

Responsibility: CLI entrypoint for the NX Projects Tracker.

Commands:
- `collect`: load config -> fetch every repository from GitHub -> write projects.json
- `view`: load projects.json -> filter/sort/paginate -> print one page
- `show`: load projects.json -> print every field of one project

This module should orchestrate behavior but keep concerns isolated:
- Configuration: `config.py`
- GitHub API: `github_client.py`
- Fetch loop and output file: `collector.py`
- Filtering and pagination: `presenter.py`
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TextIO

from nxtracker.collector import collect_projects, write_projects_json
from nxtracker.config import (
    DEFAULT_FIRMWARE_PATH,
    DEFAULT_OUTPUT_PATH,
    DEFAULT_PROJECTS_PATH,
    Settings,
    load_firmware_map,
    load_projects,
)
from nxtracker.errors import TrackerError
from nxtracker.github_client import GitHubClient
from nxtracker.presenter import (
    ITEMS_PER_PAGE,
    SORT_KEYS,
    ArtifactLoadError,
    FilterState,
    View,
    compute_view,
    find_project,
    format_date,
    load_collection,
    project_details,
)

logger = logging.getLogger("nxtracker")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _log_token_info(client: GitHubClient) -> None:
    if client.authenticated:
        logger.info("Using GitHub token (5000 requests/hour limit)")
    else:
        logger.info("No GitHub token found (60 requests/hour limit)")
        logger.info("Set GITHUB_TOKEN environment variable for higher limits")


def collect_cmd(args: argparse.Namespace) -> int:
    settings = Settings.from_env(
        token=args.github_token,
        projects_path=Path(args.projects) if args.projects else None,
        firmware_path=Path(args.firmware) if args.firmware else None,
        output_path=Path(args.output) if args.output else None,
        api_base=args.api_base,
        delay=args.delay,
    )

    client = GitHubClient(settings.token, api_base=settings.api_base)
    _log_token_info(client)

    firmware = load_firmware_map(settings.firmware_path)
    repos = load_projects(settings.projects_path)
    logger.info("Found %d projects to process", len(repos))

    result = collect_projects(repos, client, firmware, delay=settings.delay)
    output_path = write_projects_json(result.records, settings.output_path)

    logger.info("Successfully processed %d projects", len(result.records))
    if result.skipped:
        summary = ", ".join(f"{reason}: {n}" for reason, n in sorted(result.skip_counts().items()))
        logger.warning("Skipped %d projects (%s)", len(result.skipped), summary)
    logger.info("Output written to: %s", output_path)
    return 0


def _format_number(n: int) -> str:
    # Pick the suffix from the rounded text so 999_960 reads 1.0M, not 1000.0k.
    if n >= 1_000:
        thousands = f"{n / 1_000:.1f}"
        if float(thousands) < 1_000:
            return f"{thousands}k"
        return f"{n / 1_000_000:.1f}M"
    return str(n)


def _render_view(view: View, out: TextIO) -> None:
    s = view.stats
    out.write(
        f"{s.total_projects} projects | {_format_number(s.total_stars)} stars | "
        f"{_format_number(s.total_forks)} forks | {s.total_languages} languages\n\n"
    )

    if not view.items:
        out.write("No projects match the current filters.\n")
        return

    for p in view.items:
        version = p.get("latestVersion") or "no release"
        out.write(f"{p.get('name')} by {p.get('author')}  [{version}, fw {p.get('requiredFirmware')}]\n")
        out.write(
            f"  * {p.get('stars', 0)}  forks {p.get('forks', 0)}  {p.get('language') or '-'}"
            f"  updated {format_date(p.get('lastUpdated'))}\n"
        )
        if p.get("description"):
            out.write(f"  {p['description']}\n")
        out.write(f"  {p.get('projectFullUrl')}\n")

    info = view.page_info
    pager = " ".join("..." if n is None else (f"[{n}]" if n == info.page else str(n)) for n in info.page_numbers)
    out.write(f"\nShowing {info.start_item}-{info.end_item} of {info.total_items} projects   {pager}\n")


def view_cmd(args: argparse.Namespace, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    try:
        projects = load_collection(args.source)
    except ArtifactLoadError as e:
        logger.error("%s", e)
        out.write("Failed to load projects. Check the source and try again.\n")
        return 1

    state = FilterState(search=args.search.strip(), language=args.language, sort_by=args.sort)
    view = compute_view(projects, state, page=args.page, items_per_page=args.per_page)

    if args.json:
        json.dump({"items": view.items, "page": view.page_info.page, "totalPages": view.page_info.total_pages}, out, indent=2)
        out.write("\n")
    else:
        _render_view(view, out)
    return 0


def show_cmd(args: argparse.Namespace, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    try:
        projects = load_collection(args.source)
    except ArtifactLoadError as e:
        logger.error("%s", e)
        out.write("Failed to load projects. Check the source and try again.\n")
        return 1

    project = find_project(projects, args.project)
    if project is None:
        out.write(f"No project {args.project!r} in {args.source}.\n")
        return 1

    rows = project_details(project)
    width = max(len(label) for label, _ in rows)
    for label, value in rows:
        out.write(f"{label.ljust(width)}  {value}\n")
    return 0


def _positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1: {value}")
    return n


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="nx-tracker", description="NX Projects Tracker - GitHub metadata for Switch homebrew")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("collect", help="Fetch repository metadata and write projects.json")
    c.add_argument("--projects", default=None, help=f"Projects config (default: {DEFAULT_PROJECTS_PATH})")
    c.add_argument("--firmware", default=None, help=f"Firmware config (default: {DEFAULT_FIRMWARE_PATH})")
    c.add_argument("--output", default=None, help=f"Output JSON path (default: {DEFAULT_OUTPUT_PATH})")
    c.add_argument("--github-token", default=None, help="GitHub token (or set env GITHUB_TOKEN)")
    c.add_argument("--api-base", default=None, help="GitHub API base URL")
    c.add_argument("--delay", type=float, default=None, help="Seconds to wait between repositories (default: 0.1)")
    c.set_defaults(func=collect_cmd)

    v = sub.add_parser("view", help="Search, filter and page through projects.json")
    v.add_argument("source", nargs="?", default=str(DEFAULT_OUTPUT_PATH), help="Path or URL of projects.json")
    v.add_argument("--search", default="", help="Case-insensitive match on name, author or description")
    v.add_argument("--language", default="all", help="Exact language to keep (default: all)")
    v.add_argument("--sort", default="stars", choices=SORT_KEYS, help="Sort order (default: stars)")
    v.add_argument("--page", type=_positive_int, default=1, help="Page number (default: 1)")
    v.add_argument("--per-page", type=_positive_int, default=ITEMS_PER_PAGE, help="Items per page")
    v.add_argument("--json", action="store_true", help="Print the page as JSON")
    v.set_defaults(func=view_cmd)

    s = sub.add_parser("show", help="Print every detail of one project")
    s.add_argument("project", help="Repository identifier (owner/repo)")
    s.add_argument("source", nargs="?", default=str(DEFAULT_OUTPUT_PATH), help="Path or URL of projects.json")
    s.set_defaults(func=show_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    try:
        return int(args.func(args))
    except TrackerError as e:
        logger.error("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
