from __future__ import annotations

import io
import json
from argparse import Namespace
from pathlib import Path

import pytest

from nxtracker import cli


def _write_config(tmp_path: Path, repos: list[str]) -> tuple[Path, Path]:
    projects = tmp_path / "projects.yml"
    body = "".join(f"  - repo: {r}\n" for r in repos) if repos else "  []\n"
    projects.write_text("projects:\n" + body, encoding="utf-8")
    firmware = tmp_path / "firmware.yml"
    firmware.write_text('default_firmware: "20.2.0"\nfirmware_requirements:\n  one: "19.0.0"\n', encoding="utf-8")
    return projects, firmware


def test_collect_writes_output_and_skips_missing(tmp_path: Path, fake_github, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    fake_github.add_repo("a", "one")
    fake_github.add_repo("c", "three")
    projects, firmware = _write_config(tmp_path, ["a/one", "b/missing", "c/three"])
    output = tmp_path / "out" / "projects.json"

    code = cli.main(
        ["collect", "--projects", str(projects), "--firmware", str(firmware), "--output", str(output), "--delay", "0"]
    )

    assert code == 0
    data = json.loads(output.read_text(encoding="utf-8"))
    assert [(p["name"], p["requiredFirmware"]) for p in data["projects"]] == [("one", "19.0.0"), ("three", "20.2.0")]


def test_collect_uses_token_from_env(tmp_path: Path, fake_github, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "env-token")
    fake_github.add_repo("a", "one")
    projects, firmware = _write_config(tmp_path, ["a/one"])

    cli.main(
        ["collect", "--projects", str(projects), "--firmware", str(firmware),
         "--output", str(tmp_path / "p.json"), "--delay", "0"]
    )

    assert all(c["headers"]["Authorization"] == "Bearer env-token" for c in fake_github.calls)


def test_collect_missing_project_list_is_fatal(tmp_path: Path, fake_github) -> None:
    output = tmp_path / "projects.json"
    code = cli.main(["collect", "--projects", str(tmp_path / "missing.yml"), "--output", str(output)])
    assert code == 1
    assert not output.exists()
    assert fake_github.calls == []


def test_collect_write_failure_is_fatal(tmp_path: Path, fake_github) -> None:
    projects, firmware = _write_config(tmp_path, [])
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    code = cli.main(
        ["collect", "--projects", str(projects), "--firmware", str(firmware), "--output", str(blocker / "p.json")]
    )
    assert code == 1


def _view_args(source: Path, **overrides) -> Namespace:
    values = {"source": str(source), "search": "", "language": "all", "sort": "stars", "page": 1, "per_page": 12, "json": False}
    values.update(overrides)
    return Namespace(**values)


def _artifact(tmp_path: Path) -> Path:
    path = tmp_path / "projects.json"
    projects = [
        {"name": "Atmosphere", "author": "Atmosphere-NX", "description": "CFW", "language": "C++",
         "stars": 15000, "forks": 1200, "latestVersion": "1.8.0", "requiredFirmware": "19.0.0",
         "projectFullUrl": "https://github.com/Atmosphere-NX/Atmosphere", "projectUrl": "Atmosphere-NX/Atmosphere",
         "latestReleaseDate": "2025-02-01T12:00:00Z", "lastUpdated": "2025-03-01T00:00:00Z"},
        {"name": "ftpd", "author": "mtheall", "description": "FTP server", "language": "C",
         "stars": 1100, "forks": 90, "latestVersion": None, "requiredFirmware": "20.2.0",
         "projectFullUrl": "https://github.com/mtheall/ftpd", "projectUrl": "mtheall/ftpd"},
    ]
    path.write_text(json.dumps({"projects": projects}), encoding="utf-8")
    return path


def test_view_prints_page(tmp_path: Path) -> None:
    out = io.StringIO()
    assert cli.view_cmd(_view_args(_artifact(tmp_path)), out) == 0

    text = out.getvalue()
    assert text.startswith("2 projects | 16.1k stars | 1.3k forks | 2 languages")
    assert text.index("Atmosphere by Atmosphere-NX") < text.index("ftpd by mtheall")
    assert "no release" in text
    assert "Showing 1-2 of 2 projects   [1]" in text


def test_view_no_matches(tmp_path: Path) -> None:
    out = io.StringIO()
    cli.view_cmd(_view_args(_artifact(tmp_path), search="zzz"), out)
    assert "No projects match" in out.getvalue()


def test_view_json(tmp_path: Path) -> None:
    out = io.StringIO()
    cli.view_cmd(_view_args(_artifact(tmp_path), language="C", json=True), out)
    data = json.loads(out.getvalue())
    assert [p["name"] for p in data["items"]] == ["ftpd"]
    assert data["totalPages"] == 1


def test_view_load_failure(tmp_path: Path) -> None:
    out = io.StringIO()
    assert cli.view_cmd(_view_args(tmp_path / "missing.json"), out) == 1
    assert "try again" in out.getvalue()


def test_view_rejects_unknown_sort() -> None:
    with pytest.raises(SystemExit):
        cli.main(["view", "projects.json", "--sort", "random"])


def test_view_card_shows_updated_date(tmp_path: Path) -> None:
    out = io.StringIO()
    cli.view_cmd(_view_args(_artifact(tmp_path)), out)
    assert "updated 2025-03-01" in out.getvalue()


def test_show_project_with_release(tmp_path: Path) -> None:
    out = io.StringIO()
    args = Namespace(project="Atmosphere-NX/Atmosphere", source=str(_artifact(tmp_path)))
    assert cli.show_cmd(args, out) == 0

    lines = out.getvalue().splitlines()
    assert any(line.startswith("Latest Version") and line.endswith("1.8.0") for line in lines)
    assert any(line.startswith("Latest Release") and line.endswith("2025-02-01") for line in lines)
    assert any(line.startswith("Firmware") and line.endswith("19.0.0") for line in lines)


def test_show_project_without_release(tmp_path: Path) -> None:
    out = io.StringIO()
    args = Namespace(project="mtheall/ftpd", source=str(_artifact(tmp_path)))
    assert cli.show_cmd(args, out) == 0

    lines = out.getvalue().splitlines()
    assert any(line.startswith("Latest Version") and line.endswith("N/A") for line in lines)
    assert any(line.startswith("Release URL") and line.endswith("N/A") for line in lines)


def test_show_unknown_project(tmp_path: Path) -> None:
    out = io.StringIO()
    args = Namespace(project="someone/else", source=str(_artifact(tmp_path)))
    assert cli.show_cmd(args, out) == 1
    assert "No project 'someone/else'" in out.getvalue()


def test_show_command_is_wired(tmp_path: Path) -> None:
    assert cli.main(["show", "mtheall/ftpd", str(_artifact(tmp_path))]) == 0


@pytest.mark.parametrize(
    "n,expected",
    [(999, "999"), (1_000, "1.0k"), (16_100, "16.1k"), (999_949, "999.9k"), (999_960, "1.0M"), (2_500_000, "2.5M")],
)
def test_format_number(n: int, expected: str) -> None:
    assert cli._format_number(n) == expected
