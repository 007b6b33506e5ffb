from __future__ import annotations

import json
from typing import Any

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeGitHub:
    """Routes `requests.request` calls to canned responses keyed by URL path."""

    def __init__(self, api_base: str = "https://api.github.com") -> None:
        self.api_base = api_base
        self.routes: dict[str, FakeResponse] = {}
        self.calls: list[dict[str, Any]] = []

    def add(self, path: str, status_code: int = 200, payload: Any = None) -> None:
        self.routes[path] = FakeResponse(status_code, payload)

    def add_repo(self, owner: str, name: str, release: dict[str, Any] | None = None, **fields: Any) -> None:
        self.add(f"/repos/{owner}/{name}", 200, make_repo_payload(owner, name, **fields))
        if release is None:
            self.add(f"/repos/{owner}/{name}/releases/latest", 404, {"message": "Not Found"})
        else:
            self.add(f"/repos/{owner}/{name}/releases/latest", 200, release)

    def __call__(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        path = url[len(self.api_base) :]
        return self.routes.get(path, FakeResponse(404, {"message": "Not Found"}))


def make_repo_payload(owner: str, name: str, **fields: Any) -> dict[str, Any]:
    payload = {
        "name": name,
        "owner": {
            "login": owner,
            "avatar_url": f"https://avatars.githubusercontent.com/{owner}",
            "html_url": f"https://github.com/{owner}",
        },
        "html_url": f"https://github.com/{owner}/{name}",
        "description": f"{name} description",
        "language": "C++",
        "stargazers_count": 10,
        "forks_count": 2,
        "updated_at": "2025-01-01T00:00:00Z",
        "created_at": "2020-01-01T00:00:00Z",
    }
    payload.update(fields)
    return payload


@pytest.fixture()
def fake_github(monkeypatch: pytest.MonkeyPatch) -> FakeGitHub:
    fake = FakeGitHub()
    monkeypatch.setattr(requests, "request", fake)
    return fake
