#!/usr/bin/env python3
"""GitHub REST and GraphQL client used by the PR stages."""

from __future__ import annotations

import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ai_automation.core import resolve_api_url, resolve_graphql_url


REQUEST_TIMEOUT_SECONDS = 30


class GitHubClient:
    """Thin token-authenticated wrapper over the GitHub HTTP API."""

    def __init__(self, token: str, *, api_url: str | None = None) -> None:
        if not str(token or "").strip():
            raise RuntimeError("GITHUB_TOKEN is required.")
        self._token = token.strip()
        self._api_url = resolve_api_url(api_url)
        self._graphql_url = resolve_graphql_url(self._api_url)

    def _request(self, method: str, url: str, body: dict[str, Any] | None = None) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = Request(url, data=data, method=method)
        req.add_header("Authorization", f"Bearer {self._token}")
        req.add_header("Accept", "application/vnd.github+json")
        req.add_header("User-Agent", "ai-automation")
        if data is not None:
            req.add_header("Content-Type", "application/json")
        try:
            with urlopen(req, timeout=REQUEST_TIMEOUT_SECONDS) as resp:
                raw = resp.read().decode("utf-8")
        except HTTPError as err:
            detail = ""
            try:
                detail = err.read().decode("utf-8")[:800]
            except OSError:
                pass
            raise RuntimeError(f"GitHub API {method} {url} => {err.code}: {detail}") from err
        except URLError as err:
            raise RuntimeError(f"GitHub API {method} {url} failed: {err.reason}") from err
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError as err:
            raise RuntimeError(f"GitHub API returned invalid JSON: {method} {url}") from err

    def get_json(self, path: str) -> Any:
        url = f"{self._api_url}{path}" if path.startswith("/") else path
        return self._request("GET", url)

    def graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        payload = self._request("POST", self._graphql_url, {"query": query, "variables": variables})
        if not isinstance(payload, dict):
            raise RuntimeError("GitHub GraphQL returned an unexpected payload.")
        errors = payload.get("errors")
        if errors:
            messages = [
                str(item.get("message", item)) if isinstance(item, dict) else str(item)
                for item in errors
            ]
            raise RuntimeError("GitHub GraphQL error: " + "; ".join(messages))
        data = payload.get("data")
        return data if isinstance(data, dict) else {}

    def get_issue(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        payload = self.get_json(f"/repos/{owner}/{repo}/issues/{number}")
        if not isinstance(payload, dict):
            raise RuntimeError(f"Issue #{number} payload is invalid.")
        return payload

    def get_default_branch(self, owner: str, repo: str) -> str:
        payload = self.get_json(f"/repos/{owner}/{repo}")
        branch = str(payload.get("default_branch") or "").strip() if isinstance(payload, dict) else ""
        if not branch:
            raise RuntimeError(f"Unable to resolve default branch for {owner}/{repo}.")
        return branch
