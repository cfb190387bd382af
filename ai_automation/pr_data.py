#!/usr/bin/env python3
"""Pull request metadata and diff fetching."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from ai_automation.core import error_message


PULL_REQUEST_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      title
      body
      author {
        login
      }
      baseRefName
      headRefName
      headRefOid
      commits(first: 100) {
        totalCount
        nodes {
          commit {
            oid
            message
          }
        }
      }
      files(first: 100) {
        nodes {
          path
          additions
          deletions
          changeType
        }
      }
    }
  }
}
""".strip()


@dataclass(frozen=True)
class PullRequestSnapshot:
    title: str
    number: int
    author: str
    body: str
    base_branch: str
    head_ref: str
    base_ref: str
    head_branch: str
    changed_files: tuple[str, ...]
    diff: str


def diff_unavailable_text(err: Any) -> str:
    return f"[Unable to fetch diff: {error_message(err)}]"


def _project_paths(files: Any) -> tuple[str, ...]:
    if not isinstance(files, dict):
        return ()
    nodes = files.get("nodes") or []
    return tuple(str(node["path"]) for node in nodes if isinstance(node, dict) and node.get("path"))


class PullRequestDataService:
    """Fetches one PR snapshot: GraphQL metadata plus a local git diff."""

    def __init__(
        self,
        *,
        graphql: Callable[[str, dict[str, Any]], dict[str, Any]],
        git: Callable[..., subprocess.CompletedProcess[str]],
        log: Callable[[str], None],
        warn: Callable[[str], None],
    ) -> None:
        self._graphql = graphql
        self._git = git
        self._log = log
        self._warn = warn

    def fetch_pull_request(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        data = self._graphql(PULL_REQUEST_QUERY, {"owner": owner, "repo": repo, "number": number})
        repository = data.get("repository") or {}
        pull_request = repository.get("pullRequest") if isinstance(repository, dict) else None
        if not pull_request:
            raise RuntimeError(f"Pull request #{number} not found in {owner}/{repo}.")
        return pull_request

    def compute_diff(self, base_branch: str, head_ref: str, *, repo_root: Path) -> str:
        try:
            self._git(["fetch", "origin", base_branch], cwd=repo_root)
            proc = self._git(["diff", f"origin/{base_branch}", head_ref], cwd=repo_root)
        except (RuntimeError, OSError, ValueError) as err:
            self._warn(f"Diff for origin/{base_branch}..{head_ref} is unavailable: {error_message(err)}")
            return diff_unavailable_text(err)
        return proc.stdout

    def fetch_snapshot(self, owner: str, repo: str, number: int, *, repo_root: Path) -> PullRequestSnapshot:
        self._log(f"Fetching PR #{number} from {owner}/{repo}")
        pr = self.fetch_pull_request(owner, repo, number)
        author = pr.get("author") or {}
        base_branch = str(pr.get("baseRefName") or "")
        head_ref = str(pr.get("headRefOid") or "")
        changed_files = _project_paths(pr.get("files"))
        diff = self.compute_diff(base_branch, head_ref, repo_root=repo_root)
        self._log(f"PR #{number}: {len(changed_files)} changed file(s), diff {len(diff)} chars")
        return PullRequestSnapshot(
            title=str(pr.get("title") or ""),
            number=number,
            author=str(author.get("login") or "") or "unknown",
            body=str(pr.get("body") or ""),
            base_branch=base_branch,
            head_ref=head_ref,
            base_ref=f"origin/{base_branch}",
            head_branch=str(pr.get("headRefName") or ""),
            changed_files=changed_files,
            diff=diff,
        )
