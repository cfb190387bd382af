#!/usr/bin/env python3
"""Commit and push of the working tree produced by an implementation run."""

from __future__ import annotations

import subprocess
from typing import Callable

from ai_automation.config import CommitConfig
from ai_automation.core import require_value


BOT_NAME = "github-actions[bot]"
BOT_EMAIL = "41898282+github-actions[bot]@users.noreply.github.com"


def build_commit_message(provider: str, pr_number: str) -> str:
    label = provider or "AI"
    if pr_number:
        return f"AI changes by {label} for PR #{pr_number}"
    return f"AI changes by {label}"


class CommitService:
    def __init__(
        self,
        *,
        git: Callable[..., subprocess.CompletedProcess[str]],
        log: Callable[[str], None],
        warn: Callable[[str], None],
    ) -> None:
        self._git = git
        self._log = log
        self._warn = warn

    def has_changes(self, config: CommitConfig) -> bool:
        try:
            status = self._git(["status", "--porcelain"], cwd=config.repo_root)
        except (RuntimeError, OSError) as err:
            self._warn(f"git status failed, assuming no changes: {err}")
            return False
        return bool(status.stdout.strip())

    def commit_and_push(self, config: CommitConfig) -> bool:
        """Return whether anything was committed and pushed."""
        branch_name = require_value(config.branch_name, name="BRANCH_NAME")
        if not self.has_changes(config):
            self._log("No changes detected; skipping commit and push.")
            return False

        cwd = config.repo_root
        self._git(["config", "user.name", BOT_NAME], cwd=cwd)
        self._git(["config", "user.email", BOT_EMAIL], cwd=cwd)
        self._git(["add", "-A"], cwd=cwd)
        self._git(["commit", "-m", build_commit_message(config.provider, config.pr_number)], cwd=cwd)
        self._git(["push", "origin", branch_name], cwd=cwd)
        self._log(f"Pushed changes to {branch_name}")
        return True
