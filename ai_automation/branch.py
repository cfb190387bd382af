#!/usr/bin/env python3
"""Work branch naming and creation."""

from __future__ import annotations

import re
import subprocess
import time
from typing import Callable

from ai_automation.config import BranchConfig, DEFAULT_BRANCH_PREFIX
from ai_automation.core import error_message, parse_positive_int, require_value


BRANCH_PR_PATTERN = re.compile(r"pr-(\d+)-\d+$")


def current_time_millis() -> int:
    return int(time.time() * 1000)


def build_branch_name(prefix: str, pr_number: int, millis: int) -> str:
    return f"{prefix}pr-{pr_number}-{millis}"


def parse_branch_pr_number(branch_name: str) -> int | None:
    match = BRANCH_PR_PATTERN.search(str(branch_name or ""))
    if not match:
        return None
    return int(match.group(1))


class BranchService:
    """Creates the work branch from the remote base, falling back to HEAD."""

    def __init__(
        self,
        *,
        git: Callable[..., subprocess.CompletedProcess[str]],
        log: Callable[[str], None],
        warn: Callable[[str], None],
        clock: Callable[[], int] = current_time_millis,
    ) -> None:
        self._git = git
        self._log = log
        self._warn = warn
        self._clock = clock

    def create_branch(self, config: BranchConfig) -> str:
        base_branch = require_value(config.base_branch, name="BASE_BRANCH")
        number = parse_positive_int(require_value(config.pr_number, name="PR_NUMBER"), name="PR_NUMBER")
        prefix = config.prefix if config.prefix else DEFAULT_BRANCH_PREFIX
        branch_name = build_branch_name(prefix, number, self._clock())

        fetch = self._git(["fetch", "origin", base_branch], cwd=config.repo_root, check=False)
        if fetch.returncode != 0:
            detail = (fetch.stderr or fetch.stdout or "").strip()
            self._warn(f"Failed to fetch origin/{base_branch}; continuing with local refs. {detail}".strip())

        primary = self._git(
            ["checkout", "-b", branch_name, f"origin/{base_branch}"],
            cwd=config.repo_root,
            check=False,
        )
        if primary.returncode == 0:
            self._log(f"Created branch {branch_name} from origin/{base_branch}")
            return branch_name

        detail = (primary.stderr or primary.stdout or "").strip()
        self._warn(f"Checkout from origin/{base_branch} failed, creating {branch_name} from HEAD. {detail}".strip())
        try:
            self._git(["checkout", "-b", branch_name], cwd=config.repo_root)
        except RuntimeError as err:
            raise RuntimeError(f"Unable to create branch {branch_name}: {error_message(err)}") from err
        self._log(f"Created branch {branch_name} from current HEAD")
        return branch_name
