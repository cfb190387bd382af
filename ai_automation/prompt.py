#!/usr/bin/env python3
"""Prompt preparation: PR snapshot + template substitution + plan embedding."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ai_automation.config import PreparePromptConfig
from ai_automation.core import parse_positive_int, require_value, split_repository, substitute_template
from ai_automation.pr_data import PullRequestSnapshot


TEMPLATE_VARIABLE_NAMES = (
    "PR_DIFF",
    "PR_TITLE",
    "PR_NUMBER",
    "PR_AUTHOR",
    "PR_BODY",
    "CHANGED_FILES",
    "REPOSITORY",
    "BASE_BRANCH",
)


@dataclass(frozen=True)
class PreparedPrompt:
    prompt: str
    snapshot: PullRequestSnapshot
    base_branch: str
    repository: str
    variables: dict[str, str]

    def outputs(self) -> dict[str, str]:
        return {
            "final_prompt": self.prompt,
            "pr_number": str(self.snapshot.number),
            "pr_title": self.snapshot.title,
            "pr_author": self.snapshot.author,
            "pr_body": self.snapshot.body,
            "base_branch": self.base_branch,
            "head_ref": self.snapshot.head_ref,
        }


def build_template_variables(
    snapshot: PullRequestSnapshot,
    *,
    repository: str,
    base_branch: str,
) -> dict[str, str]:
    return {
        "PR_DIFF": snapshot.diff,
        "PR_TITLE": snapshot.title,
        "PR_NUMBER": str(snapshot.number),
        "PR_AUTHOR": snapshot.author,
        "PR_BODY": snapshot.body,
        "CHANGED_FILES": "\n".join(snapshot.changed_files),
        "REPOSITORY": repository,
        "BASE_BRANCH": base_branch,
    }


def embed_plan(prompt: str, plan: str | None) -> str:
    plan_text = str(plan or "").strip()
    if not plan_text:
        return prompt
    return f"Based on this plan:\n\n```\n{plan_text}\n```\n\n{prompt}"


class PromptService:
    """Builds the final prompt for one PR run."""

    def __init__(
        self,
        *,
        fetch_snapshot: Callable[..., PullRequestSnapshot],
        get_default_branch: Callable[[str, str], str],
        log: Callable[[str], None],
    ) -> None:
        self._fetch_snapshot = fetch_snapshot
        self._get_default_branch = get_default_branch
        self._log = log

    def resolve_base_branch(self, owner: str, repo: str, explicit: str) -> str:
        if explicit:
            return explicit
        branch = self._get_default_branch(owner, repo)
        self._log(f"Using default branch '{branch}' of {owner}/{repo}")
        return branch

    def prepare(self, config: PreparePromptConfig, *, plan: str | None = None) -> PreparedPrompt:
        if not config.template.strip():
            raise RuntimeError("PROMPT_TEMPLATE is required.")
        number = parse_positive_int(config.pr_number, name="PR_NUMBER")
        require_value(config.token, name="GITHUB_TOKEN")
        repository = require_value(config.repository, name="REPOSITORY")
        owner, repo = split_repository(repository)

        base_branch = self.resolve_base_branch(owner, repo, config.base_branch)
        snapshot = self._fetch_snapshot(owner, repo, number, repo_root=Path(config.repo_root))
        variables = build_template_variables(
            snapshot,
            repository=f"{owner}/{repo}",
            base_branch=base_branch,
        )
        prompt = substitute_template(config.template, variables)
        prompt = embed_plan(prompt, config.plan if plan is None else plan)
        self._log(f"Prepared prompt for PR #{number} ({len(prompt)} chars)")
        return PreparedPrompt(
            prompt=prompt,
            snapshot=snapshot,
            base_branch=base_branch,
            repository=f"{owner}/{repo}",
            variables=variables,
        )
