#!/usr/bin/env python3
"""Pull request number resolution from explicit input or event context."""

from __future__ import annotations

from typing import Any, Callable

from ai_automation.config import PrNumberConfig
from ai_automation.core import error_message, split_repository


def _parse_number(value: str) -> int | None:
    text = str(value or "").strip()
    if not text:
        return None
    try:
        number = int(text)
    except ValueError:
        return None
    return number if number > 0 else None


def pr_number_from_url(url: str) -> int | None:
    segment = str(url or "").rstrip("/").rsplit("/", 1)[-1]
    return _parse_number(segment)


class PrNumberResolver:
    """Resolves the one pull request a run operates on.

    Precedence is explicit input, then a pull_request event number, then an
    issue_comment event whose issue is looked up to confirm it is a PR.
    """

    def __init__(
        self,
        *,
        get_issue: Callable[[str, str, int], dict[str, Any]],
        log: Callable[[str], None],
        warn: Callable[[str], None],
    ) -> None:
        self._get_issue = get_issue
        self._log = log
        self._warn = warn

    def resolve(self, config: PrNumberConfig) -> int:
        if config.explicit_pr_number:
            explicit = _parse_number(config.explicit_pr_number)
            if explicit is not None:
                self._log(f"Using explicit PR number #{explicit}")
                return explicit
            self._warn(f"Ignoring invalid PR number input: {config.explicit_pr_number!r}")

        event_number = _parse_number(config.event_pr_number)
        if event_number is not None:
            self._log(f"Using PR number #{event_number} from {config.event_name or 'pull_request'} event")
            return event_number

        issue_number = _parse_number(config.event_issue_number)
        if issue_number is not None:
            resolved = self._resolve_from_issue(config, issue_number)
            if resolved is not None:
                return resolved

        raise RuntimeError(
            f"Could not determine PR number for event '{config.event_name or 'unknown'}'. "
            "Provide pr_number explicitly or trigger from a pull_request or issue_comment event."
        )

    def _resolve_from_issue(self, config: PrNumberConfig, issue_number: int) -> int | None:
        owner, repo = split_repository(config.repository)
        try:
            issue = self._get_issue(owner, repo, issue_number)
        except (RuntimeError, OSError) as err:
            self._warn(f"Failed to look up issue #{issue_number}: {error_message(err)}")
            return None

        pull_request = issue.get("pull_request")
        if not isinstance(pull_request, dict):
            raise RuntimeError(f"Issue #{issue_number} is not a pull request.")
        number = pr_number_from_url(str(pull_request.get("url") or ""))
        if number is None:
            number = pr_number_from_url(str(pull_request.get("html_url") or ""))
        if number is None:
            raise RuntimeError(f"Issue #{issue_number} has an unreadable pull request URL.")
        self._log(f"Resolved PR number #{number} from issue comment on #{issue_number}")
        return number
