#!/usr/bin/env python3
"""Stage configuration resolved once from the process environment."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from ai_automation.core import parse_bool, resolve_api_url


DEFAULT_BRANCH_PREFIX = "ai/"
DEFAULT_PLAN_FILE = Path(tempfile.gettempdir()) / "plan.txt"


def _env(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def _get(environ: Mapping[str, str], name: str, default: str = "") -> str:
    return str(environ.get(name, default) or "").strip()


def _repository(environ: Mapping[str, str]) -> str:
    return _get(environ, "REPOSITORY") or _get(environ, "GITHUB_REPOSITORY")


def _repo_root(environ: Mapping[str, str]) -> Path:
    value = _get(environ, "GITHUB_WORKSPACE")
    return Path(value) if value else Path.cwd()


def load_event_payload(path: str) -> dict[str, Any]:
    if not path:
        return {}
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, UnicodeDecodeError) as err:
        raise RuntimeError(f"Invalid JSON in event payload {path}: {err}") from err
    return payload if isinstance(payload, dict) else {}


def _nested_number(payload: Mapping[str, Any], key: str) -> str:
    item = payload.get(key)
    if not isinstance(item, dict):
        return ""
    number = item.get("number")
    return str(number) if number else ""


@dataclass(frozen=True)
class PrNumberConfig:
    explicit_pr_number: str = ""
    event_name: str = ""
    event_pr_number: str = ""
    event_issue_number: str = ""
    repository: str = ""
    token: str = ""
    api_url: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PrNumberConfig":
        env = _env(environ)
        explicit = _get(env, "PR_NUMBER")
        try:
            payload = load_event_payload(_get(env, "GITHUB_EVENT_PATH"))
        except (RuntimeError, OSError):
            # An explicit number never needs the event context.
            if not explicit:
                raise
            payload = {}
        return cls(
            explicit_pr_number=explicit,
            event_name=_get(env, "EVENT_NAME") or _get(env, "GITHUB_EVENT_NAME"),
            event_pr_number=_get(env, "EVENT_PR_NUMBER") or _nested_number(payload, "pull_request"),
            event_issue_number=_get(env, "EVENT_ISSUE_NUMBER") or _nested_number(payload, "issue"),
            repository=_repository(env),
            token=_get(env, "GITHUB_TOKEN"),
            api_url=resolve_api_url(_get(env, "GITHUB_API_URL")),
        )


@dataclass(frozen=True)
class PreparePromptConfig:
    template: str = ""
    pr_number: str = ""
    token: str = ""
    repository: str = ""
    api_url: str = ""
    base_branch: str = ""
    plan: str = ""
    repo_root: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PreparePromptConfig":
        env = _env(environ)
        return cls(
            # Templates keep their surrounding whitespace.
            template=str(env.get("PROMPT_TEMPLATE", "") or ""),
            pr_number=_get(env, "PR_NUMBER"),
            token=_get(env, "GITHUB_TOKEN"),
            repository=_repository(env),
            api_url=resolve_api_url(_get(env, "GITHUB_API_URL")),
            base_branch=_get(env, "BASE_BRANCH"),
            plan=str(env.get("PLAN", "") or ""),
            repo_root=_repo_root(env),
        )


@dataclass(frozen=True)
class BranchConfig:
    base_branch: str = ""
    pr_number: str = ""
    prefix: str = DEFAULT_BRANCH_PREFIX
    repo_root: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BranchConfig":
        env = _env(environ)
        return cls(
            base_branch=_get(env, "BASE_BRANCH"),
            pr_number=_get(env, "PR_NUMBER"),
            prefix=_get(env, "BRANCH_PREFIX") or DEFAULT_BRANCH_PREFIX,
            repo_root=_repo_root(env),
        )


@dataclass(frozen=True)
class RunLLMConfig:
    provider: str = ""
    prompt: str = ""
    capture_output: bool = False
    permission_mode: str = ""
    model: str = ""
    anthropic_api_key: str = ""
    claude_code_oauth_token: str = ""
    use_bedrock: bool = False
    use_vertex: bool = False
    claude_args: str = ""
    openai_api_key: str = ""
    codex_args: str = ""
    codex_sandbox: str = ""
    plan_file: Path = DEFAULT_PLAN_FILE
    repo_root: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RunLLMConfig":
        env = _env(environ)
        return cls(
            provider=_get(env, "PROVIDER").lower(),
            prompt=str(env.get("PROMPT", "") or ""),
            capture_output=parse_bool(env.get("CAPTURE_OUTPUT")),
            permission_mode=_get(env, "PERMISSION_MODE"),
            model=_get(env, "MODEL"),
            anthropic_api_key=_get(env, "ANTHROPIC_API_KEY"),
            claude_code_oauth_token=_get(env, "CLAUDE_CODE_OAUTH_TOKEN"),
            use_bedrock=parse_bool(env.get("USE_BEDROCK")),
            use_vertex=parse_bool(env.get("USE_VERTEX")),
            claude_args=_get(env, "CLAUDE_ARGS"),
            openai_api_key=_get(env, "OPENAI_API_KEY"),
            codex_args=_get(env, "CODEX_ARGS"),
            codex_sandbox=_get(env, "CODEX_SANDBOX"),
            plan_file=Path(_get(env, "PLAN_FILE")) if _get(env, "PLAN_FILE") else DEFAULT_PLAN_FILE,
            repo_root=_repo_root(env),
        )


@dataclass(frozen=True)
class PlanConfig:
    plan_file: Path = DEFAULT_PLAN_FILE
    execution_file: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PlanConfig":
        env = _env(environ)
        execution_file = _get(env, "EXECUTION_FILE")
        return cls(
            plan_file=Path(_get(env, "PLAN_FILE")) if _get(env, "PLAN_FILE") else DEFAULT_PLAN_FILE,
            execution_file=Path(execution_file) if execution_file else None,
        )


@dataclass(frozen=True)
class CommitConfig:
    branch_name: str = ""
    pr_number: str = ""
    provider: str = ""
    repo_root: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CommitConfig":
        env = _env(environ)
        return cls(
            branch_name=_get(env, "BRANCH_NAME"),
            pr_number=_get(env, "PR_NUMBER"),
            provider=_get(env, "PROVIDER").lower(),
            repo_root=_repo_root(env),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """Everything a single in-process run needs, read from one environment."""

    pr_number: PrNumberConfig
    prompt: PreparePromptConfig
    branch: BranchConfig
    llm: RunLLMConfig
    plan_prompt_template: str = ""
    plan_provider: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "PipelineConfig":
        env = _env(environ)
        llm = RunLLMConfig.from_env(env)
        return cls(
            pr_number=PrNumberConfig.from_env(env),
            prompt=PreparePromptConfig.from_env(env),
            branch=BranchConfig.from_env(env),
            llm=llm,
            plan_prompt_template=str(env.get("PLAN_PROMPT_TEMPLATE", "") or ""),
            plan_provider=_get(env, "PLAN_PROVIDER").lower() or llm.provider,
        )
