#!/usr/bin/env python3
"""Command-line entry points for each ai-automation stage."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any, Callable, Mapping

from ai_automation.actions import report_failure, write_outputs
from ai_automation.branch import BranchService
from ai_automation.commit import CommitService
from ai_automation.config import (
    BranchConfig,
    CommitConfig,
    PipelineConfig,
    PlanConfig,
    PreparePromptConfig,
    PrNumberConfig,
    RunLLMConfig,
)
from ai_automation.core import error_message, git, log, log_error, read_text, run_process, warn, write_text
from ai_automation.github_api import GitHubClient
from ai_automation.llm import LLMRunner
from ai_automation.pipeline import run_pipeline
from ai_automation.plan import PlanExtractor
from ai_automation.pr_data import PullRequestDataService
from ai_automation.pr_number import PrNumberResolver
from ai_automation.prompt import PromptService


def _client_call(token: str, api_url: str, method: str) -> Callable[..., Any]:
    def call(*args: Any, **kwargs: Any) -> Any:
        client = GitHubClient(token, api_url=api_url)
        return getattr(client, method)(*args, **kwargs)

    return call


def build_resolver(config: PrNumberConfig) -> PrNumberResolver:
    return PrNumberResolver(
        get_issue=_client_call(config.token, config.api_url, "get_issue"),
        log=log,
        warn=warn,
    )


def build_prompt_service(config: PreparePromptConfig) -> PromptService:
    data_service = PullRequestDataService(
        graphql=_client_call(config.token, config.api_url, "graphql"),
        git=git,
        log=log,
        warn=warn,
    )
    return PromptService(
        fetch_snapshot=data_service.fetch_snapshot,
        get_default_branch=_client_call(config.token, config.api_url, "get_default_branch"),
        log=log,
    )


def build_llm_runner(environ: Mapping[str, str]) -> LLMRunner:
    return LLMRunner(run_process=run_process, write_text=write_text, log=log, base_env=environ)


def cmd_extract_pr_number(environ: Mapping[str, str]) -> dict[str, str]:
    config = PrNumberConfig.from_env(environ)
    number = build_resolver(config).resolve(config)
    return {"pr_number": str(number)}


def cmd_prepare_prompt(environ: Mapping[str, str]) -> dict[str, str]:
    config = PreparePromptConfig.from_env(environ)
    prepared = build_prompt_service(config).prepare(config)
    return prepared.outputs()


def cmd_create_branch(environ: Mapping[str, str]) -> dict[str, str]:
    config = BranchConfig.from_env(environ)
    branch_name = BranchService(git=git, log=log, warn=warn).create_branch(config)
    return {"branch_name": branch_name}


def cmd_run_llm(environ: Mapping[str, str]) -> dict[str, str]:
    config = RunLLMConfig.from_env(environ)
    if not config.prompt.strip():
        raise RuntimeError("PROMPT is required.")
    result = build_llm_runner(environ).run(config)
    if not result.success:
        raise RuntimeError(result.error or f"{config.provider} run failed.")
    output = result.output or ""
    if config.capture_output:
        write_text(config.plan_file, output + "\n")
        log(f"Wrote captured output to {config.plan_file}")
    return {"output": output}


def cmd_extract_plan(environ: Mapping[str, str]) -> dict[str, str]:
    config = PlanConfig.from_env(environ)
    plan = PlanExtractor(read_text=read_text, log=log, warn=warn).extract(config)
    return {"plan": plan}


def cmd_commit_and_push(environ: Mapping[str, str]) -> dict[str, str]:
    config = CommitConfig.from_env(environ)
    has_changes = CommitService(git=git, log=log, warn=warn).commit_and_push(config)
    return {"has_changes": "true" if has_changes else "false", "branch_name": config.branch_name}


def cmd_run(environ: Mapping[str, str]) -> dict[str, str]:
    config = PipelineConfig.from_env(environ)
    resolver = build_resolver(config.pr_number)
    runner = build_llm_runner(environ)
    result = run_pipeline(
        config=config,
        deps={
            "resolve_pr_number": resolver.resolve,
            "prepare_prompt": build_prompt_service(config.prompt).prepare,
            "run_llm": runner.run,
            "create_branch": BranchService(git=git, log=log, warn=warn).create_branch,
            "commit_and_push": CommitService(git=git, log=log, warn=warn).commit_and_push,
            "log": log,
        },
    )
    return result.outputs()


COMMANDS: dict[str, Callable[[Mapping[str, str]], dict[str, str]]] = {
    "extract-pr-number": cmd_extract_pr_number,
    "prepare-prompt": cmd_prepare_prompt,
    "create-branch": cmd_create_branch,
    "run-llm": cmd_run_llm,
    "extract-plan": cmd_extract_plan,
    "commit-and-push": cmd_commit_and_push,
    "run": cmd_run,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-automation",
        description="PR-driven AI code generation pipeline. Stages read their settings from the environment.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("extract-pr-number", help="Resolve the PR number from input or event context")
    subparsers.add_parser("prepare-prompt", help="Fetch PR data and render the prompt template")
    subparsers.add_parser("create-branch", help="Create the work branch for the run")
    subparsers.add_parser("run-llm", help="Run the Claude or Codex CLI")
    subparsers.add_parser("extract-plan", help="Read the plan produced by a planning run")
    subparsers.add_parser("commit-and-push", help="Commit working tree changes and push the work branch")
    subparsers.add_parser("run", help="Run every stage in one process")
    return parser


def main(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    env = os.environ if environ is None else environ
    try:
        outputs = COMMANDS[args.command](env)
        write_outputs(outputs, env.get("GITHUB_OUTPUT", ""))
    except Exception as err:
        message = error_message(err)
        log_error(message)
        report_failure(message)
        return 1
    return 0


def main_entry() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    main_entry()
