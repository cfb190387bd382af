#!/usr/bin/env python3
"""In-process composition of every stage for a single PR run."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable

from ai_automation.config import CommitConfig, PipelineConfig
from ai_automation.core import substitute_template
from ai_automation.llm import CODEX_IMPLEMENTATION_UNSUPPORTED
from ai_automation.prompt import PreparedPrompt, embed_plan


DependencyMap = dict[str, Callable[..., Any]]


def _dep(deps: DependencyMap, name: str) -> Callable[..., Any]:
    try:
        return deps[name]
    except KeyError as err:
        raise RuntimeError(f"Missing pipeline dependency: {name}") from err


@dataclass(frozen=True)
class PipelineResult:
    pr_number: int
    prepared: PreparedPrompt
    final_prompt: str
    plan: str
    branch_name: str
    has_changes: bool

    def outputs(self) -> dict[str, str]:
        outputs = self.prepared.outputs()
        outputs.update(
            {
                "final_prompt": self.final_prompt,
                "plan": self.plan,
                "branch_name": self.branch_name,
                "has_changes": "true" if self.has_changes else "false",
            }
        )
        return outputs


def run_pipeline(*, config: PipelineConfig, deps: DependencyMap) -> PipelineResult:
    resolve_pr_number = _dep(deps, "resolve_pr_number")
    prepare_prompt = _dep(deps, "prepare_prompt")
    run_llm = _dep(deps, "run_llm")
    create_branch = _dep(deps, "create_branch")
    commit_and_push = _dep(deps, "commit_and_push")
    log = _dep(deps, "log")

    if config.llm.provider == "codex":
        raise RuntimeError(CODEX_IMPLEMENTATION_UNSUPPORTED)

    pr_number = resolve_pr_number(config.pr_number)
    prepared = prepare_prompt(replace(config.prompt, pr_number=str(pr_number)), plan="")

    plan = config.prompt.plan.strip()
    if config.plan_prompt_template.strip():
        log(f"Running planning phase with {config.plan_provider}")
        planning = run_llm(
            replace(
                config.llm,
                provider=config.plan_provider,
                prompt=substitute_template(config.plan_prompt_template, prepared.variables),
                capture_output=True,
                permission_mode="",
            )
        )
        if not planning.success:
            raise RuntimeError(f"Planning run failed: {planning.error}")
        plan = (planning.output or "").strip()
        if not plan:
            raise RuntimeError("Planning run produced no plan text.")

    final_prompt = embed_plan(prepared.prompt, plan)

    branch_name = create_branch(
        replace(
            config.branch,
            pr_number=str(pr_number),
            base_branch=config.branch.base_branch or prepared.base_branch,
        )
    )

    implementation = run_llm(replace(config.llm, prompt=final_prompt, capture_output=False))
    if not implementation.success:
        raise RuntimeError(f"Implementation run failed: {implementation.error}")

    has_changes = commit_and_push(
        CommitConfig(
            branch_name=branch_name,
            pr_number=str(pr_number),
            provider=config.llm.provider,
            repo_root=config.branch.repo_root,
        )
    )
    log(f"Pipeline finished for PR #{pr_number} on {branch_name} (has_changes={has_changes})")
    return PipelineResult(
        pr_number=pr_number,
        prepared=prepared,
        final_prompt=final_prompt,
        plan=plan,
        branch_name=branch_name,
        has_changes=has_changes,
    )
