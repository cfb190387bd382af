#!/usr/bin/env python3
"""Claude / Codex CLI invocation for planning and implementation runs."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Union

from ai_automation.config import RunLLMConfig
from ai_automation.core import error_message, format_command


CLAUDE_INSTALL_HINT = "npm install -g @anthropic-ai/claude-code"
CODEX_INSTALL_HINT = "npm install -g @openai/codex"
CLAUDE_TOOLS = "default"
CODEX_PROMPT_FILE = Path(tempfile.gettempdir()) / "codex-prompt.txt"
CODEX_IMPLEMENTATION_UNSUPPORTED = (
    "Codex implementation mode is not supported here; run it through the Codex GitHub action instead."
)


@dataclass(frozen=True)
class StructuredArgs:
    """Extra arguments given as a JSON array."""

    values: tuple[str, ...]

    @property
    def tokens(self) -> list[str]:
        return list(self.values)


@dataclass(frozen=True)
class RawArgs:
    """Extra arguments given as plain whitespace-separated text."""

    text: str

    @property
    def tokens(self) -> list[str]:
        return self.text.split()


ExtraArgs = Union[StructuredArgs, RawArgs]


def parse_extra_args(raw: str | None) -> ExtraArgs:
    text = str(raw or "").strip()
    if not text:
        return RawArgs("")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return RawArgs(text)
    if isinstance(parsed, list):
        return StructuredArgs(tuple(str(item) for item in parsed))
    return RawArgs(text)


@dataclass(frozen=True)
class LLMResult:
    success: bool
    output: str | None = None
    error: str | None = None


class LLMRunner:
    """Dispatches one prompt to the configured provider CLI.

    Never raises: every failure comes back as ``LLMResult(success=False)``.
    """

    def __init__(
        self,
        *,
        run_process: Callable[..., subprocess.CompletedProcess[str]],
        which: Callable[[str], str | None] = shutil.which,
        write_text: Callable[[Path, str], None],
        log: Callable[[str], None],
        base_env: Mapping[str, str] | None = None,
        codex_prompt_file: Path = CODEX_PROMPT_FILE,
    ) -> None:
        self._run_process = run_process
        self._which = which
        self._write_text = write_text
        self._log = log
        self._base_env = base_env
        self._codex_prompt_file = codex_prompt_file

    def run(self, config: RunLLMConfig) -> LLMResult:
        try:
            if config.provider == "claude":
                return self._run_claude(config)
            if config.provider == "codex":
                return self._run_codex(config)
        except Exception as err:
            return LLMResult(success=False, error=error_message(err))
        return LLMResult(success=False, error=f"Unknown provider: {config.provider or '(empty)'}")

    def _env(self) -> dict[str, str]:
        return dict(os.environ if self._base_env is None else self._base_env)

    def build_claude_args(self, config: RunLLMConfig) -> list[str]:
        args = ["claude", "-p", config.prompt]
        if config.model:
            args.extend(["--model", config.model])
        if config.permission_mode:
            args.extend(["--permission-mode", config.permission_mode])
        args.extend(["--tools", CLAUDE_TOOLS])
        args.append("--no-session-persistence")
        args.extend(parse_extra_args(config.claude_args).tokens)
        return args

    def build_claude_env(self, config: RunLLMConfig) -> dict[str, str]:
        env = self._env()
        if config.anthropic_api_key:
            env["ANTHROPIC_API_KEY"] = config.anthropic_api_key
        if config.claude_code_oauth_token:
            env["CLAUDE_CODE_OAUTH_TOKEN"] = config.claude_code_oauth_token
        if config.use_bedrock:
            env["CLAUDE_CODE_USE_BEDROCK"] = "1"
        if config.use_vertex:
            env["CLAUDE_CODE_USE_VERTEX"] = "1"
        return env

    def _run_claude(self, config: RunLLMConfig) -> LLMResult:
        if not self._which("claude"):
            raise RuntimeError(f"Claude Code CLI not found on PATH. Install it with: {CLAUDE_INSTALL_HINT}")
        if not (config.anthropic_api_key or config.claude_code_oauth_token):
            raise RuntimeError("ANTHROPIC_API_KEY or CLAUDE_CODE_OAUTH_TOKEN is required for the claude provider.")

        args = self.build_claude_args(config)
        env = self.build_claude_env(config)
        mode = "planning" if config.capture_output else "implementation"
        self._log(f"Running Claude in {mode} mode")
        if config.capture_output:
            proc = self._run_process(args, cwd=config.repo_root, env=env, check=True)
            return LLMResult(success=True, output=(proc.stdout or "").strip())
        self._run_process(args, cwd=config.repo_root, env=env, check=True, capture=False)
        return LLMResult(success=True)

    def build_codex_args(self, config: RunLLMConfig) -> list[str]:
        args = ["codex", "exec"]
        if config.codex_sandbox:
            args.extend(["--sandbox", config.codex_sandbox])
        args.extend(parse_extra_args(config.codex_args).tokens)
        args.append(str(self._codex_prompt_file))
        return args

    def _run_codex(self, config: RunLLMConfig) -> LLMResult:
        if not config.capture_output:
            raise RuntimeError(CODEX_IMPLEMENTATION_UNSUPPORTED)
        if not config.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is required for the codex provider.")
        if not self._which("codex"):
            raise RuntimeError(f"Codex CLI not found on PATH. Install it with: {CODEX_INSTALL_HINT}")

        self._write_text(self._codex_prompt_file, config.prompt)
        args = self.build_codex_args(config)
        env = self._env()
        env["OPENAI_API_KEY"] = config.openai_api_key
        self._log(f"Running Codex: {format_command(args)}")
        proc = self._run_process(args, cwd=config.repo_root, env=env, check=True)
        return LLMResult(success=True, output=(proc.stdout or "").strip())
