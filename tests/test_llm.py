"""Tests for provider dispatch, argument assembly and failure results."""
import subprocess
from pathlib import Path

import pytest

from ai_automation.config import RunLLMConfig
from ai_automation.llm import (
    CLAUDE_TOOLS,
    LLMRunner,
    RawArgs,
    StructuredArgs,
    parse_extra_args,
)


class FakeProcess:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls = []

    def __call__(self, args, *, cwd=None, check=True, env=None, capture=True):
        self.calls.append({"args": list(args), "env": dict(env or {}), "capture": capture})
        if check and self.returncode != 0:
            raise RuntimeError(f"Command failed: {args[0]}\nexit={self.returncode}\nstderr:\n{self.stderr}")
        return subprocess.CompletedProcess(args, self.returncode, self.stdout if capture else None, self.stderr)


class FileSink:
    def __init__(self):
        self.files = {}

    def __call__(self, path, content):
        self.files[Path(path)] = content


def _runner(process, log, *, installed=("claude", "codex"), sink=None):
    return LLMRunner(
        run_process=process,
        which=lambda name: f"/usr/bin/{name}" if name in installed else None,
        write_text=sink or FileSink(),
        log=log,
        base_env={"PATH": "/usr/bin"},
        codex_prompt_file=Path("/tmp/test-codex-prompt.txt"),
    )


class TestParseExtraArgs:
    def test_json_array(self):
        parsed = parse_extra_args('["--max-turns", "5", "--verbose"]')
        assert isinstance(parsed, StructuredArgs)
        assert parsed.tokens == ["--max-turns", "5", "--verbose"]

    def test_whitespace_fallback(self):
        parsed = parse_extra_args("--max-turns 5   --verbose")
        assert isinstance(parsed, RawArgs)
        assert parsed.tokens == ["--max-turns", "5", "--verbose"]

    def test_non_array_json_is_raw(self):
        assert isinstance(parse_extra_args('"--verbose"'), RawArgs)

    def test_empty(self):
        assert parse_extra_args("").tokens == []
        assert parse_extra_args(None).tokens == []


class TestClaude:
    def test_capture_mode_returns_trimmed_output(self, log):
        process = FakeProcess(stdout="  the plan \n")
        config = RunLLMConfig(provider="claude", prompt="plan it", capture_output=True, anthropic_api_key="sk-test")
        result = _runner(process, log).run(config)
        assert result.success and result.output == "the plan"
        assert process.calls[0]["capture"] is True
        assert "--allowedTools" not in process.calls[0]["args"]
        assert process.calls[0]["args"][-3:-1] == ["--tools", "default"]

    def test_argument_vector(self, log):
        process = FakeProcess()
        config = RunLLMConfig(
            provider="claude",
            prompt="do it",
            model="claude-sonnet",
            permission_mode="acceptEdits",
            claude_args='["--max-turns", "3"]',
            claude_code_oauth_token="oauth",
        )
        _runner(process, log).run(config)
        assert process.calls[0]["args"] == [
            "claude",
            "-p",
            "do it",
            "--model",
            "claude-sonnet",
            "--permission-mode",
            "acceptEdits",
            "--tools",
            CLAUDE_TOOLS,
            "--no-session-persistence",
            "--max-turns",
            "3",
        ]

    def test_implementation_mode_inherits_stdio(self, log):
        process = FakeProcess()
        result = _runner(process, log).run(RunLLMConfig(provider="claude", prompt="x", anthropic_api_key="k"))
        assert result.success and result.output is None
        assert process.calls[0]["capture"] is False

    def test_cloud_backend_toggles_only_when_requested(self, log):
        process = FakeProcess()
        runner = _runner(process, log)
        runner.run(RunLLMConfig(provider="claude", prompt="x", anthropic_api_key="k"))
        runner.run(RunLLMConfig(provider="claude", prompt="x", anthropic_api_key="k", use_bedrock=True, use_vertex=True))
        plain_env, cloud_env = process.calls[0]["env"], process.calls[1]["env"]
        assert "CLAUDE_CODE_USE_BEDROCK" not in plain_env
        assert "CLAUDE_CODE_USE_VERTEX" not in plain_env
        assert cloud_env["CLAUDE_CODE_USE_BEDROCK"] == "1"
        assert cloud_env["CLAUDE_CODE_USE_VERTEX"] == "1"
        assert cloud_env["ANTHROPIC_API_KEY"] == "k"

    def test_missing_cli_has_install_hint(self, log):
        result = _runner(FakeProcess(), log, installed=()).run(
            RunLLMConfig(provider="claude", prompt="x", anthropic_api_key="k")
        )
        assert not result.success
        assert "npm install -g @anthropic-ai/claude-code" in result.error

    def test_missing_credentials(self, log):
        result = _runner(FakeProcess(), log).run(RunLLMConfig(provider="claude", prompt="x"))
        assert not result.success
        assert "ANTHROPIC_API_KEY" in result.error

    def test_process_failure_becomes_result(self, log):
        process = FakeProcess(returncode=2, stderr="rate limited")
        result = _runner(process, log).run(
            RunLLMConfig(provider="claude", prompt="x", anthropic_api_key="k", capture_output=True)
        )
        assert not result.success
        assert "rate limited" in result.error


class TestCodex:
    def test_implementation_mode_is_rejected(self, log):
        process = FakeProcess()
        result = _runner(process, log).run(RunLLMConfig(provider="codex", prompt="x", openai_api_key="k"))
        assert not result.success
        assert "Codex implementation mode" in result.error
        assert process.calls == []

    def test_capture_mode_writes_prompt_file(self, log):
        process = FakeProcess(stdout="codex plan\n")
        sink = FileSink()
        config = RunLLMConfig(
            provider="codex",
            prompt="plan this",
            capture_output=True,
            openai_api_key="sk-openai",
            codex_args="--model o4-mini",
            codex_sandbox="read-only",
        )
        result = _runner(process, log, sink=sink).run(config)
        assert result.success and result.output == "codex plan"
        assert sink.files[Path("/tmp/test-codex-prompt.txt")] == "plan this"
        call = process.calls[0]
        assert call["args"] == [
            "codex",
            "exec",
            "--sandbox",
            "read-only",
            "--model",
            "o4-mini",
            "/tmp/test-codex-prompt.txt",
        ]
        assert call["env"]["OPENAI_API_KEY"] == "sk-openai"

    def test_requires_credential(self, log):
        result = _runner(FakeProcess(), log).run(RunLLMConfig(provider="codex", prompt="x", capture_output=True))
        assert not result.success
        assert "OPENAI_API_KEY" in result.error

    def test_missing_cli(self, log):
        result = _runner(FakeProcess(), log, installed=("claude",)).run(
            RunLLMConfig(provider="codex", prompt="x", capture_output=True, openai_api_key="k")
        )
        assert not result.success
        assert "@openai/codex" in result.error


@pytest.mark.parametrize("provider", ["gemini", ""])
def test_unknown_provider_is_a_failure_result(log, provider):
    result = _runner(FakeProcess(), log).run(RunLLMConfig(provider=provider, prompt="x"))
    assert result.success is False
    assert "Unknown provider" in result.error


def test_config_from_env():
    config = RunLLMConfig.from_env(
        {
            "PROVIDER": "Claude",
            "PROMPT": "hello",
            "CAPTURE_OUTPUT": "true",
            "PERMISSION_MODE": "plan",
            "CODEX_ARGS": "--x",
            "PLAN_FILE": "/tmp/custom-plan.txt",
        }
    )
    assert config.provider == "claude"
    assert config.capture_output is True
    assert config.permission_mode == "plan"
    assert config.plan_file == Path("/tmp/custom-plan.txt")
