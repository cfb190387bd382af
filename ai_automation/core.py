#!/usr/bin/env python3
"""Core utility helpers shared by ai-automation stages."""

from __future__ import annotations

import json
import re
import shlex
import subprocess
import sys
from pathlib import Path
from typing import Any, Mapping


LOG_PREFIX = "[ai-automation]"
DEFAULT_API_URL = "https://api.github.com"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def log(message: str) -> None:
    print(f"{LOG_PREFIX} {message}", flush=True)


def warn(message: str) -> None:
    log(f"WARNING: {message}")


def log_error(message: str) -> None:
    print(f"{LOG_PREFIX} ERROR: {message}", file=sys.stderr, flush=True)


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def parse_bool(value: Any) -> bool:
    return str(value or "").strip().lower() in _TRUE_VALUES


def parse_positive_int(value: Any, *, name: str) -> int:
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError) as err:
        raise RuntimeError(f"{name} must be a positive integer, got: {value!r}") from err
    if parsed <= 0:
        raise RuntimeError(f"{name} must be a positive integer, got: {value!r}")
    return parsed


def require_value(value: str, *, name: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise RuntimeError(f"{name} is required.")
    return text


def substitute_template(template: str, variables: Mapping[str, str]) -> str:
    """Replace ``{{NAME}}`` placeholders with values from ``variables``.

    Values are inserted literally: backslashes or ``$1``-style sequences in a
    value are never interpreted, and inserted text is not scanned again.
    Placeholders whose name is not in ``variables`` are kept as-is.
    """

    if not variables:
        return template
    placeholders = {"{{" + name + "}}": str(value) for name, value in variables.items()}
    pattern = re.compile(
        "|".join(re.escape(item) for item in sorted(placeholders, key=len, reverse=True))
    )
    return pattern.sub(lambda match: placeholders[match.group(0)], template)


def normalize_repository(value: str) -> str:
    text = str(value or "").strip()
    if not text:
        return ""
    text = re.sub(r"^https?://[^/]+/", "", text)
    text = re.sub(r"^git@[^:]+:", "", text)
    text = text.removesuffix(".git").strip("/")
    return text


def split_repository(value: str) -> tuple[str, str]:
    normalized = normalize_repository(value)
    parts = normalized.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise RuntimeError(f"Invalid repository (expected owner/repo): {value!r}")
    return parts[0], parts[1]


def resolve_api_url(value: str | None) -> str:
    text = str(value or "").strip().rstrip("/")
    return text or DEFAULT_API_URL


def resolve_graphql_url(api_url: str) -> str:
    base = resolve_api_url(api_url)
    # GitHub Enterprise serves REST under /api/v3 and GraphQL under /api/graphql.
    if base.endswith("/api/v3"):
        return base[: -len("/v3")] + "/graphql"
    return f"{base}/graphql"


def error_message(err: Any) -> str:
    if isinstance(err, BaseException):
        text = str(err).strip()
        return text or err.__class__.__name__
    if isinstance(err, str):
        return err.strip() or "Unknown error"
    if err is None:
        return "Unknown error"
    try:
        return json.dumps(err, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return repr(err)


def format_command(args: list[str]) -> str:
    return " ".join(shlex.quote(arg) for arg in args)


def run_process(
    args: list[str],
    *,
    cwd: Path | None = None,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    capture: bool = True,
) -> subprocess.CompletedProcess[str]:
    proc = subprocess.run(
        args,
        cwd=cwd,
        text=True,
        encoding="utf-8",
        errors="replace",
        capture_output=capture,
        env=dict(env) if env is not None else None,
        check=False,
    )
    if check and proc.returncode != 0:
        raise RuntimeError(
            f"Command failed: {format_command(args)}\n"
            f"exit={proc.returncode}\n"
            f"stdout:\n{proc.stdout or ''}\n"
            f"stderr:\n{proc.stderr or ''}"
        )
    return proc


def git(args: list[str], *, cwd: Path | None = None, check: bool = True) -> subprocess.CompletedProcess[str]:
    return run_process(["git", *args], cwd=cwd, check=check)
