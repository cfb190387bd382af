#!/usr/bin/env python3
"""Plan extraction from the planning run's artifacts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from ai_automation.config import PlanConfig


def _load_execution_entries(raw: str) -> list[Any]:
    text = raw.strip()
    if not text:
        return []
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        entries: list[Any] = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return entries
    if isinstance(payload, list):
        return payload
    return [payload]


def extract_assistant_text(raw: str) -> str:
    """Return the text of the last assistant message in an execution log.

    Accepts a JSON array or JSON lines of entries shaped like
    ``{"type": "assistant", "message": {"content": [{"type": "text", "text": ...}]}}``.
    """
    last = ""
    for entry in _load_execution_entries(raw):
        if not isinstance(entry, dict) or entry.get("type") != "assistant":
            continue
        message = entry.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str):
            segments = [content]
        elif isinstance(content, list):
            segments = [
                str(item.get("text") or "")
                for item in content
                if isinstance(item, dict) and item.get("type") == "text"
            ]
        else:
            continue
        text = "\n".join(segment for segment in segments if segment.strip()).strip()
        if text:
            last = text
    return last


class PlanExtractor:
    def __init__(
        self,
        *,
        read_text: Callable[[Path], str],
        log: Callable[[str], None],
        warn: Callable[[str], None],
    ) -> None:
        self._read_text = read_text
        self._log = log
        self._warn = warn

    def _read_plan_file(self, path: Path) -> str:
        if not path.exists():
            return ""
        return self._read_text(path).strip()

    def _read_execution_file(self, path: Path) -> str:
        if not path.exists():
            self._warn(f"Execution log not found: {path}")
            return ""
        return extract_assistant_text(self._read_text(path))

    def extract(self, config: PlanConfig) -> str:
        plan = self._read_plan_file(config.plan_file)
        if plan:
            self._log(f"Loaded plan from {config.plan_file} ({len(plan)} chars)")
            return plan

        if config.execution_file is not None:
            plan = self._read_execution_file(config.execution_file)
            if plan:
                self._log(f"Loaded plan from execution log {config.execution_file} ({len(plan)} chars)")
                return plan

        raise RuntimeError(f"Plan file is missing or empty: {config.plan_file}")
