#!/usr/bin/env python3
"""Workflow output and failure reporting for ai-automation stages."""

from __future__ import annotations

import os
import uuid
from typing import Mapping


def _heredoc_delimiter(value: str) -> str:
    while True:
        delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
        if delimiter not in value:
            return delimiter


def format_output(key: str, value: str) -> str:
    text = str(value)
    if "\n" not in text and "\r" not in text:
        return f"{key}={text}\n"
    delimiter = _heredoc_delimiter(text)
    return f"{key}<<{delimiter}\n{text}\n{delimiter}\n"


def write_outputs(outputs: Mapping[str, str], github_output: str | None = None) -> None:
    """Append outputs to the workflow output file, or print them when unset."""
    target = github_output if github_output is not None else os.getenv("GITHUB_OUTPUT", "")
    if not target:
        for key, value in outputs.items():
            print(f"{key}={value}", flush=True)
        return
    path = os.path.abspath(target)
    with open(path, "a", encoding="utf-8") as handle:
        for key, value in outputs.items():
            handle.write(format_output(key, str(value)))


def escape_command_data(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def report_failure(message: str) -> None:
    try:
        print(f"::error::{escape_command_data(message)}", flush=True)
    except (OSError, ValueError):
        pass
