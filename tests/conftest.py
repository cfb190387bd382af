import subprocess
from typing import Callable

import pytest


class FakeGit:
    """Records git invocations and answers them from a rule table.

    ``rules`` maps a command prefix (tuple of args) to ``(returncode, stdout,
    stderr)``; unmatched commands succeed with empty output.
    """

    def __init__(self, rules=None):
        self.rules = dict(rules or {})
        self.calls = []

    def __call__(self, args, *, cwd=None, check=True):
        self.calls.append(list(args))
        returncode, stdout, stderr = 0, "", ""
        for prefix, result in self.rules.items():
            if tuple(args[: len(prefix)]) == tuple(prefix):
                returncode, stdout, stderr = result
                break
        proc = subprocess.CompletedProcess(["git", *args], returncode, stdout, stderr)
        if check and returncode != 0:
            raise RuntimeError(f"Command failed: git {' '.join(args)}\nexit={returncode}\nstderr:\n{stderr}")
        return proc

    def commands(self):
        return [call[0] for call in self.calls]


class Recorder:
    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)

    def joined(self):
        return "\n".join(self.messages)


@pytest.fixture
def fake_git() -> Callable[..., FakeGit]:
    return FakeGit


@pytest.fixture
def log():
    return Recorder()


@pytest.fixture
def warn():
    return Recorder()
