"""Tests for PR number resolution precedence and issue-comment lookups."""
import json

import pytest

from ai_automation.config import PrNumberConfig
from ai_automation.pr_number import PrNumberResolver, pr_number_from_url


class FakeIssues:
    def __init__(self, issue=None, error=None):
        self.issue = issue
        self.error = error
        self.calls = []

    def __call__(self, owner, repo, number):
        self.calls.append((owner, repo, number))
        if self.error is not None:
            raise self.error
        return self.issue


def _resolver(issues, log, warn):
    return PrNumberResolver(get_issue=issues, log=log, warn=warn)


def test_explicit_number_wins_without_network(log, warn):
    issues = FakeIssues(error=AssertionError("must not be called"))
    config = PrNumberConfig(
        explicit_pr_number="42",
        event_name="issue_comment",
        event_pr_number="7",
        event_issue_number="9",
        repository="octo/widgets",
    )
    assert _resolver(issues, log, warn).resolve(config) == 42
    assert issues.calls == []


def test_pull_request_event_number(log, warn):
    config = PrNumberConfig(event_name="pull_request", event_pr_number="15", repository="octo/widgets")
    assert _resolver(FakeIssues(), log, warn).resolve(config) == 15


def test_invalid_explicit_number_falls_through(log, warn):
    config = PrNumberConfig(explicit_pr_number="abc", event_pr_number="15")
    assert _resolver(FakeIssues(), log, warn).resolve(config) == 15
    assert "abc" in warn.joined()


def test_issue_comment_on_pull_request(log, warn):
    issues = FakeIssues(issue={"number": 9, "pull_request": {"url": "https://api.github.com/repos/octo/widgets/pulls/9"}})
    config = PrNumberConfig(event_name="issue_comment", event_issue_number="9", repository="octo/widgets")
    assert _resolver(issues, log, warn).resolve(config) == 9
    assert issues.calls == [("octo", "widgets", 9)]


def test_issue_comment_on_plain_issue_fails(log, warn):
    issues = FakeIssues(issue={"number": 12, "title": "bug"})
    config = PrNumberConfig(event_name="issue_comment", event_issue_number="12", repository="octo/widgets")
    with pytest.raises(RuntimeError, match=r"Issue #12 is not a pull request"):
        _resolver(issues, log, warn).resolve(config)


def test_issue_lookup_failure_is_a_warning_then_final_failure(log, warn):
    issues = FakeIssues(error=RuntimeError("connection reset"))
    config = PrNumberConfig(event_name="issue_comment", event_issue_number="12", repository="octo/widgets")
    with pytest.raises(RuntimeError, match="issue_comment"):
        _resolver(issues, log, warn).resolve(config)
    assert "connection reset" in warn.joined()


def test_no_context_names_event_type(log, warn):
    config = PrNumberConfig(event_name="workflow_dispatch")
    with pytest.raises(RuntimeError, match="workflow_dispatch"):
        _resolver(FakeIssues(), log, warn).resolve(config)


def test_pr_number_from_url():
    assert pr_number_from_url("https://api.github.com/repos/o/r/pulls/31") == 31
    assert pr_number_from_url("https://api.github.com/repos/o/r/pulls/31/") == 31
    assert pr_number_from_url("") is None


def test_config_reads_event_payload(tmp_path):
    event_path = tmp_path / "event.json"
    event_path.write_text(json.dumps({"issue": {"number": 5, "pull_request": {}}}), encoding="utf-8")
    config = PrNumberConfig.from_env(
        {
            "GITHUB_EVENT_PATH": str(event_path),
            "GITHUB_EVENT_NAME": "issue_comment",
            "GITHUB_REPOSITORY": "octo/widgets",
        }
    )
    assert config.event_issue_number == "5"
    assert config.event_pr_number == ""
    assert config.event_name == "issue_comment"
    assert config.repository == "octo/widgets"


def test_explicit_number_ignores_broken_event_payload(tmp_path):
    event_path = tmp_path / "event.json"
    event_path.write_text("{not json", encoding="utf-8")
    config = PrNumberConfig.from_env({"PR_NUMBER": "42", "GITHUB_EVENT_PATH": str(event_path)})
    assert config.explicit_pr_number == "42"
    assert config.event_pr_number == ""


def test_broken_event_payload_fails_without_explicit_number(tmp_path):
    event_path = tmp_path / "event.json"
    event_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RuntimeError, match="Invalid JSON in event payload"):
        PrNumberConfig.from_env({"GITHUB_EVENT_PATH": str(event_path)})
