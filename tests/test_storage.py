"""Tests for scan job persistence."""

import pytest

from conftest import make_finding
from reposcan.ai_agent.reviewer import ReviewStats
from reposcan.errors import InvalidTransitionError, JobNotFoundError
from reposcan.jobs import ScanJob, ScanStatus


@pytest.fixture
def job(store):
    return store.create(ScanJob.new("https://github.com/octocat/hello-world"))


class TestScanStatus:

    @pytest.mark.parametrize("current,target", [
        (ScanStatus.PENDING, ScanStatus.CLONING),
        (ScanStatus.CLONING, ScanStatus.SCANNING),
        (ScanStatus.SCANNING, ScanStatus.REVIEWING),
        (ScanStatus.SCANNING, ScanStatus.COMPLETED),
        (ScanStatus.REVIEWING, ScanStatus.COMPLETED),
        (ScanStatus.PENDING, ScanStatus.FAILED),
        (ScanStatus.REVIEWING, ScanStatus.FAILED),
    ])
    def test_allowed(self, current, target):
        assert current.can_transition_to(target)

    @pytest.mark.parametrize("current,target", [
        (ScanStatus.SCANNING, ScanStatus.CLONING),
        (ScanStatus.CLONING, ScanStatus.CLONING),
        (ScanStatus.COMPLETED, ScanStatus.FAILED),
        (ScanStatus.FAILED, ScanStatus.PENDING),
        (ScanStatus.FAILED, ScanStatus.FAILED),
    ])
    def test_rejected(self, current, target):
        assert not current.can_transition_to(target)

    def test_terminal(self):
        assert ScanStatus.COMPLETED.is_terminal
        assert ScanStatus.FAILED.is_terminal
        assert not ScanStatus.REVIEWING.is_terminal


class TestScanJobStore:

    def test_create_and_get(self, store, job):
        loaded = store.get(job.id)
        assert loaded.id == job.id
        assert loaded.repo_url == "https://github.com/octocat/hello-world"
        assert loaded.status is ScanStatus.PENDING
        assert loaded.findings == []
        assert loaded.error is None
        assert loaded.created_at.tzinfo is not None
        assert loaded.expires_at > loaded.created_at
        assert loaded.completed_at is None

    def test_get_unknown(self, store):
        with pytest.raises(JobNotFoundError):
            store.get("does-not-exist")

    def test_transitions_and_languages(self, store, job):
        store.transition(job.id, ScanStatus.CLONING)
        store.transition(job.id, ScanStatus.SCANNING)
        store.update_languages(job.id, ["python", "go"])
        loaded = store.get(job.id)
        assert loaded.status is ScanStatus.SCANNING
        assert loaded.languages == ["python", "go"]

    def test_backward_transition_rejected(self, store, job):
        store.transition(job.id, ScanStatus.SCANNING)
        with pytest.raises(InvalidTransitionError):
            store.transition(job.id, ScanStatus.CLONING)
        assert store.get(job.id).status is ScanStatus.SCANNING

    def test_transition_unknown_job(self, store):
        with pytest.raises(JobNotFoundError):
            store.transition("does-not-exist", ScanStatus.CLONING)

    def test_complete_orders_by_severity_then_position(self, store, job):
        findings = [
            make_finding("low", "a.py", description="low"),
            make_finding("critical", "b.py", description="critical-1"),
            make_finding("medium", "c.py", description="medium"),
            make_finding("critical", "d.py", description="critical-2"),
            make_finding("info", "e.py", description="info"),
        ]
        store.transition(job.id, ScanStatus.SCANNING)
        store.complete(job.id, findings, ReviewStats(total_findings=5, skipped_reason="no_provider"))

        loaded = store.get(job.id)
        assert loaded.status is ScanStatus.COMPLETED
        assert [f.description for f in loaded.findings] == ["critical-1", "critical-2", "medium", "low", "info"]
        assert loaded.review_stats == ReviewStats(total_findings=5, skipped_reason="no_provider")
        assert loaded.completed_at is not None

    def test_complete_preserves_remediation(self, store, job):
        finding = make_finding("high", "app.py", 3)
        finding.remediation = "escape the input"
        finding.code_example = "shlex.quote(x)"
        finding.rule_id = "B602"
        store.transition(job.id, ScanStatus.REVIEWING)
        store.complete(job.id, [finding])

        loaded = store.get(job.id).findings[0]
        assert loaded.id == finding.id
        assert loaded.line_number == 3
        assert (loaded.remediation, loaded.code_example, loaded.rule_id) == (
            "escape the input", "shlex.quote(x)", "B602")

    def test_fail(self, store, job):
        store.transition(job.id, ScanStatus.CLONING)
        store.fail(job.id, "Clone failed: repository not found")
        loaded = store.get(job.id)
        assert loaded.status is ScanStatus.FAILED
        assert loaded.error == "Clone failed: repository not found"
        assert loaded.completed_at is not None
        assert loaded.findings == []

    def test_terminal_job_cannot_change(self, store, job):
        store.fail(job.id, "boom")
        with pytest.raises(InvalidTransitionError):
            store.complete(job.id, [make_finding()])
        with pytest.raises(InvalidTransitionError):
            store.fail(job.id, "again")
        loaded = store.get(job.id)
        assert loaded.error == "boom"
        assert loaded.findings == []

    def test_to_dict(self, store, job):
        data = store.get(job.id).to_dict()
        assert data["status"] == "pending"
        assert data["review_stats"] is None
        assert data["created_at"].endswith("+00:00")
