"""Tests for the issue collection and graceful degradation helpers."""

import json
import logging

from gtm_inspector.errors import (
    DecodeIssue,
    IssueCategory,
    IssueCollector,
    IssueSeverity,
    ResilientDecoder,
    classify_exception,
    resilient_operation
)


class Worker(ResilientDecoder):
    """Minimal ResilientDecoder used to exercise the helpers."""

    def __init__(self):
        self.name = "Worker"
        super().__init__()

    @resilient_operation("divide", IssueSeverity.LOW, IssueCategory.DATA_QUALITY, default_return=-1)
    def divide(self, a, b):
        return a // b


class TestClassifyException:

    def test_classification(self):
        assert classify_exception(MemoryError()) == (IssueSeverity.CRITICAL, IssueCategory.MEMORY)
        assert classify_exception(OSError("connection reset")) == (IssueSeverity.MEDIUM, IssueCategory.NETWORK)
        assert classify_exception(json.JSONDecodeError("bad", "x", 0)) == (IssueSeverity.LOW, IssueCategory.PARSING)
        assert classify_exception(KeyError("tags")) == (IssueSeverity.LOW, IssueCategory.DATA_QUALITY)
        assert classify_exception(RuntimeError("?")) == (IssueSeverity.MEDIUM, IssueCategory.UNKNOWN)


class TestIssueCollector:

    def test_collect_and_drain(self, caplog):
        collector = IssueCollector("Decoder")

        with caplog.at_level(logging.WARNING):
            issue = collector.add_from_exception(ValueError("bad tag"), "decode_tag", position=3)

        assert isinstance(issue, DecodeIssue)
        assert issue.component == "Decoder"
        assert issue.exception_type == "ValueError"
        assert issue.context == {"position": 3}
        assert "decode_tag failed: bad tag" in caplog.text
        assert not collector.has_critical_issues()

        assert collector.drain() == [issue]
        assert collector.issues == []

    def test_critical(self):
        collector = IssueCollector("Decoder")
        collector.add_from_exception(MemoryError(), "decode", IssueSeverity.CRITICAL, IssueCategory.MEMORY)
        assert collector.has_critical_issues()


class TestResilientDecoder:

    def setup_method(self):
        self.worker = Worker()

    def test_issue_context_suppresses_and_records(self):
        result = "unchanged"
        with self.worker.issue_context("lookup", key="x"):
            result = {}["x"]

        assert result == "unchanged"
        issues = self.worker.issue_collector.issues
        assert len(issues) == 1
        assert issues[0].operation == "lookup"
        assert issues[0].category == IssueCategory.DATA_QUALITY
        assert issues[0].component == "Worker"

    def test_resilient_operation(self):
        assert self.worker.divide(7, 2) == 3
        assert self.worker.divide(1, 0) == -1

        issues = self.worker.issue_collector.drain()
        assert [issue.operation for issue in issues] == ["divide"]
        assert issues[0].severity == IssueSeverity.LOW
