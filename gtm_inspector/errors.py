"""Error handling framework for container parsing and decoding.

Provides structured issue records, collection and logging, and graceful
degradation helpers so that one malformed record or one failed locator
strategy never aborts an inspection run.
"""

import json
import logging
import traceback
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Severity levels for decode issues."""
    CRITICAL = "critical"    # Run-breaking errors
    HIGH = "high"           # A whole component failed
    MEDIUM = "medium"       # Degraded output
    LOW = "low"            # Single record degraded
    INFO = "info"


class IssueCategory(str, Enum):
    """Categories for issue classification."""
    NETWORK = "network"
    PARSING = "parsing"
    DECODING = "decoding"
    CONFIGURATION = "configuration"
    DATA_QUALITY = "data_quality"
    MEMORY = "memory"
    UNKNOWN = "unknown"


class DecodeIssue(BaseModel):
    """Structured information about a degraded operation."""

    issue_id: str = Field(description="Unique issue identifier")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    severity: IssueSeverity
    category: IssueCategory

    component: str = Field(description="Component that hit the issue")
    operation: str = Field(description="Operation that failed")
    message: str = Field(description="Human-readable message")

    exception_type: Optional[str] = Field(default=None)
    exception_message: Optional[str] = Field(default=None)
    stack_trace: Optional[str] = Field(default=None)

    context: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls,
                       e: Exception,
                       component: str,
                       operation: str,
                       severity: IssueSeverity = IssueSeverity.MEDIUM,
                       category: IssueCategory = IssueCategory.UNKNOWN,
                       **context) -> "DecodeIssue":
        """Create a DecodeIssue from an exception.

        Args:
            e: Exception that occurred
            component: Name of the component
            operation: Operation that failed
            severity: Issue severity level
            category: Issue category
            **context: Additional context information

        Returns:
            DecodeIssue instance
        """
        issue_id = f"{component}_{operation}_{datetime.utcnow().timestamp()}"

        return cls(
            issue_id=issue_id,
            severity=severity,
            category=category,
            component=component,
            operation=operation,
            message=f"{operation} failed: {e}",
            exception_type=type(e).__name__,
            exception_message=str(e),
            stack_trace=traceback.format_exc(),
            context=context
        )


class IssueCollector:
    """Collects and logs issues raised during one decode pass."""

    def __init__(self, component: str):
        self.component = component
        self.issues: List[DecodeIssue] = []

    def add_issue(self, issue: DecodeIssue) -> None:
        """Add issue to collection and log it."""
        self.issues.append(issue)

        level = logging.ERROR if issue.severity in (IssueSeverity.CRITICAL, IssueSeverity.HIGH) else logging.WARNING
        logger.log(level, f"[{self.component}] {issue.message}", extra={
            "issue_id": issue.issue_id,
            "severity": issue.severity,
            "category": issue.category,
            "operation": issue.operation
        })

    def add_from_exception(self,
                           e: Exception,
                           operation: str,
                           severity: IssueSeverity = IssueSeverity.MEDIUM,
                           category: IssueCategory = IssueCategory.UNKNOWN,
                           **context) -> DecodeIssue:
        """Add issue from exception and return it."""
        issue = DecodeIssue.from_exception(
            e, self.component, operation, severity, category, **context
        )
        self.add_issue(issue)
        return issue

    def has_critical_issues(self) -> bool:
        """Check if any critical issues were collected."""
        return any(issue.severity == IssueSeverity.CRITICAL for issue in self.issues)

    def drain(self) -> List[DecodeIssue]:
        """Return collected issues and reset the collector."""
        issues, self.issues = self.issues, []
        return issues


def classify_exception(e: Exception) -> Tuple[IssueSeverity, IssueCategory]:
    """Classify exception to determine severity and category."""
    message = str(e).lower()

    if isinstance(e, MemoryError):
        return IssueSeverity.CRITICAL, IssueCategory.MEMORY

    if any(term in message for term in ["timeout", "connection", "network", "dns"]):
        return IssueSeverity.MEDIUM, IssueCategory.NETWORK

    if isinstance(e, (json.JSONDecodeError, ValueError)):
        return IssueSeverity.LOW, IssueCategory.PARSING

    if isinstance(e, (KeyError, IndexError, AttributeError, TypeError)):
        return IssueSeverity.LOW, IssueCategory.DATA_QUALITY

    return IssueSeverity.MEDIUM, IssueCategory.UNKNOWN


class ResilientDecoder:
    """Mixin providing isolated, logged failure handling for decode steps."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.issue_collector: Optional[IssueCollector] = None

    def _create_issue_collector(self) -> IssueCollector:
        component = getattr(self, "name", self.__class__.__name__)
        return IssueCollector(component)

    def _ensure_collector(self) -> IssueCollector:
        if self.issue_collector is None:
            self.issue_collector = self._create_issue_collector()
        return self.issue_collector

    @contextmanager
    def issue_context(self, operation: str, **context):
        """Context manager that records any exception as an issue and suppresses it."""
        collector = self._ensure_collector()

        try:
            yield collector
        except Exception as e:
            severity, category = classify_exception(e)
            collector.add_from_exception(e, operation, severity, category, **context)


F = TypeVar("F", bound=Callable[..., Any])


def resilient_operation(operation_name: str,
                        severity: IssueSeverity = IssueSeverity.MEDIUM,
                        category: IssueCategory = IssueCategory.UNKNOWN,
                        default_return: Any = None) -> Callable[[F], F]:
    """Decorator returning ``default_return`` instead of propagating errors.

    When the decorated callable is a method on a ResilientDecoder, the failure
    is also recorded in that instance's issue collector.
    """
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.debug(f"Operation {operation_name} failed: {e}")

                if args and isinstance(args[0], ResilientDecoder):
                    args[0]._ensure_collector().add_from_exception(
                        e, operation_name, severity, category
                    )

                return default_return

        return wrapper
    return decorator
