"""Test and lint report models.

Reports are frozen: an update builds a new report with ``model_copy`` and
replaces the stored one wholesale.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReportStatus(str, Enum):
    """Lifecycle of a test or lint run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TestSummary(BaseModel):
    """Counts parsed from test runner output."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration_ms: int = 0


class TestFailure(BaseModel):
    """A failing test picked out of runner output."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    test: str
    message: str = ""
    file: str | None = None
    line: int | None = None


class TestReport(BaseModel):
    """Result of one test run."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    id: str
    runner: str
    target: str | None = None
    status: ReportStatus = ReportStatus.RUNNING
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    summary: TestSummary = Field(default_factory=TestSummary)
    failures: tuple[TestFailure, ...] = ()
    exit_code: int | None = None
    output: str = ""
    error_output: str = ""


class LintSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class LintIssue(BaseModel):
    """A single diagnostic reported by a linter."""

    model_config = ConfigDict(frozen=True)

    file: str
    line: int
    column: int | None = None
    severity: LintSeverity
    message: str
    rule: str | None = None
    code: str | None = None


class LintReport(BaseModel):
    """Result of one lint run."""

    model_config = ConfigDict(frozen=True)

    id: str
    tool: str
    paths: tuple[str, ...] = (".",)
    status: ReportStatus = ReportStatus.RUNNING
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    issues: tuple[LintIssue, ...] = ()
    exit_code: int | None = None
    output: str = ""
    error_output: str = ""

    def severity_counts(self) -> dict[str, int]:
        counts = {severity.value: 0 for severity in LintSeverity}
        for issue in self.issues:
            counts[issue.severity.value] += 1
        return counts
