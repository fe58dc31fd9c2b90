"""Best-effort parsers for test runner and linter output.

Each known tool has its own patterns. When nothing matches, the parsers
return zero counts or an empty issue list; callers always keep the raw
output next to the parsed result.
"""

import re
from collections.abc import Callable

from devrelay_mcp.models.reports import LintIssue, LintSeverity, TestFailure, TestSummary

SummaryParser = Callable[[str], TestSummary]
FailureParser = Callable[[str], list[TestFailure]]
LintParser = Callable[[str], list[LintIssue]]

MAX_FAILURES = 100

_COUNT_RE = re.compile(r"(\d+)\s+(passed|failed|skipped|pending|todo|errors?|total)\b", re.I)
_SECONDS_RE = re.compile(r"\bin\s+([\d.]+)\s*s\b|Time:\s+([\d.]+)\s*s\b", re.I)


def _counts(text: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for number, label in _COUNT_RE.findall(text):
        key = label.lower().rstrip("s") if label.lower().startswith("error") else label.lower()
        counts[key] = counts.get(key, 0) + int(number)
    return counts


def _duration_ms(text: str) -> int:
    match = _SECONDS_RE.search(text)
    if not match:
        return 0
    return int(float(match.group(1) or match.group(2)) * 1000)


def _summary(passed: int, failed: int, skipped: int, total: int | None, text: str) -> TestSummary:
    return TestSummary(
        total=total if total is not None else passed + failed + skipped,
        passed=passed,
        failed=failed,
        skipped=skipped,
        duration_ms=_duration_ms(text),
    )


# =============================================================================
# Test summaries
# =============================================================================


def parse_jest(output: str) -> TestSummary:
    """``Tests:       1 failed, 2 skipped, 5 passed, 8 total``"""
    match = re.search(r"^Tests:\s+(.+)$", output, re.M)
    if not match:
        return TestSummary()
    c = _counts(match.group(1))
    return _summary(c.get("passed", 0), c.get("failed", 0), c.get("skipped", 0) + c.get("todo", 0),
                    c.get("total"), output)  # fmt: skip


def parse_vitest(output: str) -> TestSummary:
    """``Tests  2 failed | 5 passed (7)``"""
    match = re.search(r"^\s*Tests\s+(.+?)(?:\((\d+)\))?\s*$", output, re.M)
    if not match:
        return TestSummary()
    c = _counts(match.group(1))
    total = int(match.group(2)) if match.group(2) else None
    return _summary(c.get("passed", 0), c.get("failed", 0), c.get("skipped", 0), total, output)


def parse_mocha(output: str) -> TestSummary:
    """``5 passing (20ms)`` / ``2 failing`` / ``1 pending``"""
    passing = re.search(r"(\d+)\s+passing", output)
    if not passing:
        return TestSummary()
    failing = re.search(r"(\d+)\s+failing", output)
    pending = re.search(r"(\d+)\s+pending", output)
    return _summary(
        int(passing.group(1)),
        int(failing.group(1)) if failing else 0,
        int(pending.group(1)) if pending else 0,
        None,
        output,
    )


def parse_pytest(output: str) -> TestSummary:
    """``==== 2 failed, 5 passed, 1 skipped in 0.12s ====``"""
    lines = [line for line in output.splitlines() if re.search(r"\d+\s+(passed|failed)", line)]
    if not lines:
        return TestSummary()
    c = _counts(lines[-1])
    failed = c.get("failed", 0) + c.get("error", 0)
    return _summary(c.get("passed", 0), failed, c.get("skipped", 0), None, lines[-1])


def parse_phpunit(output: str) -> TestSummary:
    """``OK (5 tests, 10 assertions)`` or ``Tests: 5, Assertions: 8, Failures: 2.``"""
    ok = re.search(r"OK \((\d+) tests?", output)
    if ok:
        total = int(ok.group(1))
        return _summary(total, 0, 0, total, output)
    match = re.search(r"Tests:\s*(\d+)", output)
    if not match:
        return TestSummary()
    total = int(match.group(1))
    failures = sum(int(n) for n in re.findall(r"(?:Failures|Errors):\s*(\d+)", output))
    skipped = sum(int(n) for n in re.findall(r"(?:Skipped|Incomplete):\s*(\d+)", output))
    return _summary(max(0, total - failures - skipped), failures, skipped, total, output)


def parse_rspec(output: str) -> TestSummary:
    """``10 examples, 2 failures, 1 pending``"""
    match = re.search(r"(\d+) examples?, (\d+) failures?(?:, (\d+) pending)?", output)
    if not match:
        return TestSummary()
    total, failed = int(match.group(1)), int(match.group(2))
    pending = int(match.group(3)) if match.group(3) else 0
    return _summary(total - failed - pending, failed, pending, total, output)


def parse_go_test(output: str) -> TestSummary:
    """Counts ``--- PASS`` / ``--- FAIL`` / ``--- SKIP`` lines of ``go test -v``."""
    passed = len(re.findall(r"^\s*--- PASS:", output, re.M))
    failed = len(re.findall(r"^\s*--- FAIL:", output, re.M))
    skipped = len(re.findall(r"^\s*--- SKIP:", output, re.M))
    return _summary(passed, failed, skipped, None, output)


def parse_any(output: str) -> TestSummary:
    """For wrappers like ``npm test``: first runner format that matches."""
    for parser in (parse_jest, parse_vitest, parse_mocha, parse_pytest, parse_rspec):
        summary = parser(output)
        if summary.total:
            return summary
    return TestSummary()


TEST_SUMMARY_PARSERS: dict[str, SummaryParser] = {
    "npm": parse_any,
    "yarn": parse_any,
    "jest": parse_jest,
    "mocha": parse_mocha,
    "vitest": parse_vitest,
    "pytest": parse_pytest,
    "phpunit": parse_phpunit,
    "rspec": parse_rspec,
    "go test": parse_go_test,
}


# =============================================================================
# Test failures
# =============================================================================


def _failures(pattern: str, output: str, flags: int = re.M) -> list[TestFailure]:
    failures: list[TestFailure] = []
    for match in re.finditer(pattern, output, flags):
        groups = match.groupdict()
        failures.append(
            TestFailure(
                test=groups["test"].strip(),
                message=(groups.get("message") or "").strip(),
                file=groups.get("file"),
                line=int(groups["line"]) if groups.get("line") else None,
            )
        )
        if len(failures) >= MAX_FAILURES:
            break
    return failures


TEST_FAILURE_PATTERNS: dict[str, str] = {
    "pytest": r"^FAILED (?P<file>[^:\s]+)::(?P<test>\S+)(?: - (?P<message>.*))?$",
    "jest": r"^\s*● (?P<test>.+›.+)$",
    "vitest": r"^\s*(?:FAIL|×)\s+(?P<test>.+?)(?: > .+)?$",
    "mocha": r"^\s+\d+\) (?P<test>.+):$",
    "rspec": r"^rspec (?P<file>[^:\s]+):(?P<line>\d+) # (?P<test>.+)$",
    "phpunit": r"^\d+\) (?P<test>\S+)\n(?P<message>.*)$",
    "go test": r"^\s*--- FAIL: (?P<test>\S+)",
}


def extract_failures(runner: str, output: str) -> list[TestFailure]:
    pattern = TEST_FAILURE_PATTERNS.get(runner)
    if pattern is None:
        # Runner wrappers: try the formats in turn
        for candidate in ("jest", "mocha", "pytest"):
            found = _failures(TEST_FAILURE_PATTERNS[candidate], output)
            if found:
                return found
        return []
    return _failures(pattern, output)


# =============================================================================
# Lint issues
# =============================================================================


def _issue(file: str, line: str, column: str | None, severity: LintSeverity, message: str,
           rule: str | None = None, code: str | None = None) -> LintIssue:  # fmt: skip
    return LintIssue(
        file=file.strip(),
        line=int(line),
        column=int(column) if column else None,
        severity=severity,
        message=message.strip(),
        rule=rule or None,
        code=code,
    )


def parse_eslint(output: str) -> list[LintIssue]:
    """``--format unix``: ``file.js:1:10: Message [Error/rule]``"""
    issues = []
    pattern = r"^(.+?):(\d+):(\d+):\s*(.+?)\s*\[(Error|Warning)(?:/([^\]]+))?\]$"
    for m in re.finditer(pattern, output, re.M):
        severity = LintSeverity.ERROR if m.group(5) == "Error" else LintSeverity.WARNING
        issues.append(_issue(m.group(1), m.group(2), m.group(3), severity, m.group(4), m.group(6)))
    return issues


def parse_tsc(output: str) -> list[LintIssue]:
    """``src/a.ts(3,7): error TS2322: Type 'string' is not assignable ...``"""
    issues = []
    pattern = r"^(.+?)\((\d+),(\d+)\):\s+(error|warning)\s+(TS\d+):\s+(.+)$"
    for m in re.finditer(pattern, output, re.M):
        issues.append(
            _issue(m.group(1), m.group(2), m.group(3), LintSeverity(m.group(4)), m.group(6),
                   code=m.group(5))  # fmt: skip
        )
    return issues


_PYLINT_SEVERITY = {
    "F": LintSeverity.ERROR,
    "E": LintSeverity.ERROR,
    "W": LintSeverity.WARNING,
    "C": LintSeverity.INFO,
    "R": LintSeverity.INFO,
    "I": LintSeverity.INFO,
}


def parse_pylint(output: str) -> list[LintIssue]:
    """``mod.py:10:4: C0114: Missing module docstring (missing-module-docstring)``"""
    issues = []
    pattern = r"^(.+?):(\d+):(\d+): ([A-Z]\d{4}): (.+?)(?: \(([\w-]+)\))?$"
    for m in re.finditer(pattern, output, re.M):
        severity = _PYLINT_SEVERITY.get(m.group(4)[0], LintSeverity.INFO)
        issues.append(
            _issue(m.group(1), m.group(2), m.group(3), severity, m.group(5), m.group(6),
                   code=m.group(4))  # fmt: skip
        )
    return issues


def parse_flake8(output: str) -> list[LintIssue]:
    """``mod.py:1:1: F401 'os' imported but unused``"""
    issues = []
    for m in re.finditer(r"^(.+?):(\d+):(\d+): ([A-Z]+\d+) (.+)$", output, re.M):
        code = m.group(4)
        if code[0] in "EF":
            severity = LintSeverity.ERROR
        elif code[0] == "W":
            severity = LintSeverity.WARNING
        else:
            severity = LintSeverity.INFO
        issues.append(_issue(m.group(1), m.group(2), m.group(3), severity, m.group(5), code=code))
    return issues


_CHECKSTYLE_SEVERITY = {
    "ERROR": LintSeverity.ERROR,
    "WARN": LintSeverity.WARNING,
    "INFO": LintSeverity.INFO,
}


def parse_checkstyle(output: str) -> list[LintIssue]:
    """``[WARN] /src/Main.java:10:5: Missing a Javadoc comment. [MissingJavadocMethod]``"""
    issues = []
    pattern = r"^\[(ERROR|WARN|INFO)\]\s+(.+?):(\d+)(?::(\d+))?:\s*(.+?)(?:\s+\[(\w+)\])?$"
    for m in re.finditer(pattern, output, re.M):
        issues.append(
            _issue(m.group(2), m.group(3), m.group(4), _CHECKSTYLE_SEVERITY[m.group(1)],
                   m.group(5), m.group(6))  # fmt: skip
        )
    return issues


def parse_golint(output: str) -> list[LintIssue]:
    """``main.go:10:1: exported function Foo should have comment``"""
    issues = []
    for m in re.finditer(r"^(.+?\.go):(\d+):(\d+): (.+)$", output, re.M):
        issues.append(_issue(m.group(1), m.group(2), m.group(3), LintSeverity.WARNING, m.group(4)))
    return issues


def parse_clippy(output: str) -> list[LintIssue]:
    """Header line followed by a `` --> file:line:col`` location line."""
    issues = []
    header: re.Match[str] | None = None
    for line in output.splitlines():
        h = re.match(r"^(warning|error)(?:\[(\w+)\])?: (.+)$", line)
        if h:
            header = h
            continue
        loc = re.match(r"^\s+--> (.+?):(\d+):(\d+)$", line)
        if loc and header is not None:
            issues.append(
                _issue(loc.group(1), loc.group(2), loc.group(3), LintSeverity(header.group(1)),
                       header.group(3), code=header.group(2))  # fmt: skip
            )
            header = None
    return issues


LINT_PARSERS: dict[str, LintParser] = {
    "eslint": parse_eslint,
    "tsc": parse_tsc,
    "pylint": parse_pylint,
    "flake8": parse_flake8,
    "checkstyle": parse_checkstyle,
    "golint": parse_golint,
    "clippy": parse_clippy,
}
