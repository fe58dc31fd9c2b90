"""Tests for record registries."""

from dataclasses import dataclass

import pytest

from devrelay_mcp.core.exceptions import ReportNotFoundError
from devrelay_mcp.core.registry import Registry, describe


@dataclass
class Record:
    id: str
    done: bool = True


def make_registry(max_size: int | None = None) -> Registry[Record]:
    return Registry(
        "record",
        lambda record_id: ReportNotFoundError("record", record_id),
        max_size=max_size,
        evictable=lambda r: r.done,
    )


class TestRegistry:
    """Tests for Registry class."""

    def test_add_get_require(self) -> None:
        registry = make_registry()
        record = registry.add(Record("a"))

        assert registry.get("a") is record
        assert registry.require("a") is record
        assert "a" in registry
        assert registry.get("missing") is None

    def test_require_missing_raises_registry_error(self) -> None:
        registry = make_registry()

        with pytest.raises(ReportNotFoundError) as exc_info:
            registry.require("missing")

        assert exc_info.value.details == {"id": "missing", "kind": "record"}

    def test_replace_keeps_position(self) -> None:
        registry = make_registry()
        registry.add(Record("a"))
        registry.add(Record("b"))

        registry.replace(Record("a", done=False))

        assert [r.id for r in registry.select()] == ["a", "b"]
        assert registry.require("a").done is False

    def test_replace_unknown_raises(self) -> None:
        with pytest.raises(ReportNotFoundError):
            make_registry().replace(Record("a"))

    def test_remove(self) -> None:
        registry = make_registry()
        registry.add(Record("a"))

        registry.remove("a")

        assert len(registry) == 0
        with pytest.raises(ReportNotFoundError):
            registry.remove("a")

    def test_newest_and_count(self) -> None:
        registry = make_registry()
        for name in ("a", "b", "c"):
            registry.add(Record(name, done=name != "b"))

        assert [r.id for r in registry.newest()] == ["c", "b", "a"]
        assert [r.id for r in registry.newest(lambda r: r.done)] == ["c", "a"]
        assert registry.count(lambda r: not r.done) == 1

    def test_cap_evicts_oldest_evictable(self) -> None:
        """Test that records which are not evictable survive the cap."""
        registry = make_registry(max_size=2)
        registry.add(Record("running", done=False))
        registry.add(Record("old"))

        registry.add(Record("new"))

        assert [r.id for r in registry] == ["running", "new"]

    def test_cap_exceeded_when_nothing_evictable(self) -> None:
        registry = make_registry(max_size=1)
        registry.add(Record("a", done=False))

        registry.add(Record("b", done=False))

        assert len(registry) == 2

    def test_clear_and_describe(self) -> None:
        registry = make_registry()
        registry.add(Record("a"))

        assert describe({"records": registry}) == {"records": 1}
        assert registry.clear() == 1
        assert describe({"records": registry}) == {"records": 0}
