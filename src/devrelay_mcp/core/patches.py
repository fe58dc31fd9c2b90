"""File patches behind the confirmation gate."""

import asyncio
import logging
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

from devrelay_mcp.core.confirmation import ConfirmationGate
from devrelay_mcp.core.exceptions import (
    DevRelayError,
    FeatureDisabledError,
    InvalidArgumentError,
    UnsupportedPatchTypeError,
)
from devrelay_mcp.core.logstore import LogStore
from devrelay_mcp.core.registry import Registry
from devrelay_mcp.core.results import operation
from devrelay_mcp.core.sandbox import SandboxPolicy
from devrelay_mcp.models.patches import PatchType, PendingPatch
from devrelay_mcp.utils.files import atomic_write_text, read_text

logger = logging.getLogger(__name__)

PatchApplier = Callable[[str, PendingPatch], str]


def splice_lines(content: str, start: int, end: int, replacement: str) -> str:
    """Replace 1-based lines ``start..end`` (inclusive) with ``replacement``.

    The range is clamped to the file. An empty replacement deletes the
    lines. The file's newline style and trailing newline are preserved.
    """
    lines = content.splitlines()
    newline = "\r\n" if "\r\n" in content else "\n"
    start_idx = max(0, start - 1)
    end_idx = min(len(lines), end)

    new_lines = lines[:start_idx] + replacement.splitlines() + lines[end_idx:]
    result = newline.join(new_lines)
    if new_lines and content.endswith(("\n", "\r")):
        result += newline
    return result


def apply_range(content: str, patch: PendingPatch) -> str:
    if patch.start_line is None or patch.end_line is None:
        raise InvalidArgumentError("start/end", "range patch has no line range")
    return splice_lines(content, patch.start_line, patch.end_line, patch.content)


# Unified diffs have no applier yet and are refused at proposal time.
PATCH_APPLIERS: dict[PatchType, PatchApplier] = {
    PatchType.RANGE: apply_range,
}


class PatchOrchestrator:
    """Propose, confirm and reject file patches."""

    def __init__(
        self,
        patches: Registry[PendingPatch],
        logs: LogStore,
        sandbox: SandboxPolicy,
        *,
        enabled: bool = False,
        appliers: dict[PatchType, PatchApplier] | None = None,
    ):
        self.gate = ConfirmationGate("patch", patches)
        self.logs = logs
        self.sandbox = sandbox
        self.enabled = enabled
        self._appliers = appliers if appliers is not None else dict(PATCH_APPLIERS)
        self._locks: dict[Path, asyncio.Lock] = {}

    def _require_enabled(self) -> None:
        if not self.enabled:
            raise FeatureDisabledError("File patching")

    @operation("apply_patch")
    async def propose(
        self,
        file: str,
        start: int | None = None,
        end: int | None = None,
        replacement: str | None = None,
        unified_diff: str | None = None,
        require_confirmation: bool = True,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Create a patch; apply it at once unless confirmation is required."""
        self._require_enabled()

        has_range = start is not None and end is not None and replacement is not None
        has_diff = unified_diff is not None
        if has_range == has_diff:
            raise InvalidArgumentError(
                "patch",
                "provide either (start, end, replacement) for a range patch "
                "or unified_diff for a diff patch",
            )
        if start is not None and end is not None and has_range:
            if start < 1 or end < start:
                raise InvalidArgumentError("start/end", f"invalid line range {start}-{end}")

        patch_type = PatchType.DIFF if has_diff else PatchType.RANGE
        if patch_type not in self._appliers:
            raise UnsupportedPatchTypeError(patch_type.value)

        path = self.sandbox.resolve_path(file)
        self.sandbox.check_file_size(path)

        patch = PendingPatch(
            id=f"patch_{uuid.uuid4().hex[:12]}",
            file=self.sandbox.relative(path),
            patch_type=patch_type,
            content=(unified_diff if has_diff else replacement) or "",
            start_line=start,
            end_line=end,
            requires_confirmation=require_confirmation,
        )
        self.gate.submit(patch)
        self.logs.log_patch_event(
            patch.id,
            "Patch proposed",
            {"file": patch.file, "type": patch_type.value, "description": description},
        )

        if require_confirmation:
            return {
                "patch_id": patch.id,
                "status": "pending_confirmation",
                "file": patch.file,
                "type": patch_type.value,
                "description": description,
                "message": "Patch created and requires confirmation before application",
            }

        self.gate.begin_confirm(patch.id, actor=None)
        return await self._apply(patch)

    @operation("confirm_patch")
    async def confirm(self, patch_id: str, confirmed_by: str | None = None) -> dict[str, Any]:
        self._require_enabled()
        patch = self.gate.begin_confirm(patch_id, confirmed_by)
        return await self._apply(patch)

    @operation("reject_patch")
    async def reject(self, patch_id: str) -> dict[str, Any]:
        rejected = self.gate.reject(patch_id)
        if rejected:
            self.logs.log_patch_event(patch_id, "Patch rejected")
        return {"patch_id": patch_id, "rejected": rejected}

    @operation("list_pending_patches")
    async def list_pending(self) -> dict[str, Any]:
        pending = self.gate.pending()
        return {
            "patches": [self._summary(p) for p in pending],
            "total": len(pending),
        }

    @operation("get_patch")
    async def get(self, patch_id: str) -> dict[str, Any]:
        patch = self.gate.get(patch_id)
        return patch.model_dump(mode="json", exclude={"backup"}) | {
            "has_backup": patch.backup is not None
        }

    async def _apply(self, patch: PendingPatch) -> dict[str, Any]:
        """Read, splice and overwrite; the read is kept as the backup."""
        applier = self._appliers.get(patch.patch_type)
        try:
            if applier is None:
                raise UnsupportedPatchTypeError(patch.patch_type.value)
            path = self.sandbox.resolve_path(patch.file)
            # Read-splice-write must not interleave with another patch to the same file
            async with self._locks.setdefault(path, asyncio.Lock()):
                original = await read_text(path)
                new_content = applier(original, patch)
                patch.backup = original
                await atomic_write_text(path, new_content)
        except Exception as e:
            reason = e.message if isinstance(e, DevRelayError) else str(e)
            self.gate.mark_failed(patch, reason)
            self.logs.log_patch_event(patch.id, "Patch failed", {"error": reason})
            raise

        self.gate.mark_applied(patch)
        self.logs.log_patch_event(
            patch.id,
            "Patch applied",
            {"file": patch.file, "confirmed_by": patch.confirmed_by},
        )
        logger.info(f"Applied patch {patch.id} to {patch.file}")
        return {
            "patch_id": patch.id,
            "status": patch.status.value,
            "file": patch.file,
            "type": patch.patch_type.value,
            "lines": [patch.start_line, patch.end_line],
            "backup_size": len(patch.backup or ""),
            "message": "Patch applied successfully",
        }

    @staticmethod
    def _summary(patch: PendingPatch) -> dict[str, Any]:
        return {
            "patch_id": patch.id,
            "file": patch.file,
            "type": patch.patch_type.value,
            "start_line": patch.start_line,
            "end_line": patch.end_line,
            "created_at": patch.created_at.isoformat(),
            "preview": patch.content[:200],
        }
