"""Async file helpers for workspace reads and whole-file overwrites."""

import contextlib
import os
import uuid
from pathlib import Path

import aiofiles
import aiofiles.os

from devrelay_mcp.core.exceptions import FileWriteError


async def read_text(path: Path) -> str:
    """Read a text file without translating line endings."""
    async with aiofiles.open(path, encoding="utf-8", errors="replace", newline="") as f:
        content: str = await f.read()
        return content


async def atomic_write_text(path: Path, content: str) -> None:
    """Replace a file's content atomically using temp file + rename.

    The file is either fully rewritten or left untouched. The original
    permission bits are carried over to the new file.

    Args:
        path: Existing target file
        content: Complete new content
    """
    temp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")

    try:
        async with aiofiles.open(temp_path, "w", encoding="utf-8", newline="") as f:
            await f.write(content)
            await f.flush()
            os.fsync(f.fileno())

        with contextlib.suppress(FileNotFoundError):
            os.chmod(temp_path, path.stat().st_mode & 0o7777)

        await aiofiles.os.replace(temp_path, path)

    except OSError as e:
        with contextlib.suppress(FileNotFoundError):
            await aiofiles.os.remove(temp_path)
        raise FileWriteError(str(path), str(e))
