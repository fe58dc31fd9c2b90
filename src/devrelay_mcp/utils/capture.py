"""Bounded capture of process output.

``TailBuffer`` keeps the last N bytes of a single stream for one-shot
command runs. ``ChunkLog`` keeps a debug session's interleaved stdout
and stderr as numbered chunks so clients can page through it or poll
for whatever arrived after the last chunk they saw.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import islice

STREAMS = ("stdout", "stderr")


class TailBuffer:
    """Byte-bounded text accumulator that keeps the most recent output.

    When the buffer grows past ``max_bytes`` the earliest bytes are
    discarded, so large output loses its head, never its tail.
    """

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        self._data = bytearray()
        self._total_bytes = 0

    def append(self, chunk: str | bytes) -> None:
        data = chunk.encode("utf-8") if isinstance(chunk, str) else chunk
        self._total_bytes += len(data)
        self._data.extend(data)
        overflow = len(self._data) - self.max_bytes
        if overflow > 0:
            del self._data[:overflow]

    def text(self) -> str:
        data = bytes(self._data)
        if self.truncated:
            # Trimming can cut a character in half; skip its continuation bytes.
            skip = 0
            while skip < min(3, len(data)) and data[skip] & 0xC0 == 0x80:
                skip += 1
            data = data[skip:]
        return data.decode("utf-8", errors="replace")

    @property
    def size(self) -> int:
        return len(self._data)

    @property
    def truncated(self) -> bool:
        return self._total_bytes > len(self._data)

    def __len__(self) -> int:
        return len(self._data)


@dataclass(frozen=True)
class Chunk:
    """One read from a session's stdout or stderr."""

    sequence: int
    stream: str
    text: str
    size: int
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, object]:
        return {"sequence": self.sequence, "category": self.stream, "content": self.text}


@dataclass
class ChunkWindow:
    """A slice of a ChunkLog.

    ``total`` counts every retained chunk that matched the query, not
    just the ones returned. ``missed`` counts chunks evicted before the
    reader got to them.
    """

    chunks: list[Chunk]
    total: int
    has_more: bool
    missed: int = 0


class ChunkLog:
    """Numbered output chunks held under a byte budget.

    Sequence numbers start at 1 and never repeat. Eviction removes the
    oldest chunks first, so the retained chunks always carry consecutive
    numbers. The newest chunk is kept even if it alone exceeds the budget.
    """

    def __init__(self, max_bytes: int = 1024 * 1024):
        self.max_bytes = max_bytes
        self._chunks: deque[Chunk] = deque()
        self._size = 0
        self._evicted = 0
        self._last_sequence = 0

    def record(self, stream: str, text: str) -> Chunk:
        self._last_sequence += 1
        chunk = Chunk(
            sequence=self._last_sequence,
            stream=stream,
            text=text,
            size=len(text.encode("utf-8")),
        )
        self._chunks.append(chunk)
        self._size += chunk.size
        while self._size > self.max_bytes and len(self._chunks) > 1:
            oldest = self._chunks.popleft()
            self._size -= oldest.size
            self._evicted += 1
        return chunk

    def read(
        self,
        offset: int = 0,
        limit: int = 100,
        stream: str | None = None,
        after: int | None = None,
    ) -> ChunkWindow:
        """Page by position, or by sequence when ``after`` is given.

        The stream filter applies in both modes. With ``after`` the
        offset is ignored and reading starts at the first chunk whose
        sequence is greater than ``after``.
        """
        if after is not None:
            start = max(0, after + 1 - self.first_sequence)
            source = islice(self._chunks, start, None)
            missed = max(0, self._evicted - max(after, 0))
        else:
            source = iter(self._chunks)
            missed = 0

        matching = [c for c in source if stream is None or c.stream == stream]
        if after is None:
            window = matching[offset : offset + limit]
            has_more = offset + limit < len(matching)
        else:
            window = matching[:limit]
            has_more = len(matching) > limit
        return ChunkWindow(chunks=window, total=len(matching), has_more=has_more, missed=missed)

    def tail(self, stream: str, max_chars: int) -> str:
        """The last ``max_chars`` characters written to one stream."""
        parts: list[str] = []
        remaining = max_chars
        for chunk in reversed(self._chunks):
            if remaining <= 0:
                break
            if chunk.stream != stream:
                continue
            parts.append(chunk.text[-remaining:])
            remaining -= len(parts[-1])
        return "".join(reversed(parts))

    @property
    def first_sequence(self) -> int:
        """Sequence of the oldest retained chunk, or the next one if empty."""
        return self._evicted + 1

    @property
    def last_sequence(self) -> int:
        return self._last_sequence

    @property
    def evicted(self) -> int:
        return self._evicted

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return len(self._chunks)
