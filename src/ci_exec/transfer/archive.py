"""Streaming gzip/tar codec for directory trees."""

from __future__ import annotations

import io
import logging
import tarfile
from collections.abc import Iterable, Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

ROOT_ARCNAME = "."


class _ChunkSink:
    """Write-only file object whose contents are drained between tar entries."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write(self, data: bytes) -> int:
        self._buffer.extend(data)
        return len(data)

    def flush(self) -> None:
        return None

    def drain(self) -> bytes:
        chunk = bytes(self._buffer)
        self._buffer.clear()
        return chunk


class _IteratorReader(io.RawIOBase):
    """Readable file object over an iterator of byte chunks."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = iter(chunks)
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


def pack(directory: Path) -> Iterator[bytes]:
    """Yield a gzip-compressed tar of ``directory``.

    The first entry is the root (``./``); every other entry follows as
    ``./<relative path>`` in sorted depth-first order.
    """

    sink = _ChunkSink()
    entries = 0
    with tarfile.open(fileobj=sink, mode="w|gz", format=tarfile.PAX_FORMAT) as archive:
        archive.add(directory, arcname=ROOT_ARCNAME, recursive=False)
        for path in _walk(directory):
            relative = path.relative_to(directory).as_posix()
            archive.add(path, arcname=f"./{relative}", recursive=False)
            entries += 1
            chunk = sink.drain()
            if chunk:
                yield chunk
    chunk = sink.drain()
    if chunk:
        yield chunk
    logger.debug("Packed %s (%d entries)", directory, entries)


def unpack(chunks: Iterable[bytes], destination: Path) -> None:
    """Extract a gzip-compressed tar stream into ``destination``, creating it if needed."""

    destination.mkdir(parents=True, exist_ok=True)
    with (
        _IteratorReader(chunks) as reader,
        tarfile.open(fileobj=reader, mode="r|gz") as archive,
    ):
        archive.extractall(destination, filter="data")
    logger.debug("Unpacked archive into %s", destination)


def _walk(directory: Path) -> Iterator[Path]:
    for child in sorted(directory.iterdir(), key=lambda path: path.name):
        yield child
        if child.is_dir() and not child.is_symlink():
            yield from _walk(child)
