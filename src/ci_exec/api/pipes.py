"""Client for server-issued single-use transfer pipes."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import httpx

from ci_exec.api.session import ApiSession
from ci_exec.errors import PipeCreationFailed, TransportError

logger = logging.getLogger(__name__)

TRANSFER_CHUNK_SIZE = 64 * 1024


@dataclass(slots=True, frozen=True)
class Pipe:
    """Handle to one pipe: bytes go in at ``write_url`` and come out at ``read_url``."""

    id: str
    write_url: str
    read_url: str


class PipeClient:
    def __init__(self, session: ApiSession) -> None:
        self._session = session

    def create(self) -> Pipe:
        """Create a pipe. Failures are not retried."""

        try:
            response = self._session.client.post(self._session.url("/pipes"))
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as error:
            raise PipeCreationFailed(
                f"creating pipe failed: HTTP {error.response.status_code}: "
                f"{error.response.text.strip()}",
            ) from error
        except (httpx.HTTPError, ValueError) as error:
            raise PipeCreationFailed(f"creating pipe failed: {error}") from error

        pipe_id = str(payload.get("id") or "") if isinstance(payload, dict) else ""
        if not pipe_id:
            raise PipeCreationFailed("creating pipe failed: response carried no pipe id")

        default_url = self._session.url(f"/pipes/{pipe_id}")
        pipe = Pipe(
            id=pipe_id,
            write_url=payload.get("write_url") or default_url,
            read_url=payload.get("read_url") or default_url,
        )
        logger.debug("Created pipe %s", pipe.id)
        return pipe

    def write(self, pipe: Pipe, chunks: Iterable[bytes]) -> None:
        """Stream ``chunks`` into the pipe's write endpoint."""

        try:
            response = self._session.client.put(pipe.write_url, content=chunks)
            response.raise_for_status()
        except httpx.HTTPError as error:
            raise TransportError(f"writing to pipe {pipe.id} failed: {error}") from error
        logger.debug("Finished writing pipe %s", pipe.id)

    @contextmanager
    def read(self, pipe: Pipe) -> Iterator[Iterator[bytes]]:
        """Open the pipe's read endpoint and yield its body as byte chunks."""

        try:
            with self._session.client.stream("GET", pipe.read_url) as response:
                response.raise_for_status()
                yield response.iter_bytes(TRANSFER_CHUNK_SIZE)
        except httpx.HTTPError as error:
            raise TransportError(f"reading from pipe {pipe.id} failed: {error}") from error
