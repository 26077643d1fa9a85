"""Client for build submission, event streaming and abort."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from ci_exec.api.events import Event, decode_event
from ci_exec.api.session import ApiSession
from ci_exec.api.sse import iter_sse
from ci_exec.errors import (
    BuildConfigRejected,
    BuildSubmissionFailed,
    EventStreamFailed,
    EventStreamInterrupted,
)
from ci_exec.plan.models import Plan, dumps_plan

logger = logging.getLogger(__name__)

EVENT_MESSAGE_NAME = "event"
END_MESSAGE_NAME = "end"


class BuildClient:
    def __init__(self, session: ApiSession) -> None:
        self._session = session

    def submit(self, plan: Plan) -> int:
        """Create a build running ``plan`` and return its id."""

        try:
            response = self._session.client.post(
                self._session.url("/builds"),
                content=dumps_plan(plan),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as error:
            raise BuildSubmissionFailed(f"submitting build failed: {error}") from error

        if response.status_code == httpx.codes.BAD_REQUEST:
            raise BuildConfigRejected(response.text.strip())
        if not response.is_success:
            raise BuildSubmissionFailed(
                f"submitting build failed: HTTP {response.status_code}: {response.text.strip()}",
            )
        try:
            build_id = int(response.json()["id"])
        except (ValueError, KeyError, TypeError) as error:
            raise BuildSubmissionFailed(
                f"submitting build failed: unexpected response {response.text[:200]!r}",
            ) from error
        logger.info("Submitted build %d", build_id)
        return build_id

    @contextmanager
    def events(self, build_id: int) -> Iterator[Iterator[Event]]:
        """Open the build's event stream.

        The yielded iterator finishes normally on the end-of-stream marker and
        raises ``EventStreamInterrupted`` if the connection ends any other way.
        """

        url = self._session.url(f"/builds/{build_id}/events")
        try:
            with self._session.client.stream(
                "GET",
                url,
                headers={"Accept": "text/event-stream"},
            ) as response:
                if not response.is_success:
                    response.read()
                    raise EventStreamFailed(
                        f"opening event stream failed: HTTP {response.status_code}: "
                        f"{response.text.strip()}",
                    )
                logger.debug("Event stream for build %d opened", build_id)
                yield _iter_events(response)
        except httpx.HTTPError as error:
            raise EventStreamFailed(f"opening event stream failed: {error}") from error

    def abort(self, build_id: int) -> bool:
        """Ask the server to abort the build. Failures are logged, never raised."""

        try:
            response = self._session.client.post(self._session.url(f"/builds/{build_id}/abort"))
            response.raise_for_status()
        except httpx.HTTPError as error:
            logger.warning("Failed to abort build %d: %s", build_id, error)
            return False
        logger.info("Abort requested for build %d", build_id)
        return True


def _iter_events(response: httpx.Response) -> Iterator[Event]:
    try:
        for message in iter_sse(response.iter_lines()):
            if message.name == END_MESSAGE_NAME:
                return
            if message.name != EVENT_MESSAGE_NAME:
                continue
            try:
                yield decode_event(message.data)
            except ValueError as error:
                logger.warning("Skipping undecodable event %s: %s", message.id, error)
    except httpx.HTTPError as error:
        raise EventStreamInterrupted(f"event stream interrupted: {error}") from error
    raise EventStreamInterrupted("event stream ended before the build finished")
