"""HTTP session bound to one build-server target."""

from __future__ import annotations

import logging

import httpx

from ci_exec import __version__
from ci_exec.config import API_PREFIX
from ci_exec.targets import Target

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"ci-exec/{__version__}"


class ApiSession:
    """httpx client wrapper carrying the target's base URL, credential and cookies.

    One session is shared by every request of an execution so that a session
    cookie set on build submission is replayed on the later requests.
    """

    def __init__(
        self,
        target: Target,
        *,
        connect_timeout_seconds: float = 10.0,
        insecure: bool = False,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.target = target
        headers = {"User-Agent": DEFAULT_USER_AGENT}
        if target.authorization:
            headers["Authorization"] = target.authorization
        # Streams and pipe transfers may legitimately stay idle for a long time.
        timeout = httpx.Timeout(None, connect=connect_timeout_seconds)
        self.client = httpx.Client(
            base_url=target.api,
            headers=headers,
            timeout=timeout,
            verify=not (insecure or target.insecure),
            transport=transport,
            follow_redirects=True,
        )

    @property
    def authorization(self) -> str | None:
        return self.target.authorization

    def url(self, path: str) -> str:
        """Absolute URL for an API path such as ``/pipes/abc``."""

        return f"{self.target.api}{API_PREFIX}{path}"

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> ApiSession:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
