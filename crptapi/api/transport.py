"""HTTP transport for the CRPT API.

The API speaks plain JSON over HTTPS, so requests go through the standard
library's urllib, run in a worker thread so the event loop (and the admission
gate's replenishment cycle) never blocks on network I/O.
"""

from __future__ import annotations

import asyncio
import gzip
import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any

from ..config import CONNECT_TIMEOUT, READ_TIMEOUT, USER_AGENT
from ..errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    """A completed HTTP exchange, whatever its status."""

    url: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""

    @property
    def text(self) -> str:
        try:
            return self.content.decode("utf-8")
        except UnicodeDecodeError:
            return self.content.decode("latin-1")

    def json(self) -> Any:
        """Parse the body as JSON (raises ``ValueError`` when it is not)."""
        return json.loads(self.text)


class Transport:
    """Async HTTP transport with JSON bodies and no retries."""

    def __init__(self, user_agent: str = USER_AGENT, timeout: float | None = None):
        self.user_agent = user_agent
        # urllib only has a single timeout, so we pick the larger of connect/read.
        self.timeout = float(timeout) if timeout is not None else max(CONNECT_TIMEOUT, READ_TIMEOUT)

    async def request(
        self,
        method: str,
        url: str,
        *,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> Response:
        """Perform one HTTP request.

        Non-2xx statuses are returned, not raised; classifying them is the
        caller's job. Only failures that never produced a response raise
        ``TransportError``.
        """
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        body = None
        if json_body is not None:
            body = json.dumps(json_body, ensure_ascii=False).encode("utf-8")
        return await asyncio.to_thread(self._request_sync, method, url, body, headers or {})

    async def close(self) -> None:
        """Nothing to release: each request opens and closes its own connection."""
        return

    def _request_sync(
        self,
        method: str,
        url: str,
        body: bytes | None,
        extra_headers: dict[str, str],
    ) -> Response:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
        }
        if body is not None:
            headers["Content-Type"] = "application/json;charset=UTF-8"
        headers.update(extra_headers)

        req = urllib.request.Request(url, data=body, headers=headers, method=method)
        logger.debug("HTTP %s %s", method, url)

        try:
            try:
                with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                    status = int(getattr(resp, "status", 200))
                    resp_headers = {k: v for k, v in resp.headers.items()}
                    content = resp.read() or b""
            except urllib.error.HTTPError as e:
                status = int(getattr(e, "code", 0) or 0)
                resp_headers = {k: v for k, v in (e.headers.items() if e.headers else [])}
                content = e.read() or b""
        except urllib.error.URLError as e:
            raise TransportError(url=url, reason=str(e.reason)) from e
        except (http.client.HTTPException, OSError) as e:
            # Truncated bodies, malformed status lines, timeouts, resets.
            raise TransportError(url=url, reason=str(e) or type(e).__name__) from e

        return Response(
            url=url,
            status_code=status,
            headers=resp_headers,
            content=_maybe_gunzip(content, resp_headers),
        )


def _maybe_gunzip(content: bytes, headers: dict[str, str]) -> bytes:
    if (headers.get("Content-Encoding") or "").lower() != "gzip":
        return content
    try:
        return gzip.decompress(content)
    except (OSError, EOFError):
        return content
