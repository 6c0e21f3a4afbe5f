"""Async HTTP collaborator for the remote check-in call.

Wraps :class:`httpx.AsyncClient` and exposes a single operation,
:meth:`CheckinClient.attempt`, which POSTs an empty JSON body to the check-in
endpoint with the credential in the ``Token`` header.

:meth:`CheckinClient.attempt` **never raises**.  It returns either the
decoded JSON reply (whatever its shape — judging the shape is the
classifier's job) or a :class:`TransportFailure` marker when no usable reply
was received:

* network / DNS / connection errors,
* timeouts (bound = ``attempt_timeout_ms``),
* non-2xx HTTP statuses,
* bodies that are not JSON.

No retries are made; a failed attempt is simply a failed outcome for this
cycle.

Typical usage::

    async with CheckinClient(url=settings.checkin_url,
                             timeout_s=settings.attempt_timeout_s) as client:
        reply = await client.attempt(token)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Final

import httpx

from checkinbot.core.exceptions import TransportError
from checkinbot.core.settings import DEFAULT_USER_AGENT, Settings

__all__ = ["CheckinClient", "TransportFailure"]

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S: Final[float] = 15.0

#: Maximum number of body characters quoted in a non-2xx failure reason.
_BODY_EXCERPT: Final[int] = 200


@dataclass(frozen=True)
class TransportFailure:
    """Marker returned by :meth:`CheckinClient.attempt` when no reply arrived.

    Attributes:
        reason: Human-readable cause.
        status_code: HTTP status, if a (non-2xx) response was received.
    """

    reason: str
    status_code: int | None = None


class CheckinClient:
    """Async client for the daily check-in endpoint.

    Manages one :class:`httpx.AsyncClient` for the object lifetime.  Use as
    an ``async with`` context manager (preferred), or call :meth:`close`
    explicitly when done.

    Args:
        url: Full check-in endpoint URL.
        user_agent: ``User-Agent`` header value.
        timeout_s: Overall timeout for one attempt, in seconds.
        transport: Optional httpx transport (tests pass
            :class:`httpx.MockTransport`).

    Raises:
        ValueError: If *url* is empty or *timeout_s* is not positive.
    """

    def __init__(
        self,
        *,
        url: str,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url:
            raise ValueError("url must be a non-empty string.")
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {timeout_s!r}.")

        self._url = url
        self._user_agent = user_agent
        self._timeout_s = timeout_s
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> CheckinClient:
        return cls(
            url=settings.checkin_url,
            user_agent=settings.user_agent,
            timeout_s=settings.attempt_timeout_s,
        )

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CheckinClient:
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client.  Safe to call repeatedly."""
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
            logger.debug("CheckinClient HTTP session closed.")
        self._http = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def attempt(self, credential: str) -> Any | TransportFailure:
        """Perform one check-in attempt for *credential*.

        Returns:
            The decoded JSON reply, or a :class:`TransportFailure`.
        """
        try:
            return await self._post(credential)
        except TransportError as exc:
            logger.debug("Check-in attempt failed at transport level: %s", exc)
            return TransportFailure(reason=str(exc), status_code=exc.status_code)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_s),
                transport=self._transport,
                headers={
                    "User-Agent": self._user_agent,
                    "Accept": "application/json, text/plain, */*",
                    "Content-Type": "application/json;charset=UTF-8",
                },
            )
            logger.debug("CheckinClient session opened (url=%s).", self._url)
        return self._http

    async def _post(self, credential: str) -> Any:
        """POST once; raise :class:`TransportError` unless a JSON 2xx arrives."""
        client = await self._ensure_client()

        try:
            response = await client.post(self._url, json={}, headers={"Token": credential})
        except httpx.TimeoutException as exc:
            raise TransportError(f"no reply within {self._timeout_s:g} s") from exc
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or type(exc).__name__) from exc

        logger.debug(
            "POST %s → %d (%d bytes)", self._url, response.status_code, len(response.content)
        )

        if not response.is_success:
            raise TransportError(
                response.text[:_BODY_EXCERPT] or response.reason_phrase,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                "reply body is not valid JSON", status_code=response.status_code
            ) from exc
