"""Cooperative cancellation with generation tracking.

Every transport call gets a fresh :class:`CancellationToken`.  The
controller remembers which generation is current; a call whose token is no
longer current is stale and its result must be discarded.
"""

from __future__ import annotations

import asyncio
import logging

from querycycle.exceptions import QueryCancelledError

_logger = logging.getLogger(__name__)


class CancellationToken:
    """Signal handed to a transport call.

    Signalling is cooperative: the transport is expected to watch
    :attr:`cancelled`, call :meth:`raise_if_cancelled` between steps, or
    race its I/O against :meth:`wait`.
    """

    def __init__(self, generation: int) -> None:
        self._generation = generation
        self._event = asyncio.Event()
        self._reason: str | None = None

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<CancellationToken gen={self._generation} {state}>"

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> bool:
        """Signal the token.  Returns ``False`` if it was already signalled."""
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise QueryCancelledError(self._reason)

    async def wait(self) -> None:
        """Block until the token is signalled."""
        await self._event.wait()


class CancellationController:
    """Owns the current token; issues a new generation per transport call."""

    def __init__(self) -> None:
        self._generation = 0
        self._current: CancellationToken | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def current(self) -> CancellationToken | None:
        return self._current

    def issue(self) -> CancellationToken:
        """Make a new token current; every earlier token becomes stale."""
        self._generation += 1
        token = CancellationToken(self._generation)
        self._current = token
        return token

    def abort(self, reason: str | None = None) -> bool:
        """Signal the current token only.  Returns whether anything was signalled."""
        token = self._current
        if token is None:
            return False
        signalled = token.cancel(reason)
        if signalled:
            _logger.debug("Aborted generation %d: %s", token.generation, reason)
        return signalled

    def retire(self) -> None:
        """Drop the current token so no outstanding call is current any more."""
        self._current = None

    def is_current(self, token: CancellationToken) -> bool:
        current = self._current
        return current is not None and current.generation == token.generation
