"""Connected viewer sessions and best-effort fan-out of telemetry messages."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterator, Protocol, Set

from websockets.asyncio.server import ServerConnection, broadcast
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

logger = logging.getLogger(__name__)


class Session(Protocol):
    """A viewer connection; ``send`` reports whether the payload was written."""

    def send(self, payload: str) -> bool:  # pragma: no cover - protocol definition
        ...

    async def close(self) -> None:  # pragma: no cover - protocol definition
        ...


class WebSocketSession:
    """Session backed by a ``websockets`` server connection."""

    def __init__(self, connection: ServerConnection) -> None:
        self.connection = connection

    @property
    def remote_address(self) -> object:
        return self.connection.remote_address

    def send(self, payload: str) -> bool:
        if self.connection.state is not State.OPEN:
            return False
        # broadcast() writes synchronously and never raises for one peer.
        broadcast([self.connection], payload)
        return True

    async def close(self) -> None:
        try:
            await self.connection.close()
        except ConnectionClosed:
            logger.debug("Session %s already closed", self.remote_address)

    def __repr__(self) -> str:
        return f"WebSocketSession({self.remote_address!r})"


class BroadcastHub:
    """Owns the set of connected sessions."""

    def __init__(self) -> None:
        self._sessions: Set[Session] = set()

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions))

    def __contains__(self, session: object) -> bool:
        return session in self._sessions

    # ------------------------------------------------------------------
    def add(self, session: Session) -> None:
        self._sessions.add(session)
        logger.info("Viewer connected: %r (%d connected)", session, len(self._sessions))

    def discard(self, session: Session) -> None:
        if session in self._sessions:
            self._sessions.discard(session)
            logger.info("Viewer disconnected: %r (%d connected)", session, len(self._sessions))

    # ------------------------------------------------------------------
    def send(self, session: Session, payload: str) -> bool:
        if session not in self._sessions:
            return False
        try:
            delivered = session.send(payload)
        except Exception:
            logger.warning("Send to %r failed", session, exc_info=True)
            return False
        if not delivered:
            logger.debug("Skipped send to %r; session not open", session)
        return delivered

    def broadcast(self, payload: str) -> int:
        """Send *payload* to every session; returns the number of deliveries."""
        delivered = 0
        for session in list(self._sessions):
            if self.send(session, payload):
                delivered += 1
        return delivered

    async def close_all(self) -> None:
        sessions = list(self._sessions)
        self._sessions.clear()
        if sessions:
            await asyncio.gather(*(session.close() for session in sessions), return_exceptions=True)
            logger.info("Closed %d viewer sessions", len(sessions))


__all__ = ["Session", "WebSocketSession", "BroadcastHub"]
