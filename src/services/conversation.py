# src/services/conversation.py

"""Per-owner conversation state for multi-step chat commands.

An owner is either idle (no session) or waiting for exactly one follow-up
message.  ``/add`` and ``/remove`` without arguments open a session; the
owner's next free-text message consumes it, whether or not that message
turns out to be valid.  Opening a new session replaces a pending one.
"""

import asyncio
import logging
import time
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from src.config.settings import Settings
from src.errors import UnknownSessionStepError

logger = logging.getLogger("price_watch.conversation")


class SessionStep(str, Enum):
    """What the pending session expects from the next message."""

    AWAITING_ADD_PAYLOAD = "awaiting_add_payload"
    AWAITING_REMOVE_ID = "awaiting_remove_id"


@dataclass
class ConversationSession:
    owner: int
    step: SessionStep
    created_at: float


class SessionStore:
    """In-memory sessions keyed by owner, with optional TTL eviction.

    Also hands out one :class:`asyncio.Lock` per owner so a single
    owner's messages are handled one at a time.
    """

    def __init__(
        self,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl if ttl is not None else Settings.SESSION_TTL
        self._clock = clock
        self._sessions: dict[int, ConversationSession] = {}
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _expired(self, session: ConversationSession) -> bool:
        if self._ttl is None:
            return False
        return self._clock() - session.created_at >= self._ttl

    def put(self, owner: int, step: SessionStep) -> ConversationSession:
        session = ConversationSession(
            owner=owner, step=step, created_at=self._clock(),
        )
        self._sessions[owner] = session
        return session

    def get(self, owner: int) -> ConversationSession | None:
        session = self._sessions.get(owner)
        if session is not None and self._expired(session):
            logger.debug(
                "Session for owner %s expired (%s)", owner, session.step,
            )
            del self._sessions[owner]
            return None
        return session

    def pop(self, owner: int) -> ConversationSession | None:
        session = self.get(owner)
        if session is not None:
            del self._sessions[owner]
        return session

    def lock(self, owner: int) -> asyncio.Lock:
        """Lock for *owner*, dropped once no handler holds or awaits it."""
        lock = self._locks.get(owner)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[owner] = lock
        return lock

    def __len__(self) -> int:
        return len(self._sessions)


class ConversationStateMachine:
    """Tracks which follow-up message, if any, each owner owes us."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def begin_add(self, owner: int) -> None:
        """Wait for a ``<url> - <site>`` message from *owner*."""
        self.store.put(owner, SessionStep.AWAITING_ADD_PAYLOAD)
        logger.debug("Owner %s awaiting add payload", owner)

    def begin_remove(self, owner: int) -> None:
        """Wait for an item id from *owner*."""
        self.store.put(owner, SessionStep.AWAITING_REMOVE_ID)
        logger.debug("Owner %s awaiting remove id", owner)

    def state(self, owner: int) -> SessionStep | None:
        """Current step for *owner*; ``None`` means idle."""
        session = self.store.get(owner)
        return session.step if session else None

    def resolve(self, owner: int) -> SessionStep | None:
        """Consume *owner*'s session and return the step it was at.

        Returns ``None`` when the owner is idle, in which case the
        message is plain chat and should be ignored.

        Raises:
            UnknownSessionStepError: the stored step is not a
                :class:`SessionStep` (a programming error).
        """
        session = self.store.pop(owner)
        if session is None:
            return None
        if not isinstance(session.step, SessionStep):
            raise UnknownSessionStepError(
                f"Unknown session step {session.step!r} for owner {owner}"
            )
        logger.debug("Owner %s session consumed at %s", owner, session.step)
        return session.step
