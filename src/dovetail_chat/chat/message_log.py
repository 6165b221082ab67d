"""Ordered message log with pending placeholder slots."""

from __future__ import annotations

import itertools
import logging
from collections import deque

from dovetail_chat.errors import InvariantViolation, NoPendingEntry

from .models import ChatEntry, EntryKind

logger = logging.getLogger(__name__)


class MessageLog:
    """Append-only ordered sequence of chat entries.

    Pending placeholders are tracked by position in a FIFO so the oldest
    outstanding request is always the one resolved next. A placeholder is
    replaced in place when resolved; entries are never removed or reordered.
    """

    def __init__(self):
        self._entries: list[ChatEntry] = []
        self._ids = itertools.count(1)
        # Positions of unresolved placeholders, oldest first
        self._pending: deque[int] = deque()
        # request_id -> position of its placeholder
        self._pending_by_request: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pending_count(self) -> int:
        """Number of unresolved placeholders."""
        return len(self._pending)

    def has_pending(self) -> bool:
        return bool(self._pending)

    def append(self, entry: ChatEntry) -> int:
        """Append an entry and return its assigned id.

        Raises:
            InvariantViolation: If a pending entry has no request id, or its
                request already has an unresolved placeholder.
        """
        if entry.kind == EntryKind.PENDING:
            if entry.request_id is None:
                raise InvariantViolation("Pending entry must be tagged with a request id")
            if entry.request_id in self._pending_by_request:
                raise InvariantViolation(
                    f"Request {entry.request_id} already has a pending entry"
                )

        entry_id = next(self._ids)
        position = len(self._entries)
        self._entries.append(entry.model_copy(update={"id": entry_id}))

        if entry.kind == EntryKind.PENDING:
            self._pending.append(position)
            self._pending_by_request[entry.request_id] = position

        return entry_id

    def resolve_pending(self, text: str) -> ChatEntry:
        """Resolve the oldest unresolved placeholder with the agent's text.

        Returns:
            The resolved entry, at the placeholder's original position.

        Raises:
            NoPendingEntry: If no placeholder is outstanding.
        """
        if not self._pending:
            raise NoPendingEntry("No pending entry to resolve")

        position = self._pending.popleft()
        placeholder = self._entries[position]
        del self._pending_by_request[placeholder.request_id]

        resolved = placeholder.model_copy(update={"kind": EntryKind.FINAL, "text": text})
        self._entries[position] = resolved
        return resolved

    def fail_pending(self, request_id: int, text: str) -> ChatEntry:
        """Close the placeholder of one request as a failed final entry.

        Raises:
            NoPendingEntry: If the request has no outstanding placeholder.
        """
        position = self._pending_by_request.pop(request_id, None)
        if position is None:
            raise NoPendingEntry(f"Request {request_id} has no pending entry")

        self._pending.remove(position)
        failed = self._entries[position].model_copy(
            update={"kind": EntryKind.FINAL, "text": text, "failed": True}
        )
        self._entries[position] = failed
        logger.debug("Closed pending entry %d for request %d", failed.id, request_id)
        return failed

    def snapshot(self) -> tuple[ChatEntry, ...]:
        """Return the entries as of now, in order.

        Entries are immutable, so the returned tuple never changes after
        later mutations of the log and can be iterated any number of times.
        """
        return tuple(self._entries)
