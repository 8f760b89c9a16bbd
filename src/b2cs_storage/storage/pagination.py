"""Resumable, token-based pagination over remote object listings."""

import logging
import secrets
from collections.abc import Callable

from .base import ListRefsItem
from .cursor import ObjectCursor
from .cursor_cache import CursorCache
from .exceptions import StorageError, StorageIOError, StorageNotFoundError

log = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 1000


def new_token() -> str:
    """Return an unguessable resume token: 16 random bytes, hex encoded."""
    return secrets.token_hex(16)


class Paginator:
    """
    Splits a remote catalog walk into pages resumable across calls.

    A walk that has more objects after a full page is checkpointed in the
    cursor cache under a fresh token. Tokens are single use: they are
    removed from the cache as soon as they are looked up, whether or not
    the page completes.

    Args:
        open_cursor: Starts a new walk from the beginning, given a page size.
        cursors: Cache holding checkpointed cursors between calls.
        max_results: Maximum number of items returned per call.
    """

    def __init__(
        self,
        open_cursor: Callable[[int], ObjectCursor],
        cursors: CursorCache[ObjectCursor],
        max_results: int = DEFAULT_MAX_RESULTS,
        op: str = "list",
    ):
        if max_results < 1:
            raise ValueError(f"max_results must be at least 1, got {max_results}")
        self._open_cursor = open_cursor
        self._cursors = cursors
        self.max_results = max_results
        self._op = op

    def _get_cursor(self, token: str) -> ObjectCursor:
        if not token:
            return self._open_cursor(self.max_results)
        cursor = self._cursors.take(token)
        if cursor is None:
            raise StorageNotFoundError(f"unknown token: {token!r}", op=self._op)
        return cursor

    def list(self, token: str = "") -> tuple[list[ListRefsItem], str]:
        """Return up to max_results items and the token for the next page ("" when done)."""
        cursor = self._get_cursor(token)
        max_results = self.max_results

        refs: list[ListRefsItem] = []
        try:
            while len(refs) < max_results:
                attrs = next(cursor, None)
                if attrs is None:
                    break
                refs.append(ListRefsItem(ref=attrs.name, size=attrs.size))

            if len(refs) < max_results or cursor.exhausted():
                return refs, ""
        except StorageError as e:
            raise StorageIOError(
                f"unable to list objects after {len(refs)} refs: {e}", op=self._op, cause=e
            ) from e

        next_token = new_token()
        self._cursors.put(next_token, cursor)
        log.debug("%s: checkpointed cursor after %d refs", self._op, len(refs))
        return refs, next_token
