"""Live iteration state over a paged remote object listing."""

from collections import deque
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ObjectAttrs:
    """Name and size of a remote object as reported by a listing."""

    name: str
    size: int


class ObjectCursor(Iterator[ObjectAttrs]):
    """
    Peekable iterator over the objects of a remote catalog.

    The remote walks its catalog in internal pages; the cursor pulls a new
    page only when the current one is used up. A cursor holds live client
    state and exists only in process memory.

    Args:
        pages: Iterable yielding one sequence of raw entries per remote page.
            Errors raised while fetching a page propagate to the caller.
        parse_entry: Converts a raw entry into ObjectAttrs. May raise.
    """

    def __init__(
        self,
        pages: Iterable[Iterable[Any]],
        parse_entry: Callable[[Any], ObjectAttrs],
    ):
        self._pages = iter(pages)
        self._parse_entry = parse_entry
        self._pending: deque = deque()
        self._done = False

    def _fill(self) -> bool:
        while not self._pending:
            if self._done:
                return False
            try:
                page = next(self._pages)
            except StopIteration:
                self._done = True
                return False
            self._pending.extend(page)
        return True

    def __next__(self) -> ObjectAttrs:
        if not self._fill():
            raise StopIteration
        return self._parse_entry(self._pending.popleft())

    def exhausted(self) -> bool:
        """Return True if no objects remain. May fetch the next remote page."""
        return not self._fill()
