"""
Registry of storage backend constructors, looked up by name at runtime.
"""

import logging
import threading
from collections.abc import Callable, Mapping

from .base import StorageBackend
from .exceptions import StorageInvalidError

log = logging.getLogger(__name__)

StorageConstructor = Callable[[Mapping[str, str]], StorageBackend]


class StorageRegistry:
    """Stores named storage backend constructors. Owned by whatever composes the server."""

    def __init__(self):
        self._constructors: dict[str, StorageConstructor] = {}
        self._lock = threading.Lock()

    def register(self, name: str, constructor: StorageConstructor) -> None:
        """
        Registers a backend constructor under *name*.

        Raises:
            ValueError: If the name is empty or already registered.
        """
        if not name:
            raise ValueError("Storage backend name must not be empty")
        with self._lock:
            if name in self._constructors:
                raise ValueError(f"Storage backend {name!r} already registered")
            self._constructors[name] = constructor
        log.debug("Registered storage backend %s", name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._constructors)

    def dial(self, name: str, opts: Mapping[str, str] | None = None) -> StorageBackend:
        """
        Constructs the backend registered under *name* with *opts*.

        Raises:
            StorageInvalidError: If no backend is registered under *name*.
        """
        with self._lock:
            constructor = self._constructors.get(name)
        if constructor is None:
            raise StorageInvalidError(f"storage backend {name!r} not registered", op="storage.dial")
        log.info("Dialing storage backend %s", name)
        return constructor(dict(opts or {}))
