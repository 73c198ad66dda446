"""Object-store collaborator for interview attachments.

The pipeline stores opaque references only. How bytes are persisted
(keys, buckets, retention) belongs to the store implementation.
"""

import logging
import uuid
from typing import Protocol

logger = logging.getLogger(__name__)


class ObjectStoreError(Exception):
    """Raised by a store implementation when it cannot serve a request."""


class ObjectStore(Protocol):
    """Minimal interface the transition engine needs from a store."""

    async def put(self, content: bytes, mime_type: str, filename: str) -> str:
        """Persist bytes and return an opaque reference.

        Raises:
            ObjectStoreError: Store unavailable or write rejected.
        """
        ...

    async def delete(self, ref: str) -> None:
        """Remove a previously stored object. Unknown refs are ignored.

        Raises:
            ObjectStoreError: Store unavailable.
        """
        ...


class InMemoryObjectStore:
    """Process-local store for local-first mode and tests.

    Objects are kept in a dict keyed by reference and vanish on restart.
    """

    def __init__(self) -> None:
        self._objects: dict[str, tuple[str, str, bytes]] = {}

    async def put(self, content: bytes, mime_type: str, filename: str) -> str:
        ref = f"mem://{uuid.uuid4()}/{filename}"
        self._objects[ref] = (mime_type, filename, content)
        logger.debug("Stored %d bytes as %s", len(content), ref)
        return ref

    async def delete(self, ref: str) -> None:
        self._objects.pop(ref, None)

    def get(self, ref: str) -> tuple[str, str, bytes] | None:
        """Return (mime_type, filename, content) for a reference."""
        return self._objects.get(ref)

    def __contains__(self, ref: object) -> bool:
        return ref in self._objects

    def __len__(self) -> int:
        return len(self._objects)


_default_store = InMemoryObjectStore()


def get_object_store() -> ObjectStore:
    """Return the process-wide object store (FastAPI dependency)."""
    return _default_store
