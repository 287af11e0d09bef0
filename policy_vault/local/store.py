"""
MemoryDocumentStore — versioned document store kept in process memory.

Every create/update appends a version; ``load`` returns the latest one.
Content is round-tripped through orjson on the way in and out, so callers
never hold a reference to stored state.
"""
import uuid
import logging
from collections.abc import Mapping
from typing import Any, Optional

import orjson

from ..exceptions import ConcurrentModification, DocumentNotFound
from ..models import DocumentMetadata, StoredDocument

logger = logging.getLogger("policy_vault")


class MemoryDocumentStore:
    """In-memory document store with optimistic concurrency.

    Args:
        authenticated: Whether the store session is established.
    """

    def __init__(self, authenticated: bool = True):
        self._authenticated = authenticated
        self._versions: dict[str, list[bytes]] = {}
        self._metadata: dict[str, Optional[DocumentMetadata]] = {}

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def _versions_of(self, handle: str) -> list[bytes]:
        try:
            return self._versions[handle]
        except KeyError:
            raise DocumentNotFound("No document for handle", handle) from None

    async def create(
        self,
        content: Mapping[str, Any],
        metadata: Optional[DocumentMetadata] = None,
    ) -> str:
        handle = uuid.uuid4().hex
        self._versions[handle] = [orjson.dumps(dict(content))]
        self._metadata[handle] = metadata
        logger.debug("Document created: handle=%s", handle)
        return handle

    async def load(self, handle: str) -> StoredDocument:
        versions = self._versions_of(handle)
        return StoredDocument(
            content=orjson.loads(versions[-1]),
            version=len(versions) - 1,
        )

    async def update(
        self,
        handle: str,
        content: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> None:
        """Append a new version.

        Raises:
            DocumentNotFound: Unknown handle.
            ConcurrentModification: ``expected_version`` is stale.
        """
        versions = self._versions_of(handle)
        current = len(versions) - 1
        if expected_version is not None and expected_version != current:
            raise ConcurrentModification(
                f"Expected version {expected_version}, store is at {current}",
                handle,
            )
        versions.append(orjson.dumps(dict(content)))
        logger.debug("Document updated: handle=%s version=%d", handle, current + 1)

    def history(self, handle: str) -> list[dict[str, Any]]:
        """All versions of a document, oldest first."""
        return [orjson.loads(raw) for raw in self._versions_of(handle)]

    def metadata(self, handle: str) -> Optional[DocumentMetadata]:
        self._versions_of(handle)
        return self._metadata[handle]
