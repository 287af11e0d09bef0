"""
Collaborator interfaces consumed by the Orchestrator.

Neither the encryption network nor the document store is implemented here;
any object with these async methods can be injected. ``policy_vault.local``
ships in-process implementations for development and tests.
"""
from collections.abc import Mapping
from typing import Any, Optional, Protocol, runtime_checkable

from .models import (
    DocumentMetadata,
    EncryptedPayload,
    PolicyDescriptor,
    PolicyKind,
    StoredDocument,
)


@runtime_checkable
class EncryptionGateway(Protocol):
    """Encrypts under a policy and wraps/unwraps the symmetric key."""

    async def encrypt(
        self,
        plaintext: bytes,
        policy: PolicyDescriptor,
        chain: str,
        kind: PolicyKind,
    ) -> EncryptedPayload:
        ...

    async def decrypt(
        self,
        ciphertext: bytes,
        wrapped_key: bytes,
        policy: PolicyDescriptor,
        chain: str,
        kind: PolicyKind,
    ) -> bytes:
        ...

    async def rewrap_key(
        self,
        wrapped_key: bytes,
        new_policy: PolicyDescriptor,
        chain: str,
    ) -> bytes:
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Versioned, updatable document storage addressed by opaque handles.

    ``update`` must raise
    :class:`~policy_vault.exceptions.ConcurrentModification` when
    ``expected_version`` is given and no longer matches the stored version.
    """

    @property
    def authenticated(self) -> bool:
        ...

    async def create(
        self,
        content: Mapping[str, Any],
        metadata: Optional[DocumentMetadata] = None,
    ) -> str:
        ...

    async def load(self, handle: str) -> StoredDocument:
        ...

    async def update(
        self,
        handle: str,
        content: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> None:
        ...
