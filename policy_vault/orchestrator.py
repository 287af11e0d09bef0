"""
Orchestrator — the public workflow surface of Policy Vault.

- ``encrypt_and_store(plaintext, policy)`` — encrypt under a policy and
  create a document holding the bundle
- ``load_and_decrypt(handle)`` — load a document and decrypt its payload
- ``rotate_access(handle, new_policy)`` — re-wrap the key under a new
  policy without re-encrypting the payload

The orchestrator keeps no state between calls: handles are owned by the
caller, and the gateway and store are injected at construction.

Security Note:
    Never log plaintext, ciphertext or key material. Only log handles,
    chains, policy kinds and sizes.
"""
import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError

from .bundle import decode_bundle, encode_bundle, to_wire
from .config import VaultConfig
from .exceptions import (
    ConcurrentModification,
    CorruptBundle,
    DecodeError,
    DecryptionDenied,
    EncryptionFailed,
    InvalidPolicy,
    InvalidPolicyKind,
    NotAuthenticated,
    PolicyVaultError,
    RotationFailed,
    StoreError,
)
from .interfaces import DocumentStore, EncryptionGateway
from .models import (
    ContractPolicy,
    DocumentMetadata,
    PolicyDescriptor,
    PolicyKind,
    StandardPolicy,
    WireBundle,
    WorkingBundle,
    parse_policy,
)

logger = logging.getLogger("policy_vault")

_POLICY_TYPES = (StandardPolicy, ContractPolicy)


def _validate_chain(chain: Optional[str]) -> str:
    if not isinstance(chain, str) or not chain.strip():
        raise ValueError("chain cannot be empty")
    return chain.strip()


class Orchestrator:
    """Encrypt, store, decrypt and rotate access of policy-gated bundles.

    Args:
        gateway: Encryption gateway (encrypt / decrypt / rewrap_key).
        store: Pre-authenticated document store client.
        chain: Default verification network used to evaluate policies.
        rotation_batch_size: Default batch size for batch rotations.

    Raises:
        NotAuthenticated: If the store client has no established session.
        ValueError: If ``chain`` is empty or the batch size is lower than 1.
    """

    def __init__(
        self,
        gateway: EncryptionGateway,
        store: DocumentStore,
        chain: str,
        rotation_batch_size: int = 50,
    ):
        if getattr(store, "authenticated", False) is not True:
            raise NotAuthenticated(
                "Document store client should be authenticated"
            )
        if rotation_batch_size < 1:
            raise ValueError(
                f"rotation_batch_size must be >= 1, got {rotation_batch_size}"
            )
        self._gateway = gateway
        self._store = store
        self._chain = _validate_chain(chain)
        self._rotation_batch_size = rotation_batch_size

    @classmethod
    def from_config(
        cls,
        gateway: EncryptionGateway,
        store: DocumentStore,
        config: VaultConfig,
    ) -> "Orchestrator":
        """Build an orchestrator using the chain and batch size of a VaultConfig."""
        return cls(
            gateway,
            store,
            config.chain,
            rotation_batch_size=config.rotation_batch_size,
        )

    @property
    def chain(self) -> str:
        return self._chain

    @property
    def rotation_batch_size(self) -> int:
        return self._rotation_batch_size

    async def connect(self) -> None:
        """Bootstrap the gateway connection, if the gateway needs one."""
        connect = getattr(self._gateway, "connect", None)
        if connect is not None:
            await connect()
            logger.info("Encryption gateway connected (chain=%s)", self._chain)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _coerce_policy(
        self, policy: Union[PolicyDescriptor, Mapping[str, Any]]
    ) -> PolicyDescriptor:
        """Return a policy model, parsing its mapping form if needed.

        Raises:
            InvalidPolicyKind: If the policy tag is not a known kind.
            InvalidPolicy: If the conditions are malformed.
        """
        if isinstance(policy, _POLICY_TYPES):
            return policy
        if not isinstance(policy, Mapping):
            raise InvalidPolicyKind(
                f"Unsupported policy value: {type(policy).__name__}"
            )
        tag = policy.get("type")
        if tag not in {kind.value for kind in PolicyKind}:
            raise InvalidPolicyKind(f"Unknown policy type: {tag!r}")
        try:
            return parse_policy(dict(policy))
        except ValidationError as err:
            raise InvalidPolicy(
                f"Invalid {tag} policy ({err.error_count()} error(s))"
            ) from err

    def _resolve_kind(
        self,
        policy: PolicyDescriptor,
        policy_kind: Union[PolicyKind, str, None],
    ) -> PolicyKind:
        """Validate ``policy_kind`` and that it matches the policy variant.

        Raises:
            InvalidPolicyKind: If the kind is unknown or mismatched.
        """
        if policy_kind is None:
            return policy.kind
        try:
            kind = PolicyKind(policy_kind)
        except ValueError as err:
            raise InvalidPolicyKind(
                f"policy_kind must be one of "
                f"{[k.value for k in PolicyKind]}, got {policy_kind!r}"
            ) from err
        if kind is not policy.kind:
            raise InvalidPolicyKind(
                f"policy_kind {kind.value} does not match policy type {policy.type}"
            )
        return kind

    # ------------------------------------------------------------------
    # Load helper
    # ------------------------------------------------------------------

    async def _load(self, handle: str) -> tuple[WorkingBundle, Optional[int]]:
        """Load a document and decode it into a working bundle.

        Returns:
            Tuple of (bundle, store version or None).

        Raises:
            StoreError: If the store cannot load the document.
            CorruptBundle: If the document does not decode.
        """
        try:
            stored = await self._store.load(handle)
        except StoreError as err:
            if err.handle is None:
                err.handle = handle
            raise
        except Exception as err:
            raise StoreError(f"Failed to load document: {err}", handle) from err
        try:
            bundle = decode_bundle(stored.content)
        except DecodeError as err:
            logger.warning("Corrupt bundle at handle=%s: %s", handle, err.message)
            raise CorruptBundle(
                f"Stored bundle is corrupt, is it the right handle? {err.message}",
                handle,
            ) from err
        return bundle, stored.version

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def encrypt_and_store(
        self,
        plaintext: Union[str, bytes],
        policy: Union[PolicyDescriptor, Mapping[str, Any]],
        chain: Optional[str] = None,
        policy_kind: Union[PolicyKind, str, None] = None,
        metadata: Optional[DocumentMetadata] = None,
    ) -> str:
        """Encrypt a payload under ``policy`` and store the bundle.

        Args:
            plaintext: Payload; ``str`` values are UTF-8 encoded.
            policy: Access policy gating decryption.
            chain: Verification network; defaults to the orchestrator's.
            policy_kind: Expected policy kind; defaults to the policy's own.
            metadata: Optional metadata for the created document.

        Returns:
            Handle of the created document.

        Raises:
            InvalidPolicyKind: Bad or mismatched kind (nothing is written).
            InvalidPolicy: Malformed policy conditions (nothing is written).
            ValueError: Empty chain (nothing is written).
            EncryptionFailed: The gateway refused to encrypt.
            StoreError: The document could not be created.
        """
        policy = self._coerce_policy(policy)
        kind = self._resolve_kind(policy, policy_kind)
        chain = self._chain if chain is None else _validate_chain(chain)
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")

        try:
            payload = await self._gateway.encrypt(plaintext, policy, chain, kind)
            bundle = WorkingBundle(
                ciphertext=payload.ciphertext,
                wrapped_key=payload.wrapped_key,
                policy=policy,
                chain=chain,
                policy_kind=kind,
            )
        except Exception as err:
            raise EncryptionFailed(f"Encryption failed: {err}") from err
        document = encode_bundle(bundle)

        try:
            handle = await self._store.create(document, metadata)
        except PolicyVaultError:
            raise
        except Exception as err:
            raise StoreError(f"Failed to create document: {err}") from err

        logger.debug(
            "Stored bundle: handle=%s chain=%s kind=%s size=%d",
            handle, chain, kind.value, len(bundle.ciphertext),
        )
        return handle

    async def load_bundle(self, handle: str) -> WireBundle:
        """Return the stored bundle without decrypting it.

        Raises:
            StoreError: If the document cannot be loaded.
            CorruptBundle: If the document does not decode.
        """
        bundle, _ = await self._load(handle)
        return to_wire(bundle)

    async def load_and_decrypt(self, handle: str) -> bytes:
        """Load the bundle at ``handle`` and decrypt its payload.

        Raises:
            StoreError: If the document cannot be loaded.
            CorruptBundle: If the stored bundle is malformed.
            DecryptionDenied: If the gateway refuses to decrypt.
        """
        bundle, _ = await self._load(handle)
        try:
            plaintext = await self._gateway.decrypt(
                bundle.ciphertext,
                bundle.wrapped_key,
                bundle.policy,
                bundle.chain,
                bundle.policy_kind,
            )
        except Exception as err:
            logger.debug("Decryption denied: handle=%s", handle)
            raise DecryptionDenied(f"Decryption denied: {err}", handle) from err
        logger.debug("Decrypted bundle: handle=%s", handle)
        return plaintext

    async def load_and_decrypt_text(
        self, handle: str, encoding: str = "utf-8"
    ) -> str:
        """Like :meth:`load_and_decrypt`, returning decoded text."""
        return (await self.load_and_decrypt(handle)).decode(encoding)

    async def rotate_access(
        self,
        handle: str,
        new_policy: Union[PolicyDescriptor, Mapping[str, Any]],
    ) -> str:
        """Replace the policy governing ``handle`` without re-encrypting.

        The wrapped key is re-wrapped under ``new_policy`` and the rewrapped
        key replaces the stored one; the ciphertext, chain and policy kind
        are kept as stored. The policy kind cannot change on rotation.

        Returns:
            The same handle.

        Raises:
            InvalidPolicyKind: New policy kind differs from the stored kind.
            InvalidPolicy: Malformed new policy conditions.
            CorruptBundle: The stored bundle is malformed.
            RotationFailed: Gateway or store failure; stored bundle intact.
            ConcurrentModification: The document changed since it was loaded.
        """
        new_policy = self._coerce_policy(new_policy)
        try:
            current, version = await self._load(handle)
        except StoreError as err:
            raise RotationFailed(
                f"Rotation failed loading document: {err.message}", handle
            ) from err

        if new_policy.kind is not current.policy_kind:
            raise InvalidPolicyKind(
                f"Cannot rotate a {current.policy_kind.value} bundle "
                f"to a {new_policy.kind.value} policy",
                handle,
            )

        try:
            rewrapped = await self._gateway.rewrap_key(
                current.wrapped_key, new_policy, current.chain,
            )
        except Exception as err:
            raise RotationFailed(
                f"Rotation failed re-wrapping key: {err}", handle
            ) from err

        rotated = WorkingBundle(
            ciphertext=current.ciphertext,
            wrapped_key=rewrapped,
            policy=new_policy,
            chain=current.chain,
            policy_kind=current.policy_kind,
        )

        try:
            await self._store.update(
                handle, encode_bundle(rotated), expected_version=version,
            )
        except ConcurrentModification as err:
            if err.handle is None:
                err.handle = handle
            raise
        except Exception as err:
            raise RotationFailed(
                f"Rotation failed updating document: {err}", handle
            ) from err

        logger.info(
            "Rotated access: handle=%s chain=%s kind=%s",
            handle, current.chain, current.policy_kind.value,
        )
        return handle
