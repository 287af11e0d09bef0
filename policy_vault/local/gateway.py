"""
LocalGateway — in-process encryption gateway.

Stands in for a remote encryption network during development and tests.
Access conditions are not evaluated against a real chain: an injected async
``verifier(policy, chain) -> bool`` decides whether the caller satisfies a
policy.
"""
import logging
from collections.abc import Awaitable, Callable

from cryptography.exceptions import InvalidTag

from ..config import VaultConfig
from ..models import EncryptedPayload, PolicyDescriptor, PolicyKind
from .crypto import (
    digests_match,
    generate_data_key,
    get_cipher_cls,
    open_sealed,
    policy_digest,
    seal,
    unwrap_key,
    wrap_key,
)

logger = logging.getLogger("policy_vault")

Verifier = Callable[[PolicyDescriptor, str], Awaitable[bool]]


class AccessDenied(Exception):
    """Raised by the local gateway when it refuses to release a key."""


class LocalGateway:
    """Envelope encryption gated by a policy verifier.

    Args:
        master_key: 32-byte key used to wrap data keys.
        verifier: Async callable deciding whether a policy is satisfied.
        cipher_backend: ``aesgcm`` or ``chacha20``.
    """

    def __init__(
        self,
        master_key: bytes,
        verifier: Verifier,
        cipher_backend: str = "aesgcm",
    ):
        if len(master_key) != 32:
            raise ValueError(
                f"master_key must be 32 bytes, got {len(master_key)}"
            )
        self._master_key = master_key
        self._verifier = verifier
        self._cipher = get_cipher_cls(cipher_backend)
        self._connected = False

    @classmethod
    def from_config(cls, config: VaultConfig, verifier: Verifier) -> "LocalGateway":
        """Build a gateway from the key and backend in a VaultConfig.

        Raises:
            RuntimeError: If the config carries no gateway key.
        """
        if config.gateway_key is None:
            raise RuntimeError("VaultConfig has no gateway_key for LocalGateway")
        return cls(config.gateway_key, verifier, config.cipher_backend)

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def encrypt(
        self,
        plaintext: bytes,
        policy: PolicyDescriptor,
        chain: str,
        kind: PolicyKind,
    ) -> EncryptedPayload:
        if kind is not policy.kind:
            raise ValueError(
                f"kind {kind.value} does not match policy type {policy.type}"
            )
        data_key = generate_data_key()
        ciphertext = seal(data_key, plaintext, cipher_cls=self._cipher)
        wrapped = wrap_key(
            self._master_key, data_key, policy_digest(policy, chain),
            cipher_cls=self._cipher,
        )
        return EncryptedPayload(ciphertext=ciphertext, wrapped_key=wrapped)

    def _unwrap(self, wrapped_key: bytes) -> tuple[bytes, bytes]:
        try:
            return unwrap_key(self._master_key, wrapped_key, cipher_cls=self._cipher)
        except (InvalidTag, ValueError) as err:
            raise AccessDenied("Wrapped key was not issued by this gateway") from err

    async def decrypt(
        self,
        ciphertext: bytes,
        wrapped_key: bytes,
        policy: PolicyDescriptor,
        chain: str,
        kind: PolicyKind,
    ) -> bytes:
        """Release the data key and decrypt, if the policy is satisfied.

        Raises:
            AccessDenied: Key not bound to this policy, conditions not
                satisfied, or ciphertext tampered.
        """
        if kind is not policy.kind:
            raise AccessDenied(
                f"kind {kind.value} does not match policy type {policy.type}"
            )
        digest, data_key = self._unwrap(wrapped_key)
        if not digests_match(digest, policy_digest(policy, chain)):
            raise AccessDenied("Wrapped key is not bound to this policy")
        if not await self._verifier(policy, chain):
            raise AccessDenied("Access conditions not satisfied")
        try:
            return open_sealed(data_key, ciphertext, cipher_cls=self._cipher)
        except (InvalidTag, ValueError) as err:
            raise AccessDenied("Ciphertext failed authentication") from err

    async def rewrap_key(
        self,
        wrapped_key: bytes,
        new_policy: PolicyDescriptor,
        chain: str,
    ) -> bytes:
        """Re-bind an existing data key to ``new_policy``.

        The data key itself is unchanged, so ciphertext produced under the
        old policy stays decryptable under the new one.
        """
        _, data_key = self._unwrap(wrapped_key)
        logger.debug("Re-wrapping key for chain=%s kind=%s", chain, new_policy.kind.value)
        return wrap_key(
            self._master_key, data_key, policy_digest(new_policy, chain),
            cipher_cls=self._cipher,
        )
