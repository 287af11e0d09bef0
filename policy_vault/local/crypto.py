"""
Local Crypto Core — key derivation, envelope sealing and policy digests.

Implements the envelope used by the local gateway:
- Payload layer: random 32-byte data key → AEAD → [nonce 12B][payload+tag]
- Key layer: HKDF(master, "vault-wrap") → AEAD(data_key, aad=digest)
  → [policy digest 32B][nonce 12B][sealed data key+tag]

The policy digest is SHA-256 over the canonical JSON form of (policy, chain),
so a wrapped key only opens for the exact policy it was wrapped under.

Security Note:
    Never log plaintext, ciphertext or key values.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import hmac
import logging
from typing import Optional

import orjson
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..models import PolicyDescriptor

logger = logging.getLogger("policy_vault")

NONCE_SIZE = 12  # 96-bit nonce
KEY_LENGTH = 32  # 256-bit keys
DIGEST_SIZE = 32  # SHA-256
TAG_SIZE = 16

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


def get_cipher_cls(backend: str = "aesgcm") -> type:
    """Return the AEAD cipher class for a backend name.

    Raises:
        ValueError: If the backend is not supported.
    """
    try:
        return _CIPHERS[backend.lower()]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {backend}") from None


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(seed: bytes, context: str) -> bytes:
    """Derive a 32-byte key using HKDF-SHA256.

    Args:
        seed: Input key material (the gateway master key).
        context: Context string for domain separation (e.g. "vault-wrap").

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # deterministic: the same master key must unwrap later
        info=context.encode("utf-8"),
    )
    return hkdf.derive(seed)


def generate_data_key() -> bytes:
    return os.urandom(KEY_LENGTH)


# ---------------------------------------------------------------------------
# AEAD sealing
# ---------------------------------------------------------------------------

def seal(
    key: bytes,
    plaintext: bytes,
    aad: Optional[bytes] = None,
    cipher_cls: type = AESGCM,
) -> bytes:
    """Encrypt ``plaintext`` under ``key``.

    Format: [nonce 12B][encrypted_payload + tag 16B]
    """
    nonce = os.urandom(NONCE_SIZE)
    return nonce + cipher_cls(key).encrypt(nonce, plaintext, aad)


def open_sealed(
    key: bytes,
    sealed: bytes,
    aad: Optional[bytes] = None,
    cipher_cls: type = AESGCM,
) -> bytes:
    """Decrypt data produced by :func:`seal`.

    Raises:
        ValueError: If ``sealed`` is shorter than nonce + tag.
        cryptography.exceptions.InvalidTag: On a wrong key, aad or tampering.
    """
    _min = NONCE_SIZE + TAG_SIZE
    if len(sealed) < _min:
        raise ValueError(
            f"sealed data too short: {len(sealed)} bytes (minimum {_min})"
        )
    nonce = sealed[:NONCE_SIZE]
    return cipher_cls(key).decrypt(nonce, sealed[NONCE_SIZE:], aad)


# ---------------------------------------------------------------------------
# Policy binding
# ---------------------------------------------------------------------------

def policy_digest(policy: PolicyDescriptor, chain: str) -> bytes:
    """SHA-256 of the canonical JSON form of (policy, chain)."""
    canonical = orjson.dumps(
        {
            "chain": chain,
            "policy": policy.model_dump(mode="json", by_alias=True),
        },
        option=orjson.OPT_SORT_KEYS,
    )
    digest = hashes.Hash(hashes.SHA256())
    digest.update(canonical)
    return digest.finalize()


def wrap_key(
    master_key: bytes,
    data_key: bytes,
    digest: bytes,
    cipher_cls: type = AESGCM,
) -> bytes:
    """Wrap a data key, binding it to a policy digest.

    Format: [digest 32B][nonce 12B][sealed data key + tag]
    """
    kek = derive_key(master_key, "vault-wrap")
    return digest + seal(kek, data_key, aad=digest, cipher_cls=cipher_cls)


def unwrap_key(
    master_key: bytes,
    wrapped_key: bytes,
    cipher_cls: type = AESGCM,
) -> tuple[bytes, bytes]:
    """Unwrap a key produced by :func:`wrap_key`.

    Returns:
        Tuple of (policy digest, data key).

    Raises:
        ValueError: If the wrapped key is truncated.
        cryptography.exceptions.InvalidTag: If it was not wrapped by this key.
    """
    _min = DIGEST_SIZE + NONCE_SIZE + TAG_SIZE
    if len(wrapped_key) < _min:
        raise ValueError(
            f"wrapped key too short: {len(wrapped_key)} bytes (minimum {_min})"
        )
    digest = wrapped_key[:DIGEST_SIZE]
    kek = derive_key(master_key, "vault-wrap")
    data_key = open_sealed(
        kek, wrapped_key[DIGEST_SIZE:], aad=digest, cipher_cls=cipher_cls,
    )
    return digest, data_key


def digests_match(a: bytes, b: bytes) -> bool:
    return hmac.compare_digest(a, b)
