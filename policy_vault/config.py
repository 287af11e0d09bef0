"""
Vault Configuration — verification network, gateway key and validated settings.

Reads settings from environment variables:
    VAULT_CHAIN = <verification network, default "ethereum">
    VAULT_GATEWAY_KEY = <base64-encoded 32-byte key> (local gateway only)
    VAULT_CIPHER_BACKEND = aesgcm | chacha20
    VAULT_ROTATION_BATCH_SIZE = <integer>

Security Note:
    Never log key material.
"""
import os
import base64
import binascii
import secrets
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("policy_vault")

GATEWAY_KEY_LENGTH = 32
DEFAULT_CHAIN = "ethereum"


def load_gateway_key(name: str = "VAULT_GATEWAY_KEY") -> bytes:
    """Load the local gateway master key from the environment.

    Returns:
        Raw 32-byte key.

    Raises:
        RuntimeError: If the variable is not set.
        ValueError: If the value is not base64 or not exactly 32 bytes.
    """
    value = os.environ.get(name)
    if value is None:
        raise RuntimeError(
            f"{name} is not set. "
            f"Set {name}=<base64-encoded-32-byte-key>"
        )
    try:
        key_bytes = base64.b64decode(value, validate=True)
    except binascii.Error as err:
        raise ValueError(f"{name} is not valid base64") from err
    if len(key_bytes) != GATEWAY_KEY_LENGTH:
        raise ValueError(
            f"{name} must decode to exactly {GATEWAY_KEY_LENGTH} bytes, "
            f"got {len(key_bytes)}"
        )
    logger.debug("Loaded gateway key from %s", name)
    return key_bytes


def generate_gateway_key() -> str:
    """Generate a random 32-byte gateway key and return it as base64.

    This is a utility for operators to generate new keys.
    """
    return base64.b64encode(secrets.token_bytes(GATEWAY_KEY_LENGTH)).decode("ascii")


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    chain: str = Field(default=DEFAULT_CHAIN)
    gateway_key: Optional[bytes] = None
    cipher_backend: str = Field(default="aesgcm")
    rotation_batch_size: int = Field(default=50, ge=1, le=1000)

    model_config = {"frozen": True}

    @field_validator("chain")
    @classmethod
    def validate_chain(cls, v: str) -> str:
        """Chain identifiers are non-empty and case-insensitive."""
        v = v.strip().lower()
        if not v:
            raise ValueError("chain cannot be empty")
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("gateway_key")
    @classmethod
    def validate_key_length(cls, v: Optional[bytes]) -> Optional[bytes]:
        if v is not None and len(v) != GATEWAY_KEY_LENGTH:
            raise ValueError(
                f"gateway_key must be {GATEWAY_KEY_LENGTH} bytes, got {len(v)}"
            )
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        ``VAULT_GATEWAY_KEY`` is optional here; deployments that talk to a
        remote encryption network do not need it.
        """
        gateway_key = None
        if "VAULT_GATEWAY_KEY" in os.environ:
            gateway_key = load_gateway_key()
        return cls(
            chain=os.environ.get("VAULT_CHAIN", DEFAULT_CHAIN),
            gateway_key=gateway_key,
            cipher_backend=os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm"),
            rotation_batch_size=int(
                os.environ.get("VAULT_ROTATION_BATCH_SIZE", "50")
            ),
        )
