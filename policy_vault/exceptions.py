"""
Policy Vault errors.

Every failure path of the orchestrator raises one of these, so callers can
tell "wrong input", "access denied" and "corrupted or conflicting storage"
apart without inspecting messages.
"""
from typing import Optional


class PolicyVaultError(Exception):
    """Base class for all Policy Vault errors.

    Args:
        message: Human readable description.
        handle: Document handle involved in the failure, if any.
    """

    def __init__(self, message: str, handle: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.handle = handle

    def __str__(self) -> str:
        if self.handle is not None:
            return f"{self.message} (handle={self.handle})"
        return self.message


class InvalidPolicyKind(PolicyVaultError, ValueError):
    """Policy kind is unknown or does not match the policy variant."""


class InvalidPolicy(PolicyVaultError, ValueError):
    """Policy conditions are missing or malformed."""


class DecodeError(PolicyVaultError, ValueError):
    """A text-safe field or a stored document could not be decoded."""


class CorruptBundle(PolicyVaultError):
    """A stored bundle does not match the expected encoding."""


class DecryptionDenied(PolicyVaultError):
    """The gateway refused to decrypt (policy not satisfied or tampering)."""


class EncryptionFailed(PolicyVaultError):
    """The gateway could not encrypt the payload."""


class StoreError(PolicyVaultError):
    """The document store failed to create or load a document."""


class DocumentNotFound(StoreError):
    """No document exists for the given handle."""


class RotationFailed(PolicyVaultError):
    """Rotation aborted; the previously stored bundle is left intact."""


class ConcurrentModification(PolicyVaultError):
    """The document changed between load and update."""


class NotAuthenticated(PolicyVaultError):
    """The document store client has no established session."""
