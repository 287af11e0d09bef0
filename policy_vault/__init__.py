"""Policy Vault — policy-gated encryption bundles in a versioned document store.

Security Note (Threat Model):
    Bundles are stored as-is in the document store; confidentiality rests
    entirely on the encryption gateway. Rotation re-wraps the key under the
    new policy but cannot revoke copies of the old wrapped key that a reader
    may already hold.
"""

from .version import __version__
from .orchestrator import Orchestrator
from .rotation import rotate_access_batch
from .config import VaultConfig, load_gateway_key, generate_gateway_key
from .models import (
    PolicyKind,
    ReturnValueTest,
    AccessCondition,
    ContractCondition,
    StandardPolicy,
    ContractPolicy,
    PolicyDescriptor,
    WorkingBundle,
    WireBundle,
    DocumentMetadata,
    StoredDocument,
    EncryptedPayload,
    parse_policy,
)
from .exceptions import (
    PolicyVaultError,
    InvalidPolicy,
    InvalidPolicyKind,
    DecodeError,
    CorruptBundle,
    DecryptionDenied,
    EncryptionFailed,
    StoreError,
    DocumentNotFound,
    RotationFailed,
    ConcurrentModification,
    NotAuthenticated,
)

__all__ = [
    "__version__",
    "Orchestrator",
    "rotate_access_batch",
    "VaultConfig",
    "load_gateway_key",
    "generate_gateway_key",
    "PolicyKind",
    "ReturnValueTest",
    "AccessCondition",
    "ContractCondition",
    "StandardPolicy",
    "ContractPolicy",
    "PolicyDescriptor",
    "WorkingBundle",
    "WireBundle",
    "DocumentMetadata",
    "StoredDocument",
    "EncryptedPayload",
    "parse_policy",
    "PolicyVaultError",
    "InvalidPolicy",
    "InvalidPolicyKind",
    "DecodeError",
    "CorruptBundle",
    "DecryptionDenied",
    "EncryptionFailed",
    "StoreError",
    "DocumentNotFound",
    "RotationFailed",
    "ConcurrentModification",
    "NotAuthenticated",
]
