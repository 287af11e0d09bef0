"""
Policy Vault data model.

Access policies are a tagged union over the two policy kinds, each variant
with an explicit record of its conditions. Bundles exist in two shapes:

- ``WorkingBundle``: raw ciphertext and wrapped key, handed to the gateway.
- ``WireBundle``: the same record with both binary fields base64 encoded,
  persisted in the document store under the legacy document field names
  (``encryptedZip``, ``symKey``, ``accessControlConditions``, ``chain``,
  ``accessControlConditionType``).

All models are frozen; a new policy or bundle is always a new value.
"""
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel


class PolicyKind(str, Enum):
    """How the encryption gateway interprets a policy."""

    STANDARD = "standard"
    CONTRACT = "contract-based"

    @classmethod
    def _missing_(cls, value: object) -> Optional["PolicyKind"]:
        # documents written by the older tooling carry these tags
        legacy = {
            "accessControlConditions": cls.STANDARD,
            "evmContractConditions": cls.CONTRACT,
        }
        if isinstance(value, str):
            return legacy.get(value)
        return None


_COMPARATORS = frozenset({"=", "!=", ">", ">=", "<", "<=", "contains"})

_FROZEN_CAMEL = {
    "frozen": True,
    "alias_generator": to_camel,
    "populate_by_name": True,
}


class ReturnValueTest(BaseModel):
    """Comparison applied to the value returned by a condition check."""

    key: str = ""
    comparator: str
    value: str

    model_config = _FROZEN_CAMEL

    @field_validator("comparator")
    @classmethod
    def validate_comparator(cls, v: str) -> str:
        if v not in _COMPARATORS:
            raise ValueError(f"Unsupported comparator: {v}")
        return v


class AccessCondition(BaseModel):
    """A standard condition (balance, ownership, membership, signature...)."""

    contract_address: str = ""
    standard_contract_type: str = ""
    chain: str
    method: str = ""
    parameters: tuple[str, ...] = ()
    return_value_test: ReturnValueTest

    model_config = _FROZEN_CAMEL


class ContractCondition(BaseModel):
    """A condition evaluated by calling an arbitrary contract function."""

    contract_address: str
    function_name: str
    function_params: tuple[str, ...] = ()
    function_abi: dict[str, Any] = Field(default_factory=dict)
    chain: str
    return_value_test: ReturnValueTest

    model_config = _FROZEN_CAMEL


class StandardPolicy(BaseModel):
    type: Literal["standard"] = "standard"
    conditions: tuple[AccessCondition, ...] = Field(min_length=1)

    model_config = _FROZEN_CAMEL

    @property
    def kind(self) -> PolicyKind:
        return PolicyKind.STANDARD


class ContractPolicy(BaseModel):
    type: Literal["contract-based"] = "contract-based"
    conditions: tuple[ContractCondition, ...] = Field(min_length=1)

    model_config = _FROZEN_CAMEL

    @property
    def kind(self) -> PolicyKind:
        return PolicyKind.CONTRACT


PolicyDescriptor = Annotated[
    Union[StandardPolicy, ContractPolicy],
    Field(discriminator="type"),
]

_policy_adapter: TypeAdapter = TypeAdapter(PolicyDescriptor)


def parse_policy(data: Any) -> Union[StandardPolicy, ContractPolicy]:
    """Build a PolicyDescriptor from its mapping form.

    Raises:
        pydantic.ValidationError: If the tag or any condition is invalid.
    """
    return _policy_adapter.validate_python(data)


class EncryptedPayload(BaseModel):
    """What the gateway returns from ``encrypt``."""

    ciphertext: bytes
    wrapped_key: bytes

    model_config = {"frozen": True}


class WorkingBundle(BaseModel):
    """In-memory bundle: raw ciphertext and wrapped key."""

    ciphertext: bytes
    wrapped_key: bytes
    policy: PolicyDescriptor
    chain: str = Field(min_length=1)
    policy_kind: PolicyKind

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_kind_matches(self) -> "WorkingBundle":
        """Ensure the advertised kind is the policy's own kind."""
        if self.policy.kind is not self.policy_kind:
            raise ValueError(
                f"policy_kind {self.policy_kind.value} does not match "
                f"policy type {self.policy.type}"
            )
        return self


class WireBundle(BaseModel):
    """Persisted bundle: ciphertext and wrapped key as base64 text."""

    ciphertext: str = Field(alias="encryptedZip")
    wrapped_key: str = Field(alias="symKey")
    policy: PolicyDescriptor = Field(alias="accessControlConditions")
    chain: str = Field(min_length=1)
    policy_kind: PolicyKind = Field(alias="accessControlConditionType")

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_layout(cls, data: Any) -> Any:
        """Accept legacy kind tags and conditions stored as a bare list."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        kind_key = (
            "accessControlConditionType"
            if "accessControlConditionType" in data else "policy_kind"
        )
        if isinstance(data.get(kind_key), str):
            data[kind_key] = PolicyKind(data[kind_key])
        policy_key = (
            "accessControlConditions"
            if "accessControlConditions" in data else "policy"
        )
        conditions = data.get(policy_key)
        if isinstance(conditions, list):
            kind = PolicyKind(data.get(kind_key))
            data[policy_key] = {"type": kind.value, "conditions": conditions}
        return data


class DocumentMetadata(BaseModel):
    """Optional metadata attached to a document when it is created."""

    controllers: tuple[str, ...] = ()
    family: Optional[str] = None
    tags: tuple[str, ...] = ()
    schema_id: Optional[str] = Field(default=None, alias="schema")

    model_config = {"frozen": True, "populate_by_name": True}


class StoredDocument(BaseModel):
    """A document as returned by the store.

    ``version`` is None for stores without optimistic concurrency.
    """

    content: dict[str, Any]
    version: Optional[int] = None
