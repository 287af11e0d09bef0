"""
Bundle Codec — maps working bundles (raw bytes) to wire bundles (base64 text)
and wire bundles to the JSON documents kept by the store.
"""
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from . import codec
from .exceptions import DecodeError
from .models import WireBundle, WorkingBundle


def to_wire(bundle: WorkingBundle) -> WireBundle:
    """Encode ciphertext and wrapped key; copy everything else."""
    return WireBundle(
        ciphertext=codec.encode(bundle.ciphertext),
        wrapped_key=codec.encode(bundle.wrapped_key),
        policy=bundle.policy,
        chain=bundle.chain,
        policy_kind=bundle.policy_kind,
    )


def to_working(wire: WireBundle) -> WorkingBundle:
    """Decode ciphertext and wrapped key back to raw bytes.

    Key material is not checked against any encryption session here; that
    happens, if at all, inside the gateway on decrypt.

    Raises:
        DecodeError: If either field is not valid base64, or the policy
            kind does not match the policy.
    """
    fields = {}
    for name in ("ciphertext", "wrapped_key"):
        try:
            fields[name] = codec.decode(getattr(wire, name))
        except DecodeError as err:
            raise DecodeError(f"Malformed {name}: {err.message}") from err
    try:
        return WorkingBundle(
            ciphertext=fields["ciphertext"],
            wrapped_key=fields["wrapped_key"],
            policy=wire.policy,
            chain=wire.chain,
            policy_kind=wire.policy_kind,
        )
    except ValidationError as err:
        # decoded fields valid but the record as a whole is inconsistent
        raise DecodeError(
            f"Inconsistent bundle ({err.error_count()} error(s))"
        ) from err


def to_document(wire: WireBundle) -> dict[str, Any]:
    """Return the JSON-ready mapping persisted in the document store."""
    return wire.model_dump(mode="json", by_alias=True)


def from_document(content: Mapping[str, Any]) -> WireBundle:
    """Parse a stored document into a WireBundle.

    Raises:
        DecodeError: If fields are missing, mistyped or the policy is invalid.
    """
    if not isinstance(content, Mapping):
        raise DecodeError(
            f"Document content must be a mapping, got {type(content).__name__}"
        )
    try:
        return WireBundle.model_validate(dict(content))
    except ValidationError as err:
        raise DecodeError(
            f"Document is not a valid bundle ({err.error_count()} error(s))"
        ) from err


def encode_bundle(bundle: WorkingBundle) -> dict[str, Any]:
    """Working bundle straight to its stored document."""
    return to_document(to_wire(bundle))


def decode_bundle(content: Mapping[str, Any]) -> WorkingBundle:
    """Stored document straight to a working bundle.

    Raises:
        DecodeError: On any malformed field.
    """
    return to_working(from_document(content))
