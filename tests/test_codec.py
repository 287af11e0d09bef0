"""Tests for the base64 codec and the bundle codec."""
import os

import pytest

from policy_vault import (
    DecodeError,
    PolicyKind,
    WireBundle,
    WorkingBundle,
    codec,
)
from policy_vault.bundle import (
    decode_bundle,
    encode_bundle,
    from_document,
    to_document,
    to_wire,
    to_working,
)

from conftest import CHAIN, RULE_R, contract_policy, ownership_policy


@pytest.fixture
def working():
    return WorkingBundle(
        ciphertext=os.urandom(64),
        wrapped_key=os.urandom(76),
        policy=ownership_policy(RULE_R),
        chain=CHAIN,
        policy_kind=PolicyKind.STANDARD,
    )


class TestCodec:
    """Tests for codec.encode / codec.decode."""

    @pytest.mark.parametrize("raw", [b"", b"\x00", b"hello", bytes(range(256))])
    def test_roundtrip(self, raw):
        assert codec.decode(codec.encode(raw)) == raw

    def test_encode_is_text(self):
        assert codec.encode(b"hello") == "aGVsbG8="

    def test_encode_is_deterministic(self):
        raw = os.urandom(32)
        assert codec.encode(raw) == codec.encode(raw)

    @pytest.mark.parametrize("text", ["abc", "no@t-b64!", "aGVsbG8", "héllo==="])
    def test_decode_rejects_malformed(self, text):
        with pytest.raises(DecodeError):
            codec.decode(text)

    def test_decode_rejects_non_text(self):
        with pytest.raises(DecodeError, match="Expected base64 text"):
            codec.decode(b"aGVsbG8=")

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            codec.decode("!!")


class TestBundleCodec:
    """Tests for working <-> wire <-> document mapping."""

    def test_bundle_roundtrip(self, working):
        assert to_working(to_wire(working)) == working

    def test_contract_bundle_roundtrip(self):
        bundle = WorkingBundle(
            ciphertext=b"\x01\x02",
            wrapped_key=b"\x03",
            policy=contract_policy(RULE_R),
            chain=CHAIN,
            policy_kind=PolicyKind.CONTRACT,
        )
        assert decode_bundle(encode_bundle(bundle)) == bundle

    def test_to_wire_encodes_binary_fields_only(self, working):
        wire = to_wire(working)
        assert wire.ciphertext == codec.encode(working.ciphertext)
        assert wire.wrapped_key == codec.encode(working.wrapped_key)
        assert wire.policy == working.policy
        assert wire.chain == working.chain
        assert wire.policy_kind is working.policy_kind

    def test_document_field_names(self, working):
        document = to_document(to_wire(working))
        assert set(document) == {
            "encryptedZip",
            "symKey",
            "accessControlConditions",
            "chain",
            "accessControlConditionType",
        }
        assert document["accessControlConditionType"] == "standard"
        condition = document["accessControlConditions"]["conditions"][0]
        assert condition["contractAddress"] == RULE_R
        assert condition["returnValueTest"]["comparator"] == ">"

    def test_document_roundtrip(self, working):
        wire = to_wire(working)
        assert from_document(to_document(wire)) == wire

    def test_malformed_wrapped_key(self, working):
        wire = to_wire(working).model_copy(update={"wrapped_key": "%%%"})
        with pytest.raises(DecodeError, match="wrapped_key"):
            to_working(wire)

    def test_malformed_ciphertext(self, working):
        wire = to_wire(working).model_copy(update={"ciphertext": "abc"})
        with pytest.raises(DecodeError, match="ciphertext"):
            to_working(wire)

    def test_kind_mismatch_on_wire(self, working):
        wire = to_wire(working).model_copy(
            update={"policy_kind": PolicyKind.CONTRACT}
        )
        with pytest.raises(DecodeError, match="Inconsistent"):
            to_working(wire)

    def test_missing_field(self, working):
        document = encode_bundle(working)
        del document["symKey"]
        with pytest.raises(DecodeError):
            from_document(document)

    def test_not_a_mapping(self):
        with pytest.raises(DecodeError, match="mapping"):
            from_document("encryptedZip")

    def test_unknown_policy_type(self, working):
        document = encode_bundle(working)
        document["accessControlConditions"]["type"] = "magic"
        with pytest.raises(DecodeError):
            decode_bundle(document)

    def test_kind_mismatch_is_decode_error(self, working):
        document = encode_bundle(working)
        document["accessControlConditionType"] = "contract-based"
        with pytest.raises(DecodeError):
            decode_bundle(document)

    def test_legacy_document(self, working):
        """Documents holding a bare condition list and legacy type tags."""
        document = encode_bundle(working)
        document["accessControlConditions"] = (
            document["accessControlConditions"]["conditions"]
        )
        document["accessControlConditionType"] = "accessControlConditions"
        bundle = decode_bundle(document)
        assert bundle == working
        assert isinstance(from_document(document), WireBundle)
