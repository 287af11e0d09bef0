"""Tests for batch access rotation."""
import logging

import pytest

from policy_vault import (
    ConcurrentModification,
    Orchestrator,
    VaultConfig,
    rotate_access_batch,
)
from policy_vault.local import MemoryDocumentStore

from conftest import CHAIN, RULE_R2


class ConflictingStore(MemoryDocumentStore):
    """Rejects updates to a fixed set of handles as concurrent writes."""

    def __init__(self):
        super().__init__()
        self.contested: set[str] = set()

    async def update(self, handle, content, expected_version=None):
        if handle in self.contested:
            raise ConcurrentModification("document changed", handle)
        await super().update(handle, content, expected_version)


@pytest.fixture
def conflicting_store():
    return ConflictingStore()


@pytest.fixture
def orch(gateway, conflicting_store):
    return Orchestrator(gateway, conflicting_store, CHAIN)


class TestRotateAccessBatch:

    @pytest.mark.asyncio
    async def test_rotates_all(self, orch, credentials, policy_r, policy_r2):
        handles = [
            await orch.encrypt_and_store(f"secret-{i}", policy_r) for i in range(5)
        ]
        stats = await rotate_access_batch(orch, handles, policy_r2, batch_size=2)
        assert stats == {"total": 5, "rotated": 5, "errors": 0, "conflicts": 0}

        credentials.holdings = {RULE_R2}
        for i, handle in enumerate(handles):
            assert await orch.load_and_decrypt_text(handle) == f"secret-{i}"

    @pytest.mark.asyncio
    async def test_failures_do_not_abort(
        self, orch, conflicting_store, policy_r, policy_r2
    ):
        good = await orch.encrypt_and_store("a", policy_r)
        contested = await orch.encrypt_and_store("b", policy_r)
        conflicting_store.contested.add(contested)

        stats = await rotate_access_batch(
            orch, [good, "missing", contested], policy_r2,
        )
        assert stats == {"total": 3, "rotated": 1, "errors": 1, "conflicts": 1}
        assert (await orch.load_bundle(good)).policy == policy_r2
        assert (await orch.load_bundle(contested)).policy == policy_r

    @pytest.mark.asyncio
    async def test_batch_size_from_config(
        self, gateway, conflicting_store, policy_r, policy_r2, caplog
    ):
        orch = Orchestrator.from_config(
            gateway, conflicting_store, VaultConfig(rotation_batch_size=2),
        )
        handles = [await orch.encrypt_and_store("s", policy_r) for _ in range(5)]
        caplog.set_level(logging.INFO, logger="policy_vault")

        stats = await rotate_access_batch(orch, handles, policy_r2)

        assert stats["rotated"] == 5
        assert "batch_size=2" in caplog.text
        assert "Processing batch 3 (1 handles)" in caplog.text

    @pytest.mark.asyncio
    async def test_empty(self, orch, policy_r2):
        stats = await rotate_access_batch(orch, [], policy_r2)
        assert stats["total"] == 0

    @pytest.mark.asyncio
    async def test_invalid_batch_size(self, orch, policy_r2):
        with pytest.raises(ValueError):
            await rotate_access_batch(orch, ["h"], policy_r2, batch_size=0)
