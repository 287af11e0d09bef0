"""Shared fixtures: a local gateway, a memory store and ownership policies."""
import os

import pytest

from policy_vault import (
    AccessCondition,
    ContractCondition,
    ContractPolicy,
    Orchestrator,
    ReturnValueTest,
    StandardPolicy,
)
from policy_vault.local import LocalGateway, MemoryDocumentStore

CHAIN = "ethereum"
RULE_R = "0x1111111111111111111111111111111111111111"
RULE_R2 = "0x2222222222222222222222222222222222222222"


def ownership_policy(contract_address: str, chain: str = CHAIN) -> StandardPolicy:
    """Policy satisfied by holders of at least one token of a contract."""
    return StandardPolicy(
        conditions=(
            AccessCondition(
                contract_address=contract_address,
                standard_contract_type="ERC721",
                chain=chain,
                method="balanceOf",
                parameters=(":userAddress",),
                return_value_test=ReturnValueTest(comparator=">", value="0"),
            ),
        )
    )


def contract_policy(contract_address: str, chain: str = CHAIN) -> ContractPolicy:
    return ContractPolicy(
        conditions=(
            ContractCondition(
                contract_address=contract_address,
                function_name="isMember",
                function_params=(":userAddress",),
                function_abi={"name": "isMember", "outputs": [{"type": "bool"}]},
                chain=chain,
                return_value_test=ReturnValueTest(comparator="=", value="true"),
            ),
        )
    )


class Credentials:
    """Verifier that treats the caller as holding a set of contracts."""

    def __init__(self, *holdings: str):
        self.holdings = set(holdings)

    async def __call__(self, policy, chain: str) -> bool:
        return all(
            cond.contract_address in self.holdings and cond.chain == chain
            for cond in policy.conditions
        )


@pytest.fixture
def master_key():
    return os.urandom(32)


@pytest.fixture
def credentials():
    """Caller credentials; tests change the holdings to switch identity."""
    return Credentials(RULE_R)


@pytest.fixture
def gateway(master_key, credentials):
    return LocalGateway(master_key, credentials)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def orchestrator(gateway, store):
    return Orchestrator(gateway, store, CHAIN)


@pytest.fixture
def policy_r():
    return ownership_policy(RULE_R)


@pytest.fixture
def policy_r2():
    return ownership_policy(RULE_R2)
