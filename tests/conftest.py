"""
Agent Wallet Test Suite - Shared Fixtures
"""

import pytest

from agent_wallet.exceptions import ChainCollaboratorError
from agent_wallet.wallet.manager import WalletManager
from agent_wallet.wallet.provider import FeeLevels
from agent_wallet.wallet.store import WalletStore

# Well-known development keys (Anvil/Hardhat accounts #0 and #1)
KEY_0 = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ADDRESS_0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
KEY_1 = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
ADDRESS_1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

RECIPIENT = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

CHAIN_ID = 31337
GAS_ESTIMATE = 21000
MAX_FEE = 2_000_000_000
PRIORITY_FEE = 1_000_000_000


class FakeChainClient:
    """In-memory chain collaborator that records every call."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list[tuple] = []

    def _check(self, name):
        self.calls.append((name,))
        if self.fail:
            raise ChainCollaboratorError(f"{name} unavailable")

    def current_chain_id(self) -> int:
        self._check("current_chain_id")
        return CHAIN_ID

    def estimate_gas(self, transaction: dict) -> int:
        self._check("estimate_gas")
        self.calls[-1] = ("estimate_gas", transaction)
        return GAS_ESTIMATE

    def current_fee_levels(self) -> FeeLevels:
        self._check("current_fee_levels")
        return FeeLevels(max_fee_per_gas=MAX_FEE, max_priority_fee_per_gas=PRIORITY_FEE)

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def wallet_path(tmp_path):
    """Location of the wallet document for a test."""
    return tmp_path / "wallet.json"


@pytest.fixture
def store(wallet_path):
    """Empty store backed by a temporary file."""
    return WalletStore.open(wallet_path)


@pytest.fixture
def chain():
    return FakeChainClient()


@pytest.fixture
def manager(store, chain):
    """Wallet manager wired to the fake chain client."""
    return WalletManager(store, chain)


def build_and_sign(manager, sender, to=RECIPIENT, value_wei="1000"):
    """Build a fully-specified transaction for *sender* and sign it."""
    request = manager.build_transaction(
        sender,
        to,
        value_wei=value_wei,
        chain_id=CHAIN_ID,
        gas=GAS_ESTIMATE,
        max_fee_per_gas=MAX_FEE,
        max_priority_fee_per_gas=PRIORITY_FEE,
    )
    return manager.sign_transaction(sender, request)
