"""Chain collaborator: the JSON-RPC calls the transaction builder depends on."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from agent_wallet.exceptions import ChainCollaboratorError

logger = logging.getLogger("agent_wallet.wallet.provider")


@dataclass(frozen=True)
class FeeLevels:
    """Suggested EIP-1559 fee caps, in wei per gas."""

    max_fee_per_gas: int
    max_priority_fee_per_gas: int


class ChainClient(Protocol):
    """What the builder asks of a chain node."""

    def current_chain_id(self) -> int: ...

    def estimate_gas(self, transaction: dict) -> int: ...

    def current_fee_levels(self) -> FeeLevels: ...


class Web3ChainClient:
    """:class:`ChainClient` backed by a web3 HTTP provider.

    Every web3 failure is re-raised as :class:`ChainCollaboratorError`; no
    defaults are guessed when the node is unreachable.
    """

    def __init__(self, rpc_url: str, *, poa: bool = False, timeout: float = 10.0) -> None:
        self.rpc_url = rpc_url
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
        if poa:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self.w3 = w3

    def _fail(self, action: str, exc: Exception) -> ChainCollaboratorError:
        logger.warning(f"RPC {action} failed against {self.rpc_url}: {exc}")
        return ChainCollaboratorError(f"Chain RPC {action} failed: {exc}")

    def current_chain_id(self) -> int:
        try:
            return int(self.w3.eth.chain_id)
        except Exception as exc:
            raise self._fail("eth_chainId", exc) from exc

    def estimate_gas(self, transaction: dict) -> int:
        call = {
            "from": transaction["from"],
            "to": transaction["to"],
            "value": transaction.get("value", 0),
        }
        if transaction.get("data") and transaction["data"] != "0x":
            call["data"] = transaction["data"]
        try:
            return int(self.w3.eth.estimate_gas(call))
        except Exception as exc:
            raise self._fail("eth_estimateGas", exc) from exc

    def current_fee_levels(self) -> FeeLevels:
        """Fee caps from the latest base fee and the node's priority-fee hint.

        ``max_fee = 2 * base_fee + priority`` leaves room for the base fee to
        double before the transaction is priced out.
        """
        try:
            latest = self.w3.eth.get_block("latest")
            base_fee = latest.get("baseFeePerGas")
            priority = int(self.w3.eth.max_priority_fee)
        except Exception as exc:
            raise self._fail("fee lookup", exc) from exc
        if base_fee is None:
            raise ChainCollaboratorError(
                "Chain does not report a base fee; fee-market transactions are unsupported"
            )
        return FeeLevels(
            max_fee_per_gas=int(base_fee) * 2 + priority,
            max_priority_fee_per_gas=priority,
        )
