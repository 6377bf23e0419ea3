"""Assembly of unsigned EIP-1559 transactions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Optional

from web3 import Web3

from agent_wallet.exceptions import ChainCollaboratorError, TransactionValidationError
from agent_wallet.wallet.models import MAX_UINT256, TransactionRequest

if TYPE_CHECKING:
    from agent_wallet.wallet.provider import ChainClient
    from agent_wallet.wallet.store import WalletStore

logger = logging.getLogger("agent_wallet.wallet.builder")

WEI_PER_ETHER = 10**18
_DIGITS_RE = re.compile(r"[0-9]+")


def parse_wei(value: int | str, field: str = "value_wei") -> int:
    """Parse a non-negative integer amount of wei (int or decimal string)."""
    if isinstance(value, bool):
        raise TransactionValidationError(f"Invalid '{field}': {value!r}", field)
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and _DIGITS_RE.fullmatch(value.strip()):
        amount = int(value.strip())
    else:
        raise TransactionValidationError(
            f"Invalid '{field}': {value!r} (expected a non-negative whole number of wei)",
            field,
        )
    if amount < 0 or amount > MAX_UINT256:
        raise TransactionValidationError(f"Invalid '{field}': out of range", field)
    return amount


def parse_ether(value: str | int | Decimal) -> int:
    """Convert a decimal ether amount to wei; sub-wei precision is rejected."""
    text = str(value).strip()
    try:
        if not text.isascii():
            raise ValueError(text)
        amount = Decimal(text)
    except (InvalidOperation, ValueError):
        raise TransactionValidationError(
            f"Invalid 'value_eth': {value!r}", "value_eth"
        ) from None
    if not amount.is_finite() or amount < 0:
        raise TransactionValidationError(
            f"Invalid 'value_eth': {value!r} (expected a non-negative decimal)",
            "value_eth",
        )
    if (amount * WEI_PER_ETHER) % 1 != 0:
        raise TransactionValidationError(
            f"Invalid 'value_eth': {value!r} has more than 18 decimal places",
            "value_eth",
        )
    return int(Web3.to_wei(amount, "ether"))


def resolve_value(value_wei: int | str | None, value_eth: str | None) -> int:
    """Exactly one of *value_wei* / *value_eth* must be supplied."""
    if value_wei is not None and value_eth is not None:
        raise TransactionValidationError(
            "Provide either 'value_wei' or 'value_eth', not both", "value"
        )
    if value_wei is not None:
        return parse_wei(value_wei)
    if value_eth is not None:
        return parse_ether(value_eth)
    raise TransactionValidationError(
        "Missing value: provide 'value_wei' or 'value_eth'", "value"
    )


@dataclass
class TransactionDraft:
    """A transaction still being assembled.

    Setters return the draft so calls can be chained; :meth:`build`
    produces the immutable :class:`TransactionRequest`.
    """

    chain_id: Optional[int] = None
    to: Optional[str] = None
    value: Optional[int] = None
    data: str = "0x"
    gas: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None
    nonce: Optional[int] = None

    def set_chain_id(self, chain_id: int) -> TransactionDraft:
        self.chain_id = chain_id
        return self

    def set_to(self, to: str) -> TransactionDraft:
        self.to = to
        return self

    def set_value(self, value: int) -> TransactionDraft:
        self.value = value
        return self

    def set_data(self, data: str) -> TransactionDraft:
        self.data = data
        return self

    def set_gas(self, gas: int) -> TransactionDraft:
        self.gas = gas
        return self

    def set_fees(self, max_fee_per_gas: int, max_priority_fee_per_gas: int) -> TransactionDraft:
        self.max_fee_per_gas = max_fee_per_gas
        self.max_priority_fee_per_gas = max_priority_fee_per_gas
        return self

    def set_nonce(self, nonce: int) -> TransactionDraft:
        self.nonce = nonce
        return self

    def missing(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is None]

    def build(self) -> TransactionRequest:
        missing = self.missing()
        if missing:
            raise TransactionValidationError(
                f"Transaction is incomplete: '{missing[0]}' is not set", missing[0]
            )
        return TransactionRequest(
            chain_id=self.chain_id,
            to=self.to,
            value=self.value,
            data=self.data,
            gas=self.gas,
            max_fee_per_gas=self.max_fee_per_gas,
            max_priority_fee_per_gas=self.max_priority_fee_per_gas,
            nonce=self.nonce,
        )


class TransactionBuilder:
    """Turns caller intent into a :class:`TransactionRequest`.

    Wallet state is only read (sender nonce, alias resolution); nothing is
    persisted. Fields the caller leaves out are fetched from *chain*.
    """

    def __init__(self, store: WalletStore, chain: ChainClient | None = None) -> None:
        self.store = store
        self.chain = chain

    def _require_chain(self, what: str) -> ChainClient:
        if self.chain is None:
            raise ChainCollaboratorError(
                f"No chain RPC configured; supply '{what}' explicitly"
            )
        return self.chain

    def _ask_chain(self, what: str, call):
        chain = self._require_chain(what)
        try:
            return call(chain)
        except ChainCollaboratorError:
            raise
        except Exception as exc:
            raise ChainCollaboratorError(f"Chain RPC failed while fetching {what}: {exc}") from exc

    def build(
        self,
        sender: str,
        to: str,
        value_wei: int | str | None = None,
        value_eth: str | None = None,
        *,
        chain_id: int | None = None,
        gas: int | None = None,
        max_fee_per_gas: int | str | None = None,
        max_priority_fee_per_gas: int | str | None = None,
        nonce: int | None = None,
        data: str | None = None,
    ) -> TransactionRequest:
        value = resolve_value(value_wei, value_eth)

        with self.store.read() as wallet:
            account = wallet.resolve(sender)
            from_address = account.address
            stored_nonce = account.nonce
            to_address = wallet.resolve_address(to)

        draft = TransactionDraft(to=to_address, value=value)
        if data is not None:
            draft.set_data(data)
        draft.set_nonce(stored_nonce if nonce is None else nonce)

        if chain_id is None:
            chain_id = self._ask_chain("chain_id", lambda c: c.current_chain_id())
        draft.set_chain_id(chain_id)

        if gas is None:
            skeleton = {
                "from": from_address,
                "to": to_address,
                "value": value,
                "data": draft.data,
                "nonce": draft.nonce,
                "chainId": chain_id,
            }
            gas = self._ask_chain("gas", lambda c: c.estimate_gas(skeleton))
        draft.set_gas(gas)

        max_fee = (
            parse_wei(max_fee_per_gas, "max_fee_per_gas")
            if max_fee_per_gas is not None
            else None
        )
        max_priority = (
            parse_wei(max_priority_fee_per_gas, "max_priority_fee_per_gas")
            if max_priority_fee_per_gas is not None
            else None
        )
        if max_fee is None or max_priority is None:
            levels = self._ask_chain("fee levels", lambda c: c.current_fee_levels())
            if max_fee is None:
                max_fee = levels.max_fee_per_gas
            if max_priority is None:
                max_priority = min(levels.max_priority_fee_per_gas, max_fee)
        draft.set_fees(max_fee, max_priority)

        try:
            request = draft.build()
        except ValueError as exc:
            raise TransactionValidationError(f"Invalid transaction: {exc}") from None
        logger.info(
            f"Built transaction from {from_address} to {to_address} "
            f"(value={value}, nonce={request.nonce}, chain_id={chain_id})"
        )
        return request
