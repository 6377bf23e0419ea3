"""Wallet data model: accounts, the alias index, and transaction shapes."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Literal, Optional

from eth_account import Account as EthAccount
from pydantic import BaseModel, ConfigDict, Field, field_validator

from agent_wallet.exceptions import (
    AccountNotFoundError,
    AddressParseError,
    AliasDuplicateError,
    AliasInvalidError,
    AliasNotFoundError,
    WalletError,
)
from agent_wallet.wallet.addresses import (
    derive_address,
    normalize_private_key,
    parse_address,
    private_key_to_hex,
)

ALIAS_MAX_LENGTH = 20
_ALIAS_RE = re.compile(r"[A-Za-z0-9]{1,%d}" % ALIAS_MAX_LENGTH)

# EIP-1559 typed transaction envelope
FEE_MARKET_TX_TYPE = 2

MAX_UINT64 = 2**64 - 1
MAX_UINT256 = 2**256 - 1


def is_valid_alias(alias: str) -> bool:
    """Check if an alias is 1-20 ASCII alphanumeric characters."""
    return isinstance(alias, str) and bool(_ALIAS_RE.fullmatch(alias))


def alias_key(alias: str) -> str:
    """Lookup key for an alias; aliases compare case-insensitively."""
    return alias.lower()


# ---------------------------------------------------------------------------
# In-memory aggregate
# ---------------------------------------------------------------------------


@dataclass
class Account:
    """A single address tracked by the wallet.

    Accounts with ``private_key`` set are signing accounts; the rest are
    watch-only.
    """

    address: str
    private_key: Optional[bytes] = field(default=None, repr=False)
    nonce: int = 0
    aliases: list[str] = field(default_factory=list)

    @property
    def is_signing(self) -> bool:
        return self.private_key is not None

    def summary(self) -> AccountSummary:
        return AccountSummary(
            address=self.address,
            aliases=list(self.aliases),
            nonce=self.nonce,
            is_signing=self.is_signing,
        )


class AccountSummary(BaseModel):
    """Read-only view of an account handed to callers."""

    address: str
    aliases: list[str] = Field(default_factory=list)
    nonce: int = 0
    is_signing: bool = False


class Wallet:
    """Accounts keyed by checksum address plus the alias index.

    Insertion order of ``accounts`` is the listing order and is preserved
    through save/load. The alias index is only ever changed together with
    the owning account's alias list.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self._alias_index: dict[str, str] = {}  # lowercased alias -> address

    def __len__(self) -> int:
        return len(self.accounts)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, address: str) -> Account | None:
        return self.accounts.get(address)

    def alias_owner(self, alias: str) -> str | None:
        """Address bound to *alias* (case-insensitive), or ``None``."""
        return self._alias_index.get(alias_key(alias))

    def require(self, address: str) -> Account:
        account = self.accounts.get(address)
        if account is None:
            raise AccountNotFoundError(address)
        return account

    def resolve_address(self, identifier: str) -> str:
        """Turn an address or alias into a checksum address.

        Addresses are returned whether or not the wallet tracks them; aliases
        must be bound.
        """
        try:
            return parse_address(identifier)
        except AddressParseError:
            if not is_valid_alias(identifier):
                raise
        owner = self.alias_owner(identifier)
        if owner is None:
            raise AliasNotFoundError(identifier)
        return owner

    def resolve(self, identifier: str) -> Account:
        """Return the tracked account for an address or alias."""
        return self.require(self.resolve_address(identifier))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_account(self, account: Account) -> Account:
        if account.address in self.accounts:
            raise ValueError(f"account {account.address} already present")
        aliases = list(account.aliases)
        account.aliases = []
        self.accounts[account.address] = account
        for alias in aliases:
            self.bind_alias(account.address, alias)
        return account

    def bind_alias(self, address: str, alias: str) -> bool:
        """Attach *alias* to the account at *address*.

        Returns ``False`` when the alias is already bound to that same
        address (nothing changes).
        """
        if not is_valid_alias(alias):
            raise AliasInvalidError(alias)
        account = self.require(address)
        owner = self.alias_owner(alias)
        if owner is not None:
            if owner != address:
                raise AliasDuplicateError(alias, owner)
            return False
        self._alias_index[alias_key(alias)] = address
        account.aliases.append(alias)
        return True

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def copy(self) -> Wallet:
        clone = Wallet()
        clone.accounts = copy.deepcopy(self.accounts)
        clone._alias_index = dict(self._alias_index)
        return clone

    def restore(self, snapshot: Wallet) -> None:
        """Reset this wallet in place to the state held by *snapshot*."""
        self.accounts = copy.deepcopy(snapshot.accounts)
        self._alias_index = dict(snapshot._alias_index)

    # ------------------------------------------------------------------
    # Document conversion
    # ------------------------------------------------------------------

    def to_document(self) -> dict:
        accounts = {}
        aliases = {}
        for address, account in self.accounts.items():
            accounts[address] = {
                "private_key": (
                    private_key_to_hex(account.private_key)
                    if account.private_key is not None
                    else None
                ),
                "nonce": account.nonce,
                "aliases": list(account.aliases),
            }
            for alias in account.aliases:
                aliases[alias] = address
        return {"accounts": accounts, "aliases": aliases}

    @classmethod
    def from_document(cls, document: WalletDocument) -> Wallet:
        """Build a wallet from a validated document.

        Raises ``ValueError`` describing the first structural problem found.
        """
        wallet = cls()
        for raw_address, entry in document.accounts.items():
            try:
                address = parse_address(raw_address)
            except AddressParseError as exc:
                raise ValueError(f"accounts: {exc.message}") from None
            if address in wallet.accounts:
                raise ValueError(f"accounts: {address} is listed more than once")

            private_key = None
            if entry.private_key is not None:
                try:
                    private_key = normalize_private_key(entry.private_key)
                except WalletError:
                    raise ValueError(
                        f"accounts.{address}: private key is malformed"
                    ) from None
                if derive_address(private_key) != address:
                    raise ValueError(
                        f"accounts.{address}: private key belongs to a different address"
                    )

            wallet.accounts[address] = Account(
                address=address, private_key=private_key, nonce=entry.nonce
            )
            for alias in entry.aliases:
                try:
                    bound = wallet.bind_alias(address, alias)
                except WalletError as exc:
                    raise ValueError(f"accounts.{address}: {exc.message}") from None
                if not bound:
                    raise ValueError(
                        f"accounts.{address}: alias '{alias}' is listed more than once"
                    )

        # alias map keys must match the account alias lists exactly, casing included
        expected = {
            alias: address
            for address, account in wallet.accounts.items()
            for alias in account.aliases
        }
        seen: dict[str, str] = {}
        keys: set[str] = set()
        for alias, raw_address in document.aliases.items():
            key = alias_key(alias)
            if key in keys:
                raise ValueError(f"aliases: '{alias}' is listed more than once")
            keys.add(key)
            try:
                seen[alias] = parse_address(raw_address)
            except AddressParseError as exc:
                raise ValueError(f"aliases.{alias}: {exc.message}") from None
        if seen != expected:
            raise ValueError(
                "aliases: alias map does not match the aliases listed on accounts"
            )
        return wallet


class AccountEntry(BaseModel):
    """One entry of the persisted ``accounts`` object."""

    model_config = ConfigDict(extra="forbid")

    private_key: Optional[str] = None
    nonce: int = Field(default=0, ge=0)
    aliases: list[str] = Field(default_factory=list)


class WalletDocument(BaseModel):
    """Shape of the on-disk wallet file."""

    model_config = ConfigDict(extra="forbid")

    accounts: dict[str, AccountEntry] = Field(default_factory=dict)
    aliases: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class TransactionRequest(BaseModel):
    """An unsigned EIP-1559 transaction with every field concrete."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal[2] = FEE_MARKET_TX_TYPE
    chain_id: int
    to: str
    value: int
    nonce: int
    gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    data: str = "0x"

    @field_validator("to")
    @classmethod
    def _check_to(cls, value: str) -> str:
        try:
            return parse_address(value)
        except AddressParseError as exc:
            raise ValueError(exc.message) from None

    @field_validator("data")
    @classmethod
    def _check_data(cls, value: str) -> str:
        body = value[2:] if value[:2] in ("0x", "0X") else value
        if len(body) % 2 or any(c not in "0123456789abcdefABCDEF" for c in body):
            raise ValueError("data must be an even-length hex string")
        return "0x" + body.lower()

    def to_eth_dict(self) -> dict:
        """Field names as eth-account expects them for a typed transaction."""
        return {
            "type": self.type,
            "chainId": self.chain_id,
            "nonce": self.nonce,
            "to": self.to,
            "value": self.value,
            "gas": self.gas,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
            "data": self.data,
            "accessList": [],
        }


class SignedTransaction(BaseModel):
    """Immutable signing result. Hex fields carry a ``0x`` prefix."""

    model_config = ConfigDict(frozen=True)

    raw_transaction: str
    hash: str
    v: int
    r: str
    s: str
    chain_id: int
    nonce: int
    sender: str

    def recover(self) -> str:
        """Address recovered from the signature over the raw bytes."""
        return EthAccount.recover_transaction(self.raw_transaction)
