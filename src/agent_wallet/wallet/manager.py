"""High-level wallet manager used by the dispatcher and CLI."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from agent_wallet.exceptions import (
    AliasDuplicateError,
    AliasInvalidError,
    AliasNotFoundError,
    DuplicateAccountError,
    TransactionValidationError,
)
from agent_wallet.wallet.addresses import (
    derive_address,
    generate_private_key,
    normalize_private_key,
    parse_address,
)
from agent_wallet.wallet.builder import TransactionBuilder
from agent_wallet.wallet.models import (
    Account,
    AccountSummary,
    SignedTransaction,
    TransactionRequest,
    is_valid_alias,
)
from agent_wallet.wallet.provider import ChainClient
from agent_wallet.wallet.signer import TransactionSigner
from agent_wallet.wallet.store import WalletStore

logger = logging.getLogger("agent_wallet.wallet.manager")


class WalletManager:
    """Orchestrates the store, builder, and signer for wallet operations.

    One instance is shared by every caller; all state goes through
    :class:`WalletStore`, which serializes access.
    """

    def __init__(self, store: WalletStore, chain: ChainClient | None = None) -> None:
        self.store = store
        self.builder = TransactionBuilder(store, chain)
        self.signer = TransactionSigner(store)

    @classmethod
    def open(cls, wallet_path: Path, chain: ChainClient | None = None) -> WalletManager:
        return cls(WalletStore.open(wallet_path), chain)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, alias: str | None = None) -> str:
        """Generate a new signing account and return its checksum address.

        When *alias* is given it is bound in the same transaction; if the
        alias is rejected no account is created.
        """
        alias = alias or None
        if alias is not None and not is_valid_alias(alias):
            raise AliasInvalidError(alias)

        private_key = generate_private_key()
        address = derive_address(private_key)
        with self.store.transaction() as wallet:
            if alias is not None:
                owner = wallet.alias_owner(alias)
                if owner is not None:
                    raise AliasDuplicateError(alias, owner)
            wallet.add_account(Account(address=address, private_key=private_key))
            if alias is not None:
                wallet.bind_alias(address, alias)
        logger.info(f"Created account {address}" + (f" with alias '{alias}'" if alias else ""))
        return address

    def import_private_key(self, key_text: str) -> str:
        """Import a private key, creating or upgrading an account.

        Three outcomes, decided by the current state of the derived address:

        - no account: a new signing account (nonce 0, no aliases);
        - watch-only account: the key is attached in place, aliases and
          nonce are untouched;
        - signing account: :class:`DuplicateAccountError`, even if the key
          is identical. Key material is never replaced.
        """
        private_key = normalize_private_key(key_text)
        address = derive_address(private_key)
        with self.store.transaction() as wallet:
            account = wallet.get(address)
            if account is None:
                wallet.add_account(Account(address=address, private_key=private_key))
                outcome = "imported"
            elif account.is_signing:
                raise DuplicateAccountError(address)
            else:
                account.private_key = private_key
                outcome = "upgraded watch-only"
        logger.info(f"Private key {outcome} for account {address}")
        return address

    def get_account(self, identifier: str) -> AccountSummary:
        with self.store.read() as wallet:
            return wallet.resolve(identifier).summary()

    def list_accounts(self) -> list[AccountSummary]:
        """Snapshot of all accounts in insertion order."""
        with self.store.read() as wallet:
            return [account.summary() for account in wallet.accounts.values()]

    def set_nonce(self, identifier: str, nonce: int) -> int:
        """Move an account's nonce forward explicitly, e.g. to skip a slot.

        Nonces never go backward.
        """
        if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce < 0:
            raise TransactionValidationError("Nonce must be a non-negative integer", "nonce")
        with self.store.transaction() as wallet:
            account = wallet.resolve(identifier)
            if nonce < account.nonce:
                raise TransactionValidationError(
                    f"Nonce for {account.address} is {account.nonce}; it cannot be lowered to {nonce}",
                    "nonce",
                )
            account.nonce = nonce
            address = account.address
        logger.info(f"Nonce for {address} set to {nonce}")
        return nonce

    # ------------------------------------------------------------------
    # Aliases
    # ------------------------------------------------------------------

    def set_alias(self, address: str, alias: str) -> str:
        """Bind *alias* to *address*, creating a watch-only account if needed.

        Returns the checksum address. Re-binding an alias to the address that
        already owns it is a no-op.
        """
        if not is_valid_alias(alias):
            raise AliasInvalidError(alias)
        checksum = parse_address(address)
        with self.store.transaction() as wallet:
            owner = wallet.alias_owner(alias)
            if owner is not None and owner != checksum:
                raise AliasDuplicateError(alias, owner)
            if wallet.get(checksum) is None:
                wallet.add_account(Account(address=checksum))
                logger.info(f"Created watch-only account {checksum}")
            bound = wallet.bind_alias(checksum, alias)
        if bound:
            logger.info(f"Alias '{alias}' bound to {checksum}")
        return checksum

    def resolve_alias(self, alias: str) -> str:
        """Case-insensitive alias lookup returning the checksum address."""
        with self.store.read() as wallet:
            owner = wallet.alias_owner(alias)
        if owner is None:
            raise AliasNotFoundError(alias)
        return owner

    def resolve(self, identifier: str) -> str:
        """Address for an alias or address text."""
        with self.store.read() as wallet:
            return wallet.resolve_address(identifier)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def build_transaction(self, sender: str, to: str, **kwargs: Any) -> TransactionRequest:
        """See :meth:`TransactionBuilder.build`."""
        return self.builder.build(sender, to, **kwargs)

    def sign_transaction(
        self, sender: str, request: TransactionRequest | dict[str, Any]
    ) -> SignedTransaction:
        """See :meth:`TransactionSigner.sign`."""
        return self.signer.sign(sender, request)
