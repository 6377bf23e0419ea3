"""Wallet engine: accounts, aliases, and EIP-1559 transaction signing.

A single :class:`WalletStore` owns the JSON document and serializes access;
:class:`WalletManager` is the entry point used by the dispatcher and CLI.
Watch-only accounts can be aliased and used as transaction senders for
building, but only accounts holding a private key can sign.
"""

from agent_wallet.wallet.manager import WalletManager
from agent_wallet.wallet.models import (
    AccountSummary,
    SignedTransaction,
    TransactionRequest,
)
from agent_wallet.wallet.store import WalletStore

__all__ = [
    "AccountSummary",
    "SignedTransaction",
    "TransactionRequest",
    "WalletManager",
    "WalletStore",
]
