"""Signing of fee-market transactions with wallet-held keys."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from eth_account import Account as EthAccount
from pydantic import ValidationError

from agent_wallet.exceptions import (
    TransactionValidationError,
    WatchOnlySigningError,
)
from agent_wallet.wallet.models import (
    MAX_UINT64,
    MAX_UINT256,
    SignedTransaction,
    TransactionRequest,
)

if TYPE_CHECKING:
    from agent_wallet.wallet.store import WalletStore

logger = logging.getLogger("agent_wallet.wallet.signer")

_FIELD_LIMITS = (
    ("value", MAX_UINT256),
    ("max_fee_per_gas", MAX_UINT256),
    ("max_priority_fee_per_gas", MAX_UINT256),
    ("gas", MAX_UINT64),
    ("nonce", MAX_UINT64),
    ("chain_id", MAX_UINT64),
)


def _hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def coerce_request(request: TransactionRequest | dict[str, Any]) -> TransactionRequest:
    """Accept a request model or its JSON form."""
    if isinstance(request, TransactionRequest):
        return request
    if not isinstance(request, dict):
        raise TransactionValidationError("Transaction must be an object")
    try:
        return TransactionRequest.model_validate(request)
    except ValidationError as exc:
        err = exc.errors(include_input=False)[0]
        field = ".".join(str(p) for p in err["loc"]) or None
        raise TransactionValidationError(
            f"Invalid transaction field '{field}': {err['msg']}", field
        ) from None


def validate_request(request: TransactionRequest, expected_nonce: int) -> None:
    """Check a request is complete and consistent with the account's nonce.

    Raises
    ------
    TransactionValidationError
        Naming the offending field.
    """
    for name, limit in _FIELD_LIMITS:
        if getattr(request, name) > limit:
            raise TransactionValidationError(f"'{name}' is out of range", name)
    if request.value < 0:
        raise TransactionValidationError("Value must not be negative", "value")
    if request.chain_id <= 0:
        raise TransactionValidationError("Chain id must be positive", "chain_id")
    for name in ("gas", "max_fee_per_gas", "max_priority_fee_per_gas"):
        if getattr(request, name) <= 0:
            raise TransactionValidationError(f"'{name}' must be greater than zero", name)
    if request.max_priority_fee_per_gas > request.max_fee_per_gas:
        raise TransactionValidationError(
            "'max_priority_fee_per_gas' must not exceed 'max_fee_per_gas'",
            "max_priority_fee_per_gas",
        )
    if request.nonce != expected_nonce:
        raise TransactionValidationError(
            f"Nonce mismatch: expected {expected_nonce}, but got {request.nonce}",
            "nonce",
        )


class TransactionSigner:
    """Signs requests and advances the signing account's nonce.

    The nonce increment and the file write happen in one store transaction;
    if the write fails the signature is dropped and the nonce is restored.
    """

    def __init__(self, store: WalletStore) -> None:
        self.store = store

    def sign(self, sender: str, request: TransactionRequest | dict[str, Any]) -> SignedTransaction:
        with self.store.transaction() as wallet:
            account = wallet.resolve(sender)
            if not account.is_signing:
                raise WatchOnlySigningError(account.address)
            tx = coerce_request(request)
            validate_request(tx, account.nonce)

            try:
                signed = EthAccount.sign_transaction(tx.to_eth_dict(), account.private_key)
            except (TypeError, ValueError) as exc:
                raise TransactionValidationError(
                    f"Transaction could not be encoded: {exc}"
                ) from None
            account.nonce += 1

            result = SignedTransaction(
                raw_transaction=_hex(signed.raw_transaction),
                hash=_hex(signed.hash),
                v=int(signed.v),
                r="0x%064x" % signed.r,
                s="0x%064x" % signed.s,
                chain_id=tx.chain_id,
                nonce=tx.nonce,
                sender=account.address,
            )
        logger.info(
            f"Signed transaction {result.hash} from {result.sender} (nonce={result.nonce})"
        )
        return result
