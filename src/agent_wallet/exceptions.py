"""Error taxonomy for the wallet engine.

Every error carries a stable ``kind`` string so the dispatcher layer can
return a structured failure without inspecting message text. Messages never
contain private-key material.
"""

from __future__ import annotations

from pathlib import Path


class WalletError(Exception):
    """Base class for all recoverable wallet errors."""

    kind: str = "wallet_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class AddressParseError(WalletError):
    kind = "address_parse"


class AliasInvalidError(WalletError):
    kind = "alias_invalid"

    def __init__(self, alias: str) -> None:
        super().__init__(
            f"Alias '{alias}' is invalid. It must be 1-20 alphanumeric characters."
        )
        self.alias = alias


class AliasDuplicateError(WalletError):
    kind = "alias_duplicate"

    def __init__(self, alias: str, owner: str) -> None:
        super().__init__(f"Alias '{alias}' is already bound to {owner}.")
        self.alias = alias
        self.owner = owner


class AliasNotFoundError(WalletError):
    kind = "alias_not_found"

    def __init__(self, alias: str) -> None:
        super().__init__(f"No account has the alias '{alias}'.")
        self.alias = alias


class AccountNotFoundError(WalletError):
    kind = "account_not_found"

    def __init__(self, address: str) -> None:
        super().__init__(f"Account not found for address: {address}")
        self.address = address


class PrivateKeyFormatError(WalletError):
    kind = "private_key_format"


class DuplicateAccountError(WalletError):
    kind = "duplicate_account"

    def __init__(self, address: str) -> None:
        super().__init__(f"A signing account already exists for address: {address}")
        self.address = address


class WatchOnlySigningError(WalletError):
    kind = "watch_only_signing"

    def __init__(self, address: str) -> None:
        super().__init__(
            f"Account {address} is watch-only and cannot sign. "
            "Import its private key first."
        )
        self.address = address


class TransactionValidationError(WalletError):
    kind = "transaction_validation"

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PersistenceError(WalletError):
    kind = "persistence"

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Wallet file {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class ChainCollaboratorError(WalletError):
    kind = "chain_collaborator"


class RequestValidationError(WalletError):
    """Raised by the dispatcher when a request does not match any command schema."""

    kind = "invalid_request"
