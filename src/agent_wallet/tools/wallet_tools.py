"""Agent-facing wallet commands and the dispatcher that routes them.

Each command is a pydantic model tagged by ``command``. Requests are
validated against the closed union of those models before any handler
runs, so a misspelled command or parameter is rejected instead of being
silently ignored.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agent_wallet.exceptions import RequestValidationError, WalletError
from agent_wallet.tools.registry import ToolRegistry, tool

if TYPE_CHECKING:
    from agent_wallet.wallet.manager import WalletManager

logger = logging.getLogger("agent_wallet.tools.wallet")

WALLET_TOOLS = ToolRegistry()


# ---------------------------------------------------------------------------
# Command models
# ---------------------------------------------------------------------------


class _Command(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class NewAccount(_Command):
    command: Literal["new_account"] = "new_account"
    alias: Optional[str] = Field(
        default=None,
        description="Optional alias (1-20 alphanumeric characters) for the new account.",
    )


class ImportPrivateKey(_Command):
    command: Literal["import_private_key"] = "import_private_key"
    private_key: str = Field(
        description="Private key as 64 hex characters, with or without a 0x prefix.",
    )


class SetAlias(_Command):
    command: Literal["set_alias"] = "set_alias"
    address: str = Field(description="Ethereum address to bind the alias to.")
    alias: str = Field(description="Alias of 1-20 alphanumeric characters.")


class ResolveAlias(_Command):
    command: Literal["resolve_alias"] = "resolve_alias"
    alias: str = Field(description="Alias to look up (case-insensitive).")


class ListAccounts(_Command):
    command: Literal["list_accounts"] = "list_accounts"


class GetAccount(_Command):
    command: Literal["get_account"] = "get_account"
    account: str = Field(description="Address or alias of the account.")


class SetNonce(_Command):
    command: Literal["set_nonce"] = "set_nonce"
    account: str = Field(description="Address or alias of the account.")
    nonce: int = Field(ge=0, description="New nonce; must not be lower than the current one.")


class CreateTx(_Command):
    command: Literal["create_tx"] = "create_tx"
    sender: str = Field(alias="from", description="Address or alias of the sending account.")
    to: str = Field(description="Recipient address or alias.")
    value_wei: Optional[Union[int, str]] = Field(
        default=None, description="Amount in wei, as a decimal string or integer."
    )
    value_eth: Optional[Union[str, int, float]] = Field(
        default=None, description="Amount in ETH (e.g. '0.01'). Use instead of value_wei."
    )
    chain_id: Optional[int] = Field(default=None, description="Chain id; fetched from the node if omitted.")
    gas: Optional[int] = Field(default=None, description="Gas limit; estimated if omitted.")
    max_fee_per_gas: Optional[Union[int, str]] = Field(
        default=None, description="Max fee per gas in wei; suggested by the node if omitted."
    )
    max_priority_fee_per_gas: Optional[Union[int, str]] = Field(
        default=None, description="Max priority fee per gas in wei; suggested by the node if omitted."
    )
    nonce: Optional[int] = Field(default=None, description="Nonce; the account's stored nonce if omitted.")
    data: Optional[str] = Field(default=None, description="Hex-encoded call data.")


class SignTx(_Command):
    command: Literal["sign_tx"] = "sign_tx"
    sender: str = Field(alias="from", description="Address or alias of the signing account.")
    tx: dict[str, Any] = Field(description="Transaction object returned by create_tx.")


class GetToolDefinition(_Command):
    command: Literal["get_tool_definition"] = "get_tool_definition"


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@tool(
    WALLET_TOOLS,
    "new_account",
    "Generate a new Ethereum keypair and optionally assign an alias to it.",
    NewAccount,
)
def new_account(manager: WalletManager, cmd: NewAccount) -> dict:
    return {"address": manager.create_account(cmd.alias)}


@tool(
    WALLET_TOOLS,
    "import_private_key",
    "Import a private key, creating a signing account or upgrading a watch-only one.",
    ImportPrivateKey,
)
def import_private_key(manager: WalletManager, cmd: ImportPrivateKey) -> dict:
    return {"address": manager.import_private_key(cmd.private_key)}


@tool(
    WALLET_TOOLS,
    "set_alias",
    "Bind an alias to an address. Unknown addresses become watch-only accounts.",
    SetAlias,
)
def set_alias(manager: WalletManager, cmd: SetAlias) -> dict:
    address = manager.set_alias(cmd.address, cmd.alias)
    return {"address": address, "alias": cmd.alias}


@tool(
    WALLET_TOOLS,
    "resolve_alias",
    "Look up the address bound to an alias (case-insensitive).",
    ResolveAlias,
)
def resolve_alias(manager: WalletManager, cmd: ResolveAlias) -> dict:
    return {"address": manager.resolve_alias(cmd.alias)}


@tool(
    WALLET_TOOLS,
    "list_accounts",
    "List all accounts with their aliases, nonces, and whether they can sign.",
    ListAccounts,
)
def list_accounts(manager: WalletManager, cmd: ListAccounts) -> list[dict]:
    return [a.model_dump() for a in manager.list_accounts()]


@tool(
    WALLET_TOOLS,
    "get_account",
    "Show one account by address or alias.",
    GetAccount,
)
def get_account(manager: WalletManager, cmd: GetAccount) -> dict:
    return manager.get_account(cmd.account).model_dump()


@tool(
    WALLET_TOOLS,
    "set_nonce",
    "Explicitly move an account's nonce forward.",
    SetNonce,
)
def set_nonce(manager: WalletManager, cmd: SetNonce) -> dict:
    nonce = manager.set_nonce(cmd.account, cmd.nonce)
    return {"address": manager.resolve(cmd.account), "nonce": nonce}


@tool(
    WALLET_TOOLS,
    "create_tx",
    "Create an unsigned EIP-1559 transaction. Nothing is signed or sent.",
    CreateTx,
)
def create_tx(manager: WalletManager, cmd: CreateTx) -> dict:
    request = manager.build_transaction(
        cmd.sender,
        cmd.to,
        value_wei=cmd.value_wei,
        value_eth=None if cmd.value_eth is None else str(cmd.value_eth),
        chain_id=cmd.chain_id,
        gas=cmd.gas,
        max_fee_per_gas=cmd.max_fee_per_gas,
        max_priority_fee_per_gas=cmd.max_priority_fee_per_gas,
        nonce=cmd.nonce,
        data=cmd.data,
    )
    return request.model_dump()


@tool(
    WALLET_TOOLS,
    "sign_tx",
    "Sign a transaction created by create_tx with the named account's key.",
    SignTx,
)
def sign_tx(manager: WalletManager, cmd: SignTx) -> dict:
    return manager.sign_transaction(cmd.sender, cmd.tx).model_dump()


@tool(
    WALLET_TOOLS,
    "get_tool_definition",
    "Describe every wallet command and its parameters.",
    GetToolDefinition,
)
def get_tool_definition(manager: WalletManager, cmd: GetToolDefinition) -> list[dict]:
    return [d.to_dict() for d in WALLET_TOOLS.definitions()]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _describe_validation_error(exc: ValidationError) -> str:
    """Pydantic errors without input values, so secrets are never echoed."""
    parts = []
    for err in exc.errors(include_input=False):
        loc = ".".join(str(p) for p in err["loc"][1:]) or "params"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def success(data: Any) -> dict:
    return {"status": "success", "data": data}


def failure(error: WalletError) -> dict:
    return {"status": "error", "error": error.to_dict()}


class WalletDispatcher:
    """Validates requests and runs the matching command against one manager."""

    def __init__(self, manager: WalletManager, registry: ToolRegistry = WALLET_TOOLS) -> None:
        self.manager = manager
        self.registry = registry

    def parse(self, request: Any) -> BaseModel:
        """Turn ``{"command": ..., "params": {...}}`` into a command model."""
        if not isinstance(request, dict):
            raise RequestValidationError("Request must be a JSON object")
        name = request.get("command")
        if not isinstance(name, str) or self.registry.get_tool(name) is None:
            raise RequestValidationError(
                f"Unknown command: {name!r}. Available: {self.registry.list_names()}"
            )
        params = request.get("params") or {}
        if not isinstance(params, dict):
            raise RequestValidationError(f"Params for '{name}' must be an object")
        if "command" in params:
            raise RequestValidationError("'command' is not allowed inside params")
        try:
            return self.registry.adapter().validate_python({"command": name, **params})
        except ValidationError as exc:
            raise RequestValidationError(
                f"Invalid params for '{name}': {_describe_validation_error(exc)}"
            ) from None

    def handle(self, request: Any) -> dict:
        """Run one request and return a structured success or error payload."""
        try:
            cmd = self.parse(request)
            handler = self.registry.get_tool(cmd.command)
            data = handler.func(self.manager, cmd)
        except WalletError as exc:
            logger.info(f"Command failed ({exc.kind}): {exc.message}")
            return failure(exc)
        return success(data)
