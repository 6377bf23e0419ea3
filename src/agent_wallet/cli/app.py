"""CLI for Agent Wallet - inspect and manage the local wallet, or serve it over stdio."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from agent_wallet.config import AppConfig, default_config_path, load_config
from agent_wallet.exceptions import WalletError

app = typer.Typer(
    name="agent-wallet",
    help="Local Ethereum wallet for agents: accounts, aliases, EIP-1559 signing.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

_config: AppConfig = AppConfig()


def _version_callback(value: bool):
    if value:
        from agent_wallet import __version__

        console.print(f"agent-wallet {__version__}")
        raise typer.Exit()


def _setup_logging(level: str) -> None:
    # stdout carries the stdio protocol, so logs always go to stderr
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml",
        envvar="AGENT_WALLET_CONFIG",
    ),
    wallet_path: Optional[Path] = typer.Option(
        None,
        "--wallet",
        "-w",
        help="Path to the wallet JSON file",
        envvar="AGENT_WALLET_PATH",
    ),
    rpc_url: Optional[str] = typer.Option(
        None,
        "--rpc-url",
        help="Chain JSON-RPC endpoint",
        envvar="AGENT_WALLET_RPC_URL",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Local Ethereum wallet for agents: accounts, aliases, EIP-1559 signing."""
    global _config
    config = load_config(config_path or default_config_path())
    if wallet_path is not None:
        config.storage.wallet_path = str(wallet_path)
    if rpc_url:
        config.chain.rpc_url = rpc_url
    _config = config
    _setup_logging(config.logging.level)


def _manager():
    from agent_wallet.wallet.manager import WalletManager
    from agent_wallet.wallet.provider import Web3ChainClient

    try:
        rpc_url, poa = _config.rpc_url(), _config.use_poa()
    except KeyError as e:
        err_console.print(f"[red]config:[/red] {escape(e.args[0])}")
        raise typer.Exit(1)
    chain = Web3ChainClient(rpc_url, poa=poa, timeout=_config.chain.timeout_seconds)
    try:
        return WalletManager.open(_config.wallet_path(), chain)
    except WalletError as e:
        _fail(e)


def _fail(error: WalletError):
    err_console.print(f"[red]{error.kind}:[/red] {escape(error.message)}")
    raise typer.Exit(1)


# ------------------------------------------------------------------
# Accounts
# ------------------------------------------------------------------


@app.command("accounts")
def accounts():
    """List all accounts with aliases, nonces, and signing capability."""
    manager = _manager()
    rows = manager.list_accounts()
    if not rows:
        console.print("[yellow]No accounts yet.[/yellow] Run 'agent-wallet new' to create one.")
        return

    table = Table(title="Wallet Accounts")
    table.add_column("Address", style="cyan")
    table.add_column("Aliases")
    table.add_column("Nonce", justify="right")
    table.add_column("Type")

    for a in rows:
        table.add_row(
            a.address,
            ", ".join(a.aliases) or "-",
            str(a.nonce),
            "[green]signing[/green]" if a.is_signing else "[dim]watch-only[/dim]",
        )
    console.print(table)


@app.command("new")
def new(
    alias: Optional[str] = typer.Option(None, "--alias", "-a", help="Alias for the new account"),
):
    """Generate a new signing account."""
    manager = _manager()
    try:
        address = manager.create_account(alias)
    except WalletError as e:
        _fail(e)
    console.print(Panel(
        f"[bold green]Account created![/bold green]\n\n"
        f"Address: [cyan]{address}[/cyan]"
        + (f"\nAlias: [bold]{alias}[/bold]" if alias else ""),
        title="New Account",
    ))


@app.command("import")
def import_key():
    """Import a private key (read from a hidden prompt)."""
    key = typer.prompt("Private key", hide_input=True)
    manager = _manager()
    try:
        address = manager.import_private_key(key)
    except WalletError as e:
        _fail(e)
    console.print(f"Imported key for [cyan]{address}[/cyan]")


@app.command("alias")
def alias(
    address: str = typer.Argument(help="Address to alias (0x...)"),
    name: str = typer.Argument(help="Alias, 1-20 alphanumeric characters"),
):
    """Bind an alias to an address (unknown addresses become watch-only)."""
    manager = _manager()
    try:
        checksum = manager.set_alias(address, name)
    except WalletError as e:
        _fail(e)
    console.print(f"[bold]{name}[/bold] -> [cyan]{checksum}[/cyan]")


@app.command("resolve")
def resolve(name: str = typer.Argument(help="Alias to look up")):
    """Print the address bound to an alias."""
    manager = _manager()
    try:
        address = manager.resolve_alias(name)
    except WalletError as e:
        _fail(e)
    console.print(address)


@app.command("set-nonce")
def set_nonce(
    account: str = typer.Argument(help="Address or alias"),
    nonce: int = typer.Argument(help="New nonce (cannot be lower than the current one)"),
):
    """Explicitly move an account's nonce forward."""
    manager = _manager()
    try:
        manager.set_nonce(account, nonce)
    except WalletError as e:
        _fail(e)
    console.print(f"Nonce for [cyan]{account}[/cyan] set to {nonce}")


# ------------------------------------------------------------------
# Agent surface
# ------------------------------------------------------------------


@app.command("tools")
def tools():
    """Print the JSON tool definitions exposed to agents."""
    from agent_wallet.tools.wallet_tools import WALLET_TOOLS

    definitions = [d.to_dict() for d in WALLET_TOOLS.definitions()]
    typer.echo(json.dumps(definitions, indent=2))


@app.command("serve")
def serve():
    """Answer line-delimited JSON requests on stdin/stdout."""
    from agent_wallet.tools.stdio import serve as serve_stdio
    from agent_wallet.tools.wallet_tools import WalletDispatcher

    manager = _manager()
    serve_stdio(WalletDispatcher(manager))
