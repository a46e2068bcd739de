"""CLI for Allowance Gateway - query balances and allowances, approve spenders."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from allowance_gateway.config import GatewayConfig, config_from_env, load_config, save_config
from allowance_gateway.errors import GatewayError, TransactionError

app = typer.Typer(
    name="allowance-gateway",
    help="Derive per-user wallets and manage ERC-20 token approvals.",
    no_args_is_help=True,
)
console = Console()

_config_path: Path | None = None


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"allowance-gateway {version('allowance-gateway')}")
        raise typer.Exit()


@app.callback()
def main(
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML config file (defaults to environment variables)",
        envvar="ALLOWANCE_GATEWAY_CONFIG",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Derive per-user wallets and manage ERC-20 token approvals."""
    global _config_path
    _config_path = config
    load_dotenv(Path.cwd() / ".env")
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load() -> GatewayConfig:
    if _config_path is not None:
        return load_config(_config_path)
    return config_from_env()


def _service():
    from allowance_gateway.wallet.service import TokenService

    try:
        return TokenService(_load())
    except (GatewayError, KeyError, ValueError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(1)


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


@app.command("init")
def init(
    path: Path = typer.Argument(Path("allowance-gateway.yaml"), help="Where to write the config"),
    network: str = typer.Option("sepolia", "--network", "-n", help="Network preset"),
    token: str = typer.Option(..., "--token", "-t", help="Token contract address (0x...)"),
):
    """Write a starter config file. The seed is read from ${APP_SEED}."""
    from allowance_gateway.config import LedgerConfig, TokenConfig
    from allowance_gateway.wallet.chains import get_chain

    try:
        get_chain(network)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)

    if path.exists():
        console.print(f"[yellow]{path} already exists.[/yellow]")
        raise typer.Exit(1)

    config = GatewayConfig(
        ledger=LedgerConfig(network=network),
        token=TokenConfig(address=token),
    )
    save_config(config, path)
    console.print(f"[green]Config written to {path}[/green]")


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind address"),
    port: int = typer.Option(None, "--port", "-p", help="Port"),
):
    """Start the HTTP API."""
    from allowance_gateway.api.server import run_server

    config = _load()
    overrides = {}
    if host:
        overrides["host"] = host
    if port:
        overrides["port"] = port
    if overrides:
        config = config.model_copy(
            update={"server": config.server.model_copy(update=overrides)}
        )
    console.print(
        f"Serving on [cyan]http://{config.server.host}:{config.server.port}[/cyan] "
        f"({config.ledger.network})"
    )
    run_server(config)


@app.command("balance")
def balance(address: str = typer.Argument(help="Account address (0x...)")):
    """Show the native balance of an address."""
    service = _service()
    try:
        result = _run(service.balance_of(address))
    except GatewayError as e:
        console.print(f"[red]Error fetching balance: {e}[/red]")
        raise typer.Exit(1)
    symbol = service.ledger.chain.native_symbol
    console.print(f"[bold]{address}:[/bold] {result} {symbol}")


@app.command("allowance")
def allowance(
    owner: str = typer.Argument(help="Token owner address"),
    spender: str = typer.Argument(help="Spender address"),
):
    """Show how much a spender may transfer on the owner's behalf."""
    service = _service()
    try:
        result = _run(service.allowance_of(owner, spender))
    except GatewayError as e:
        console.print(f"[red]Error fetching allowance: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Allowance")
    table.add_column("Owner", style="cyan")
    table.add_column("Spender", style="cyan")
    table.add_column("Allowance", justify="right")
    table.add_row(owner, spender, result)
    console.print(table)


@app.command("address")
def address():
    """Show the wallet address your password derives to."""
    service = _service()
    password = console.input("[bold]Wallet password: [/bold]", password=True)
    try:
        addr = service.address_of(password)
    except GatewayError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(Panel(
        f"[cyan]{addr}[/cyan]\n\n"
        f"[dim]Fund this address to pay for approval gas.[/dim]",
        title="Wallet Address",
    ))


@app.command("approve")
def approve(
    spender: str = typer.Argument(help="Spender address (0x...)"),
    value: str = typer.Argument(help="Amount of tokens to approve (e.g. 1000)"),
):
    """Approve a spender for an amount of tokens. Requires your password."""
    try:
        amount = Decimal(value)
    except InvalidOperation:
        console.print(f"[red]Invalid value: {value}[/red]")
        raise typer.Exit(1)

    service = _service()
    chain = service.ledger.chain

    console.print(f"\n[bold]Approve {value} tokens on {chain.name}[/bold]")
    console.print(f"  Spender: {spender}")
    console.print(f"  Token: {service.ledger.token_address}\n")

    typer.confirm("Confirm this approval?", abort=True)
    password = console.input("[bold]Wallet password: [/bold]", password=True)

    try:
        receipt = _run(service.approve(spender, amount, password))
    except TransactionError as e:
        hint = " (transient, safe to retry)" if e.retryable else ""
        console.print(f"[red]Approval failed at {e.stage}{hint}: {e}[/red]")
        if e.tx_hash:
            console.print(
                f"[yellow]Transaction {e.tx_hash} was already broadcast. "
                f"Check its status before approving again.[/yellow]"
            )
        raise typer.Exit(1)
    except GatewayError as e:
        console.print(f"[red]Approval failed: {e}[/red]")
        raise typer.Exit(1)

    from web3 import Web3

    tx_hash = Web3.to_hex(receipt["transactionHash"])
    lines = f"[bold green]Approval mined![/bold green]\n\nTx: [cyan]{tx_hash}[/cyan]"
    if chain.explorer_url:
        lines += f"\nExplorer: {chain.explorer_url}/tx/{tx_hash}"
    console.print(Panel(lines, title="Approval"))


@app.command("networks")
def networks():
    """List supported network presets."""
    from allowance_gateway.wallet.chains import CHAINS

    table = Table(title="Networks")
    table.add_column("Name", style="cyan")
    table.add_column("Chain ID", justify="right")
    table.add_column("Symbol")
    table.add_column("RPC", style="dim")
    for chain in CHAINS.values():
        table.add_row(chain.name, str(chain.chain_id), chain.native_symbol, chain.rpc_url)
    console.print(table)


if __name__ == "__main__":
    app()
