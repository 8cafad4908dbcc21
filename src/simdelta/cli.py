"""
CLI entry point for the balance change simulator.

Usage:
    simdelta run <BASE64_TX> --network mainnet
    simdelta run --file tx.b64 --rpc-url https://my-node --json
    simdelta accounts <BASE64_TX>
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import Settings, load_env, resolve_rpc_url
from .errors import SimDeltaError

console = Console()


def setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def read_transaction(args: argparse.Namespace) -> str:
    if args.file:
        try:
            return Path(args.file).read_text().strip()
        except OSError as e:
            raise SimDeltaError(f"Could not read {args.file}: {e}")
    if args.transaction == "-":
        return sys.stdin.read().strip()
    if not args.transaction:
        raise SimDeltaError("No transaction given (pass it as an argument or use --file)")
    return args.transaction.strip()


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.rpc_url:
        settings.rpc_url = args.rpc_url
    elif args.network:
        settings.rpc_url = resolve_rpc_url(args.network)
    return settings


def _asset_table(title: str, assets, style: str) -> Table:
    table = Table(title=title)
    table.add_column("Token", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Raw", justify="right", style="dim")
    table.add_column("Mint", style="dim")
    for asset in assets:
        sign = "+" if asset.raw_delta > 0 else ""
        table.add_row(
            asset.symbol or asset.mint[:8],
            f"[{style}]{sign}{asset.display_amount:,.{max(asset.decimals, 2)}f}[/{style}]",
            str(asset.raw_delta),
            asset.mint[:16] + "...",
        )
    return table


def run_simulation(args: argparse.Namespace) -> int:
    """Simulate a transaction and show the wallet's balance changes."""
    load_env()
    from .core.simulator import simulate_balance_changes

    try:
        tx = read_transaction(args)
        settings = build_settings(args)
        outcome = asyncio.run(simulate_balance_changes(tx, settings))
    except SimDeltaError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        logs = getattr(e, "logs", None)
        if logs and args.logs:
            console.print("\n".join(logs), style="dim", markup=False)
        return 2

    if args.json:
        print(outcome.to_json())
        return 0 if outcome.success else 1

    change = outcome.wallet_balance_change
    status = "[green]✓ Simulation succeeded[/green]" if outcome.success else (
        f"[red]✗ Simulation failed: {escape(str(outcome.err))}[/red]"
    )
    console.print()
    console.print(Panel(
        f"{status}\n\n"
        f"[dim]Wallet: {change.wallet}[/dim]\n"
        f"[dim]Format: {outcome.format.value if outcome.format else '?'} | "
        f"Compute units: {outcome.units_consumed or '?'}[/dim]",
        title="[bold]Transaction Preview[/bold]",
    ))

    if change.acquired:
        console.print(_asset_table("You receive", change.acquired, "green"))
    if change.disposed:
        console.print(_asset_table("You spend", change.disposed, "red"))
    if not change.has_changes():
        console.print("[yellow]No balance changes detected[/yellow]")

    if args.logs and outcome.logs:
        console.print()
        console.print("\n".join(outcome.logs), style="dim", markup=False)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(outcome.to_dict(), f, indent=2)
        console.print(f"\n[dim]Results exported to: {args.output}[/dim]")

    return 0 if outcome.success else 1


def show_accounts(args: argparse.Namespace) -> int:
    """List the accounts a transaction touches, in simulation order."""
    from .core.tx_analyzer import enumerate_accounts

    try:
        enumerated = enumerate_accounts(read_transaction(args))
    except SimDeltaError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 2

    table = Table(title=f"Accounts ({enumerated.format.value})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Address", style="cyan")
    for i, address in enumerate(enumerated.accounts):
        label = f"{address} [bold](primary)[/bold]" if address == enumerated.primary_wallet else address
        table.add_row(str(i), label)
    console.print(table)
    return 0


def _add_tx_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "transaction",
        nargs="?",
        help="Base64 encoded transaction ('-' reads stdin)",
    )
    parser.add_argument("--file", "-f", type=str, help="Read the base64 transaction from a file")


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="simdelta",
        description="Preview wallet balance changes of a Solana transaction",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Simulate a transaction")
    _add_tx_arguments(run_parser)
    run_parser.add_argument("--rpc-url", type=str, help="RPC endpoint (overrides SOLANA_RPC_URL)")
    run_parser.add_argument(
        "--network", "-n",
        type=str,
        choices=["devnet", "mainnet", "testnet"],
        help="Use a public endpoint for this network",
    )
    run_parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    run_parser.add_argument("--logs", action="store_true", help="Show simulation program logs")
    run_parser.add_argument("--output", "-o", type=str, help="Output file for JSON results")

    accounts_parser = subparsers.add_parser("accounts", help="List accounts a transaction touches")
    _add_tx_arguments(accounts_parser)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "run":
        return run_simulation(args)
    elif args.command == "accounts":
        return show_accounts(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
