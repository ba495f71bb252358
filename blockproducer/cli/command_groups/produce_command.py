"""Block production commands: produce a block with withdrawals, read balances."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table


def _format_eth(wei: int | None) -> str:
    from blockproducer.engine.producer import WEI_PER_ETH

    if wei is None:
        return "-"
    return f"{wei / WEI_PER_ETH:.9f} ETH"


def register_produce_commands(app: typer.Typer, console: Console) -> None:
    """Register produce and balance commands."""

    @app.command("produce")
    def produce(
        address: list[str] = typer.Option(..., "--address", "-a", help="Withdrawal recipient (repeatable)"),
        amount_gwei: int = typer.Option(1_000_000_000, "--amount-gwei", help="Amount per withdrawal in Gwei"),
        engine_url: str = typer.Option(None, "--engine-url", help="Engine API URL"),
        rpc_url: str = typer.Option(None, "--rpc-url", help="Public JSON-RPC URL for balance reads"),
        secret: Path = typer.Option(None, "--secret", help="JWT secret file"),
        timeout: float = typer.Option(None, "--timeout", help="Per-call deadline in seconds"),
    ) -> None:
        """Produce one block whose withdrawals credit the given addresses."""
        from blockproducer.cli.shared.runtime import load_credential, make_engine_client, make_public_client
        from blockproducer.config.access import get_config
        from blockproducer.engine.producer import build_withdrawals, produce_block_with_withdrawals
        from blockproducer.utils.exceptions import BlockProducerError

        config = get_config()

        async def _run():
            credential = load_credential(config, secret)
            engine = make_engine_client(config, credential, engine_url)
            public = make_public_client(config, rpc_url)
            try:
                return await produce_block_with_withdrawals(
                    engine,
                    build_withdrawals([(a, amount_gwei) for a in address]),
                    public=public,
                    fee_recipient=config.build.fee_recipient,
                    prev_randao=config.build.prev_randao,
                    parent_beacon_block_root=config.build.parent_beacon_block_root,
                    call_timeout=timeout,
                )
            finally:
                await engine.close()
                await public.close()

        try:
            report = asyncio.run(_run())
        except (BlockProducerError, ValueError) as e:
            console.print(f"[red]✗ Block production failed:[/red] {escape(str(e))}")
            raise typer.Exit(1)

        result = report.result
        console.print(
            f"[green]✓[/green] Block #{result.block_number} {result.block_hash} "
            f"(parent #{report.parent.number}, {result.plan.method})"
        )
        table = Table(title="Balances")
        table.add_column("Address", style="cyan")
        table.add_column("Before")
        table.add_column("After")
        table.add_column("Change")
        for addr in report.balances_before:
            table.add_row(
                addr,
                _format_eth(report.balances_before.get(addr)),
                _format_eth(report.balances_after.get(addr)),
                _format_eth(report.balance_change(addr)),
            )
        console.print(table)

    @app.command("balance")
    def balance(
        address: str = typer.Argument(..., help="Account address (0x...)"),
        rpc_url: str = typer.Option(None, "--rpc-url", help="Public JSON-RPC URL"),
    ) -> None:
        """Show an account balance from the public endpoint."""
        from blockproducer.cli.shared.runtime import make_public_client
        from blockproducer.config.access import get_config
        from blockproducer.utils.exceptions import BlockProducerError

        config = get_config()

        async def _run() -> int:
            public = make_public_client(config, rpc_url)
            try:
                return await public.get_balance(address)
            finally:
                await public.close()

        try:
            wei = asyncio.run(_run())
        except (BlockProducerError, ValueError) as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(1)
        console.print(f"{address}: [cyan]{_format_eth(wei)}[/cyan] ({wei} wei)")
