"""CLI commands for blockproducer.

The CLI is the single entry point: top-level commands (produce, balance, serve)
plus the jwt command group.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from blockproducer import __logo__, __version__
from blockproducer.cli.command_groups.jwt_command import register_jwt_commands
from blockproducer.cli.command_groups.produce_command import register_produce_commands
from blockproducer.cli.shared.logging_utils import configure_console_logging, ensure_rotating_log_file

app = typer.Typer(
    name="blockproducer",
    help=f"{__logo__} blockproducer - Engine API block production client",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} blockproducer v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
) -> None:
    """blockproducer - Engine API block production client."""
    from blockproducer.config.access import get_config

    try:
        config = get_config()
    except ValueError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    configure_console_logging("DEBUG" if verbose else config.logging.level)
    if config.logging.file_enabled:
        ensure_rotating_log_file("blockproducer", level=config.logging.level)


@app.command("serve")
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default: server.host)"),
    port: int = typer.Option(None, "--port", help="Port (default: server.port)"),
    secret: Path = typer.Option(None, "--secret", help="JWT secret file (created when absent)"),
) -> None:
    """Run the JWT-guarded endpoint; prints a sample token for curl."""
    import uvicorn

    from blockproducer.api.server import create_app
    from blockproducer.cli.shared.runtime import load_credential
    from blockproducer.config.access import get_config

    config = get_config()
    credential = load_credential(config, secret, create=True)
    bind_host = host or config.server.host
    bind_port = port or config.server.port

    console.print(f"{__logo__} JWT endpoint on http://{bind_host}:{bind_port}")
    console.print("[dim]Sample token:[/dim]")
    typer.echo(credential.token())
    uvicorn.run(create_app(credential), host=bind_host, port=bind_port, log_level="info")


register_jwt_commands(app, console)
register_produce_commands(app, console)


if __name__ == "__main__":
    app()
