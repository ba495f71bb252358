"""JWT command group: secret file, token issue and verification."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table


def register_jwt_commands(app: typer.Typer, console: Console) -> None:
    """Register jwt command group."""
    jwt_app = typer.Typer(help="JWT: generate the shared secret, issue and verify tokens")
    app.add_typer(jwt_app, name="jwt")

    @jwt_app.command("secret")
    def jwt_secret(
        path: Path = typer.Option(None, "--path", "-p", help="Secret file (default: auth.jwtSecretPath)"),
        force: bool = typer.Option(False, "--force", help="Overwrite an existing secret file"),
    ) -> None:
        """Create the hex secret file shared with the execution node."""
        from blockproducer.auth.credentials import generate_secret
        from blockproducer.auth.secret_store import write_secret
        from blockproducer.config.access import get_config

        config = get_config()
        target = (path or Path(config.auth.jwt_secret_path)).expanduser()
        if target.exists() and not force:
            console.print(f"[yellow]Secret already exists:[/yellow] {target} (use --force to replace)")
            return
        write_secret(target, generate_secret())
        console.print(f"[green]✓[/green] Wrote new JWT secret to {target}")

    @jwt_app.command("token")
    def jwt_token(
        path: Path = typer.Option(None, "--path", "-p", help="Secret file"),
        validity: int = typer.Option(None, "--validity", help="Validity window in seconds"),
    ) -> None:
        """Issue a bearer token from the secret file."""
        from blockproducer.auth.credentials import JwtCredential
        from blockproducer.cli.shared.runtime import load_credential
        from blockproducer.config.access import get_config
        from blockproducer.utils.exceptions import BlockProducerError

        config = get_config()
        try:
            credential = load_credential(config, path)
            if validity is not None:
                credential = JwtCredential(credential.secret, validity)
        except BlockProducerError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(1)
        typer.echo(credential.token())

    @jwt_app.command("verify")
    def jwt_verify(
        token: str = typer.Argument(..., help="JWT to verify"),
        path: Path = typer.Option(None, "--path", "-p", help="Secret file"),
    ) -> None:
        """Verify a token against the secret file and show its claims."""
        from blockproducer.cli.shared.runtime import load_credential
        from blockproducer.config.access import get_config
        from blockproducer.utils.exceptions import BlockProducerError

        config = get_config()
        try:
            claims = load_credential(config, path).verify(token.strip())
        except BlockProducerError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(1)
        table = Table(title="JWT claims")
        table.add_column("Claim", style="dim")
        table.add_column("Value", style="cyan")
        table.add_row("iat", str(claims.issued_at))
        table.add_row("exp", str(claims.expires_at))
        table.add_row("validity", f"{claims.validity_seconds}s")
        console.print(table)
