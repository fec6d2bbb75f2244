"""CLI entry point.

Provides the main CLI application with commands for:
- serve: Run the API server
- init-db: Create the database tables (development)
- purge-challenges: Delete expired ceremony challenges
"""

# Configure logging early before other imports
import passwordless.logging_config  # noqa: F401

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel

app = typer.Typer(
    name="passwordless",
    help="WebAuthn passwordless authentication service",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@app.command()
def serve(
    host: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--host", "-h", help="Host to bind to (default: API_HOST)"),
    ] = None,
    port: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--port", "-p", help="Port to bind to (default: API_PORT)"),
    ] = None,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Enable auto-reload for development"),
    ] = False,
    workers: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--workers", "-w", help="Number of worker processes (default: API_WORKERS)"),
    ] = None,
) -> None:
    """Start the API server.

    Runs the FastAPI application with uvicorn.
    """
    import uvicorn

    from passwordless.settings import get_settings

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    workers = workers or settings.api_workers

    console.print(
        Panel(
            f"[bold green]Starting Passwordless API Server[/bold green]\n"
            f"Host: {host}\n"
            f"Port: {port}\n"
            f"Workers: {workers}\n"
            f"Reload: {reload}\n"
            f"RP ID: {settings.webauthn_rp_id}\n"
            f"Origin: {settings.webauthn_origin}",
            title="🔑 Passwordless",
            border_style="green",
        )
    )

    uvicorn.run(
        "passwordless.api.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers if not reload else 1,
        log_level=settings.log_level.lower(),
    )


@app.command("init-db")
def init_db() -> None:
    """Create any missing database tables.

    Intended for local development. Deployed databases are migrated with
    ``alembic upgrade head``.
    """
    from passwordless.storage import close_db, create_schema

    async def _run() -> None:
        try:
            await create_schema()
        finally:
            await close_db()

    try:
        asyncio.run(_run())
    except OSError as e:
        console.print(f"[red]❌ Database unreachable: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print("[green]✅ Database schema ready[/green]")


@app.command("purge-challenges")
def purge_challenges() -> None:
    """Delete ceremony challenges whose expiry has passed."""
    from passwordless.exceptions import StoreUnavailable

    try:
        deleted = asyncio.run(_purge_challenges())
    except StoreUnavailable as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[green]✅ Purged {deleted} expired challenge(s)[/green]")


async def _purge_challenges() -> int:
    from passwordless.ceremony import SqlCeremonyStore
    from passwordless.settings import get_settings
    from passwordless.storage import close_db, get_session_factory

    settings = get_settings()
    store = SqlCeremonyStore(
        get_session_factory(),
        challenge_ttl_seconds=settings.challenge_ttl_seconds,
        session_ttl_hours=settings.session_ttl_hours,
    )
    try:
        async with store.transaction() as tx:
            return await tx.challenges.purge_expired()
    finally:
        await close_db()


if __name__ == "__main__":
    app()
