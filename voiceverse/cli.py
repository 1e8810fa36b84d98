"""VoiceVerse CLI - server and maintenance commands."""

import asyncio
import logging
import sys
from typing import Awaitable, Callable

import click
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession

from . import __version__
from .blockchain import generate_account
from .config import AppConfig
from .database.base import close_database, get_session, init_database
from .seed import seed_promo_codes, seed_voice_effects

console = Console()


async def _with_session(config: AppConfig, action: Callable[[AsyncSession], Awaitable[int]]) -> int:
    db = init_database(database_url=config.database_url, pool_size=config.database_pool_size)
    try:
        await db.create_all()
        async with get_session() as session:
            count = await action(session)
            await session.commit()
        return count
    finally:
        await close_database()


def _run_seed(ctx: click.Context, label: str, action: Callable[[AsyncSession], Awaitable[int]]) -> None:
    config = ctx.obj["config"]
    try:
        count = asyncio.run(_with_session(config, action))
    except Exception as e:
        console.print(f"[red]✗[/red] Seeding {label} failed: {e}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Seeded {count} {label}")


@click.group()
@click.version_option(version=__version__, prog_name="voiceverse")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """VoiceVerse API server and maintenance tasks.

    \b
    Examples:
      voiceverse serve --port 5000
      voiceverse seed all
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = AppConfig.from_env()


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port (default: PORT or 5000)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """Run the API server."""
    from .api.app import run_server

    config = ctx.obj["config"]
    host = host or config.host
    port = port or config.port
    console.print(f"Starting VoiceVerse API on [bold]{host}:{port}[/bold] ({config.environment})")
    run_server(host=host, port=port, reload=reload)


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context):
    """Create the database tables."""
    config = ctx.obj["config"]

    async def create() -> None:
        db = init_database(database_url=config.database_url)
        try:
            await db.create_all()
        finally:
            await close_database()

    asyncio.run(create())
    console.print(f"[green]✓[/green] Tables created on {config.database_url}")


@cli.group("seed")
def seed():
    """Load catalogue and promo code data."""


@seed.command("voice-effects")
@click.pass_context
def seed_effects(ctx: click.Context):
    """Upsert the voice effect catalogue."""
    _run_seed(ctx, "voice effects", seed_voice_effects)


@seed.command("promo-codes")
@click.pass_context
def seed_promos(ctx: click.Context):
    """Upsert the launch promo codes."""
    _run_seed(ctx, "promo codes", seed_promo_codes)


@seed.command("all")
@click.pass_context
def seed_all(ctx: click.Context):
    """Run every seed."""
    _run_seed(ctx, "voice effects", seed_voice_effects)
    _run_seed(ctx, "promo codes", seed_promo_codes)


@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context):
    """Show the effective configuration (secrets masked)."""
    config = ctx.obj["config"]

    table = Table(title="VoiceVerse Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Environment", config.environment)
    table.add_row("Database", config.database_url)
    table.add_row("Upload dir", config.upload_dir)
    table.add_row("Allowed origins", ", ".join(config.allowed_origins))
    table.add_row("Dev auth bypass", "on" if config.dev_bypass_enabled else "off")
    for label, value in (
        ("ElevenLabs", config.elevenlabs_api_key),
        ("Google Translate", config.google_translate_api_key),
        ("OpenAI Whisper", config.openai_api_key),
        ("Stripe", config.stripe_secret_key),
        ("SMTP", config.email_pass),
    ):
        table.add_row(label, "[green]configured[/green]" if value else "[dim]not set[/dim]")
    table.add_row("Stripe prices", ", ".join(sorted(config.stripe_price_ids)) or "[dim]none[/dim]")

    console.print(table)


@cli.command("generate-wallet")
def generate_wallet():
    """Generate an Algorand account for testing."""
    account = generate_account()
    console.print(f"Address:  [bold]{account['address']}[/bold]")
    console.print(f"Mnemonic: {account['mnemonic']}")
    console.print("[yellow]Store the mnemonic securely; it cannot be recovered.[/yellow]")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
