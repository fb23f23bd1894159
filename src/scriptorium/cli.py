"""Command-line interface for Scriptorium."""

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import click
from pydantic import ValidationError

from scriptorium import __version__
from scriptorium.config import Config
from scriptorium.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from scriptorium.personas import PersonaStore

log = get_logger("cli")


@click.group()
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to configuration file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides config).",
)
@click.option(
    "--log-json/--no-log-json",
    default=None,
    help="Output logs as JSON or human-readable format (overrides config).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Path | None,
    log_level: str | None,
    log_json: bool | None,
) -> None:
    """Scriptorium - Discord persona proxy bot.

    Lets members speak as named characters through channel webhooks.
    """
    ctx.ensure_object(dict)

    config = Config.load_or_default(config_file)
    ctx.obj["config"] = config
    ctx.obj["config_file"] = config_file

    # CLI overrides config
    effective_log_level = log_level or config.log_level
    effective_log_json = log_json if log_json is not None else config.log_json

    setup_logging(json_output=effective_log_json, level=effective_log_level)


def _open_database(config: Config):
    """Create the engine and bring the schema up to date."""
    from scriptorium.database import get_engine
    from scriptorium.migrations import migrate

    engine = get_engine(config)
    migrate(engine)
    return engine


def _require_token(config: Config) -> None:
    if not config.discord_token:
        click.echo("Error: DISCORD_TOKEN environment variable not set", err=True)
        click.echo("Set DISCORD_TOKEN to your bot token to connect to Discord.", err=True)
        raise SystemExit(1)


@cli.command()
def version() -> None:
    """Print version information."""
    click.echo(f"scriptorium {__version__}")


@cli.command()
@click.option("--host", default=None, help="API host to bind (overrides config).")
@click.option("--port", default=None, type=int, help="API port to bind (overrides config).")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Start the bot together with the health API.

    Use Ctrl+C or send SIGTERM for graceful shutdown.

    Requires DISCORD_TOKEN environment variable to be set.
    """
    import uvicorn

    from scriptorium.api import create_app
    from scriptorium.bot import run_bot

    config = ctx.obj["config"]
    _require_token(config)

    engine = _open_database(config)
    api_host = host or config.api.host
    api_port = port or config.api.port

    log.info("serve_command_invoked", api_host=api_host, api_port=api_port)

    async def run() -> None:
        bot_ref: list = []

        app = create_app(config)
        app.state.db = engine
        app.state.bot_ref = bot_ref

        server = uvicorn.Server(
            uvicorn.Config(app, host=api_host, port=api_port, log_level="warning")
        )

        api_task = asyncio.create_task(server.serve())
        bot_task = asyncio.create_task(run_bot(config, engine, bot_ref=bot_ref))

        # If either stops, stop the other
        done, pending = await asyncio.wait(
            [bot_task, api_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        for task in done:
            if not task.cancelled() and task.exception():
                raise task.exception()  # type: ignore[misc]

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        log.info("serve_shutdown_requested")
    except Exception as e:
        log.error("serve_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        engine.dispose()


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the Discord bot without the health API.

    Requires DISCORD_TOKEN environment variable to be set.
    """
    from scriptorium.bot import run_bot

    config = ctx.obj["config"]
    _require_token(config)

    engine = _open_database(config)
    log.info("run_command_invoked")

    try:
        asyncio.run(run_bot(config, engine))
    except KeyboardInterrupt:
        log.info("shutdown_requested_keyboard")
    except Exception as e:
        log.error("run_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    finally:
        engine.dispose()


# =============================================================================
# Database
# =============================================================================


@cli.group()
def db() -> None:
    """Database management commands."""
    pass


@db.command(name="status")
@click.pass_context
def db_status(ctx: click.Context) -> None:
    """Show the schema version and any pending steps."""
    from scriptorium.database import get_engine
    from scriptorium.migrations import get_current_version, pending_steps

    config = ctx.obj["config"]
    engine = get_engine(config)
    try:
        current = get_current_version(engine)
        pending = pending_steps(engine)
    finally:
        engine.dispose()

    click.echo(f"Database: {config.database_path}")
    click.echo(f"Current version: {current}")

    if pending:
        click.echo(f"Pending migrations: {len(pending)}")
        for step in pending:
            click.echo(f"  {step.VERSION}: {step.DESCRIPTION}")
    else:
        click.echo("No pending migrations")


@db.command(name="migrate")
@click.option(
    "--target",
    type=int,
    default=None,
    help="Target version (default: latest).",
)
@click.pass_context
def db_migrate(ctx: click.Context, target: int | None) -> None:
    """Apply pending database migrations."""
    from scriptorium.database import get_engine
    from scriptorium.migrations import get_current_version, migrate

    engine = get_engine(ctx.obj["config"])
    try:
        before = get_current_version(engine)
        after = migrate(engine, target_version=target)
    finally:
        engine.dispose()

    if before == after:
        click.echo(f"Database already at version {after}")
    else:
        click.echo(f"Migrated from version {before} to {after}")


# =============================================================================
# Configuration
# =============================================================================


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command(name="check")
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, path_type=Path),
    default="config.yaml",
    help="Path to configuration file.",
)
def config_check(config_file: Path) -> None:
    """Validate configuration file."""
    try:
        cfg = Config.load(config_file)
    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except (ValidationError, ValueError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Configuration valid: {config_file}")
    click.echo(f"  Data directory: {cfg.data_dir}")
    click.echo(f"  Database path: {cfg.database_path}")
    click.echo(f"  Log level: {cfg.log_level}")
    click.echo(f"  Proxy: {'enabled' if cfg.proxy.enabled else 'disabled'}")
    click.echo(f"  Webhook name: {cfg.proxy.webhook_name}")


# =============================================================================
# Personas
# =============================================================================


@cli.group()
def persona() -> None:
    """Persona management commands."""
    pass


@contextmanager
def _persona_store(ctx: click.Context) -> Iterator["PersonaStore"]:
    """Open the database for one persona command, disposing it afterwards."""
    from scriptorium.personas import PersonaStore

    engine = _open_database(ctx.obj["config"])
    try:
        yield PersonaStore(engine)
    finally:
        engine.dispose()


@persona.command(name="add")
@click.argument("owner_id")
@click.argument("server_id")
@click.argument("name")
@click.argument("prefix")
@click.option("--avatar", default=None, help="Avatar image URL.")
@click.pass_context
def persona_add(
    ctx: click.Context,
    owner_id: str,
    server_id: str,
    name: str,
    prefix: str,
    avatar: str | None,
) -> None:
    """Create a persona for OWNER_ID in SERVER_ID."""
    from scriptorium.personas import PersonaError

    try:
        with _persona_store(ctx) as store:
            created = asyncio.run(store.create(owner_id, server_id, name, prefix, avatar))
    except (PersonaError, ValidationError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Created persona {created.name} (prefix: {created.prefix!r})")


@persona.command(name="list")
@click.argument("owner_id")
@click.argument("server_id")
@click.pass_context
def persona_list(ctx: click.Context, owner_id: str, server_id: str) -> None:
    """List the personas of OWNER_ID in SERVER_ID."""
    with _persona_store(ctx) as store:
        found = asyncio.run(store.list_for_owner(owner_id, server_id))

    if not found:
        click.echo("No personas found")
        return

    click.echo(f"Personas ({len(found)}):")
    for p in found:
        avatar = f"  avatar: {p.avatar_url}" if p.avatar_url else ""
        click.echo(f"  {p.name}  prefix: {p.prefix!r}{avatar}")


@persona.command(name="edit")
@click.argument("owner_id")
@click.argument("server_id")
@click.argument("name")
@click.option("--prefix", default=None, help="New trigger prefix.")
@click.option("--avatar", default=None, help="New avatar image URL.")
@click.option("--clear-avatar", is_flag=True, help="Remove the avatar.")
@click.pass_context
def persona_edit(
    ctx: click.Context,
    owner_id: str,
    server_id: str,
    name: str,
    prefix: str | None,
    avatar: str | None,
    clear_avatar: bool,
) -> None:
    """Change a persona's prefix or avatar."""
    from scriptorium.personas import PersonaError

    if avatar and clear_avatar:
        click.echo("Error: --avatar and --clear-avatar are mutually exclusive", err=True)
        raise SystemExit(1)

    changes: dict = {}
    if prefix:
        changes["prefix"] = prefix
    if avatar:
        changes["avatar_url"] = avatar
    elif clear_avatar:
        changes["avatar_url"] = None

    if not changes:
        click.echo("Nothing to change")
        return

    try:
        with _persona_store(ctx) as store:
            updated = asyncio.run(store.update(owner_id, server_id, name, **changes))
    except (PersonaError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Updated persona {updated.name} (prefix: {updated.prefix!r})")


@persona.command(name="remove")
@click.argument("owner_id")
@click.argument("server_id")
@click.argument("name")
@click.pass_context
def persona_remove(ctx: click.Context, owner_id: str, server_id: str, name: str) -> None:
    """Delete a persona."""
    from scriptorium.personas import PersonaError

    try:
        with _persona_store(ctx) as store:
            removed = asyncio.run(store.delete(owner_id, server_id, name))
    except PersonaError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    click.echo(f"Removed persona {removed.name}")
