"""Command-line interface for the SweetConnect message service."""

from __future__ import annotations

import asyncio
import logging

import click

from sweetconnect.identity.roles import Role

logger = logging.getLogger(__name__)


@click.group()
@click.option("--log-level", default="INFO", help="Logging level.")
def cli(log_level: str) -> None:
    """SweetConnect -- two-party messaging with live delivery."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _load(config_path: str | None):
    from sweetconnect.config.loader import apply_env_overrides, load_config

    return apply_env_overrides(load_config(config_path))


# ------------------------------------------------------------------
# sweetconnect serve
# ------------------------------------------------------------------


@cli.command()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to config YAML.",
)
@click.option("--host", default=None, help="Override bind host.")
@click.option("--port", type=int, default=None, help="Override WebSocket port.")
@click.option("--memory", is_flag=True, help="Keep messages in memory only.")
def serve(config_path: str | None, host: str | None, port: int | None, memory: bool) -> None:
    """Run the WebSocket push server."""
    from sweetconnect.app import build_app
    from sweetconnect.config.loader import merge_configs
    from sweetconnect.web import run_server

    config = _load(config_path)
    logging.getLogger("sweetconnect").setLevel(
        getattr(logging, config.log_level.upper(), logging.INFO)
    )
    if memory:
        config = merge_configs(config, {"store": {"backend": "memory"}})

    app = build_app(config)
    click.echo(click.style("=== SweetConnect ===", fg="cyan", bold=True))
    click.echo(f"  Store: {config.store.backend} ({config.store.path})")
    click.echo(f"  Mail: {config.mail.transport}")
    click.echo(f"  Delivery: {config.delivery.mode}")
    for actor in app.directory.all():
        click.echo(f"  Actor: {actor.display_name} [{actor.role.value}] {actor.email}")
    click.echo()

    try:
        asyncio.run(run_server(app, host=host, port=port))
    except KeyboardInterrupt:
        click.echo("Shutting down.")


# ------------------------------------------------------------------
# sweetconnect history
# ------------------------------------------------------------------


@cli.command()
@click.argument("actor_id")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to config YAML.",
)
@click.option("--limit", type=int, default=50, help="Max messages (capped at 50).")
def history(actor_id: str, config_path: str | None, limit: int) -> None:
    """Print stored messages for ACTOR_ID, oldest first."""
    from sweetconnect.comms.store import SQLiteMessageStore

    config = _load(config_path)

    async def _read():
        async with SQLiteMessageStore(config.store.path) as store:
            return await store.history(actor_id, limit)

    messages = asyncio.run(_read())
    if not messages:
        click.echo("No messages.")
        return
    for message in reversed(messages):
        direction = "->" if message.sender_id == actor_id else "<-"
        other = message.receiver_id if message.sender_id == actor_id else message.sender_id
        click.echo(
            f"{message.created_at:%Y-%m-%d %H:%M:%S} {direction} "
            f"{click.style(other, fg='yellow')} [{message.kind}] {message.content}"
        )


# ------------------------------------------------------------------
# sweetconnect register
# ------------------------------------------------------------------


@cli.command()
@click.argument("email")
@click.option("--name", default="", help="Display name (shared accounts use the collective name).")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.SHARED.value,
    show_default=True,
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to config YAML.",
)
def register(email: str, name: str, role: str, config_path: str | None) -> None:
    """Create an account for EMAIL and send the welcome mails."""
    from sweetconnect.app import build_app
    from sweetconnect.engine.errors import SweetConnectError

    app = build_app(_load(config_path))

    async def _register():
        await app.start()
        try:
            return await app.accounts.register(email, name, role)
        finally:
            await app.shutdown()

    try:
        actor = asyncio.run(_register())
    except SweetConnectError as exc:
        raise click.ClickException(f"{exc.code}: {exc.message}") from exc
    click.echo(f"{actor.actor_id}  {actor.display_name} [{actor.role.value}] {actor.email}")


# ------------------------------------------------------------------
# sweetconnect actors
# ------------------------------------------------------------------


@cli.command()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=False),
    help="Path to config YAML.",
)
def actors(config_path: str | None) -> None:
    """List seeded and registered actors."""
    from sweetconnect.app import build_app

    app = build_app(_load(config_path))

    async def _list():
        await app.start()
        try:
            return app.directory.all()
        finally:
            await app.shutdown()

    for actor in asyncio.run(_list()):
        click.echo(f"{actor.actor_id}  {actor.display_name:<16} {actor.role.value:<14} {actor.email}")


if __name__ == "__main__":
    cli()
