"""Discord gateway client for Scriptorium.

Connects to Discord, listens for guild messages and hands each one to the
persona proxy. The client itself holds no proxy logic; it wires the persona
store, webhook manager, reply resolver and audit log together and keeps the
connection alive until a shutdown signal arrives.
"""

from __future__ import annotations

import asyncio
import signal
import time
from typing import TYPE_CHECKING

import discord
from sqlalchemy.engine import Engine

from scriptorium.audit import MessageAudit
from scriptorium.logging import get_logger
from scriptorium.personas import PersonaStore
from scriptorium.proxy import ProxyDispatcher
from scriptorium.replies import ReplyResolver
from scriptorium.webhooks import InMemoryWebhookCache, WebhookManager

if TYPE_CHECKING:
    from scriptorium.config import Config

log = get_logger("bot")


class ScriptoriumBot(discord.Client):
    """Discord client that proxies persona messages.

    Attributes:
        config: Application configuration.
        engine: SQLAlchemy database engine. Without one, messages are ignored.
        proxy: Dispatcher handling every inbound message.
        started_at: Monotonic timestamp of construction, for uptime reporting.
    """

    def __init__(self, config: Config, engine: Engine | None = None) -> None:
        """Initialize the client with required intents.

        Args:
            config: Application configuration.
            engine: SQLAlchemy database engine.
        """
        intents = discord.Intents.default()
        intents.guilds = True
        intents.guild_messages = True
        intents.message_content = True  # Read prefixes

        super().__init__(intents=intents)
        self.config = config
        self.engine = engine
        self.started_at = time.monotonic()
        self._shutdown_requested = False

        self.proxy: ProxyDispatcher | None = None
        if engine is not None:
            store = PersonaStore(engine)
            self.proxy = ProxyDispatcher(
                store=store,
                webhooks=WebhookManager(
                    InMemoryWebhookCache(),
                    name=config.proxy.webhook_name,
                ),
                replies=ReplyResolver(store, arrow=config.proxy.reply_arrow),
                audit=MessageAudit(engine),
            )

    @property
    def uptime_seconds(self) -> float:
        """Seconds since the client was created."""
        return time.monotonic() - self.started_at

    async def on_ready(self) -> None:
        """Called when connected to Discord.

        Logs connection status and sets the bot's "watching" presence.
        """
        log.info(
            "discord_ready",
            user=str(self.user),
            guilds=len(self.guilds),
        )
        await self.change_presence(
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name=self.config.discord.activity_text,
            )
        )

    async def on_disconnect(self) -> None:
        """Called when disconnected from Discord.

        discord.py handles reconnection automatically - this is just for logging.
        """
        log.warning("discord_disconnected")

    async def on_resumed(self) -> None:
        """Called when connection resumed after disconnect."""
        log.info("discord_resumed")

    async def on_message(self, message: discord.Message) -> None:
        """Route a new message to the persona proxy."""
        if self.proxy is None or not self.config.proxy.enabled:
            return
        await self.proxy.handle_message(message)

    async def graceful_shutdown(self) -> None:
        """Disconnect from Discord once, ignoring repeated signals."""
        if self._shutdown_requested:
            return
        log.info("shutdown_initiated")
        self._shutdown_requested = True

        await self.close()
        await asyncio.sleep(0)  # Allow pending aiohttp callbacks to finalize
        log.info("shutdown_complete")


def setup_signal_handlers(bot: ScriptoriumBot, loop: asyncio.AbstractEventLoop) -> None:
    """Setup graceful shutdown handlers for SIGINT and SIGTERM.

    Args:
        bot: The client to shut down.
        loop: The event loop to add signal handlers to.
    """

    def handle_signal(sig: signal.Signals) -> None:
        log.info("signal_received", signal=sig.name)
        loop.create_task(bot.graceful_shutdown())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

    log.debug("signal_handlers_registered", signals=["SIGINT", "SIGTERM"])


async def run_bot(
    config: Config,
    engine: Engine | None = None,
    bot_ref: list | None = None,
) -> None:
    """Run the Discord client until shutdown.

    Args:
        config: Application configuration with discord_token.
        engine: SQLAlchemy database engine for personas and the audit log.
        bot_ref: Optional list the client is appended to, so other components
            (the health API) can reach it once it exists.
    """
    bot = ScriptoriumBot(config, engine)
    if bot_ref is not None:
        bot_ref.append(bot)

    loop = asyncio.get_running_loop()
    setup_signal_handlers(bot, loop)

    try:
        log.info("bot_starting")
        await bot.start(config.discord_token)  # type: ignore[arg-type]
    except asyncio.CancelledError:
        log.debug("bot_cancelled")
    finally:
        if not bot.is_closed():
            await bot.close()
