"""Channel webhook lifecycle for persona proxying.

Each text channel gets one webhook owned by the bot and named by convention.
Handles are created lazily, cached for the life of the process, and
revalidated with a fetch before reuse. The cache is never refreshed
proactively and has no size bound.

Two dispatches racing in a channel that has no cached webhook can both create
one. The duplicate is harmless (the next lookup reuses whichever is found
first) and is not guarded against.
"""

from __future__ import annotations

from typing import Protocol

import discord

from scriptorium.logging import get_logger

log = get_logger("webhooks")


class WebhookPermissionError(Exception):
    """Raised when the bot lacks Manage Webhooks in a channel."""

    def __init__(self, channel_id: int) -> None:
        super().__init__(f"Missing manage_webhooks permission in channel {channel_id}")
        self.channel_id = channel_id


class WebhookCache(Protocol):
    """Storage for one webhook handle per channel."""

    def get(self, channel_id: int) -> discord.Webhook | None: ...

    def set(self, channel_id: int, webhook: discord.Webhook) -> None: ...

    def evict(self, channel_id: int) -> None: ...


class InMemoryWebhookCache:
    """Process-local webhook cache keyed by channel ID."""

    def __init__(self) -> None:
        self._webhooks: dict[int, discord.Webhook] = {}

    def get(self, channel_id: int) -> discord.Webhook | None:
        return self._webhooks.get(channel_id)

    def set(self, channel_id: int, webhook: discord.Webhook) -> None:
        self._webhooks[channel_id] = webhook

    def evict(self, channel_id: int) -> None:
        self._webhooks.pop(channel_id, None)

    def __len__(self) -> int:
        return len(self._webhooks)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._webhooks


class WebhookManager:
    """Acquires a live webhook for a channel, creating one if needed.

    Attributes:
        cache: Where handles are kept between acquisitions.
        name: Webhook name used to recognise and create the bot's webhook.
    """

    def __init__(self, cache: WebhookCache | None = None, name: str = "Scriptorium") -> None:
        self.cache: WebhookCache = cache if cache is not None else InMemoryWebhookCache()
        self.name = name

    async def acquire(self, channel: discord.TextChannel) -> discord.Webhook:
        """Return a webhook for the channel.

        Args:
            channel: Text channel to send persona messages in.

        Returns:
            A webhook known to exist.

        Raises:
            WebhookPermissionError: If the bot can't manage webhooks here.
            discord.HTTPException: If listing or creating webhooks fails.
        """
        cached = self.cache.get(channel.id)
        if cached is not None:
            try:
                await cached.fetch()
                return cached
            except discord.HTTPException as e:
                log.info(
                    "webhook_cache_evicted",
                    channel_id=channel.id,
                    webhook_id=cached.id,
                    error=str(e),
                )
                self.cache.evict(channel.id)

        me = channel.guild.me
        if not channel.permissions_for(me).manage_webhooks:
            raise WebhookPermissionError(channel.id)

        webhook = await self._find_existing(channel, me.id)
        if webhook is None:
            webhook = await channel.create_webhook(
                name=self.name,
                reason="Persona message proxying",
            )
            log.info("webhook_created", channel_id=channel.id, webhook_id=webhook.id)
        else:
            log.debug("webhook_reused", channel_id=channel.id, webhook_id=webhook.id)

        self.cache.set(channel.id, webhook)
        return webhook

    async def _find_existing(
        self, channel: discord.TextChannel, bot_user_id: int
    ) -> discord.Webhook | None:
        """Find a webhook in the channel created by the bot under our name."""
        for webhook in await channel.webhooks():
            if (
                webhook.user is not None
                and webhook.user.id == bot_user_id
                and webhook.name == self.name
            ):
                return webhook
        return None
