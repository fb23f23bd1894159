"""Persona message proxying.

Turns a prefixed human message into a webhook message sent under the
persona's name and avatar, then removes the original:

    match persona -> acquire webhook -> resolve reply -> send -> audit -> delete

The webhook send must succeed before the original is deleted, so a failed
send never loses the user's text. Each inbound message gets at most one
attempt; nothing is retried or deduplicated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import discord

from scriptorium.logging import get_logger
from scriptorium.matcher import PersonaMatcher
from scriptorium.webhooks import WebhookPermissionError

if TYPE_CHECKING:
    from scriptorium.audit import MessageAudit
    from scriptorium.models import Persona
    from scriptorium.personas import PersonaStore
    from scriptorium.replies import ReplyResolver
    from scriptorium.webhooks import WebhookManager

log = get_logger("proxy")


def strip_prefix(content: str, prefix: str) -> str:
    """Remove a matched prefix and surrounding whitespace from message text."""
    return content[len(prefix):].strip()


class ProxyDispatcher:
    """Handles inbound messages and re-emits persona messages via webhooks.

    Attributes:
        store: Persona store.
        matcher: Prefix matcher over the author's personas.
        webhooks: Webhook lifecycle manager, owner of the webhook cache.
        replies: Reply annotation resolver.
        audit: Message audit log.
    """

    def __init__(
        self,
        store: PersonaStore,
        webhooks: WebhookManager,
        replies: ReplyResolver,
        audit: MessageAudit,
    ) -> None:
        self.store = store
        self.matcher = PersonaMatcher(store)
        self.webhooks = webhooks
        self.replies = replies
        self.audit = audit

    async def handle_message(self, message: discord.Message) -> None:
        """Process one inbound message event.

        Bot and webhook messages, DMs and empty messages are ignored. A message
        matching one of its author's personas is proxied; any other message is
        recorded as an ordinary message. Errors are logged, never raised.

        Args:
            message: The message received from the gateway.
        """
        if message.author.bot or message.webhook_id is not None:
            return
        if message.guild is None or not message.content:
            return

        try:
            persona = await self.matcher.match(
                str(message.author.id),
                str(message.guild.id),
                message.content,
            )
            if persona is not None:
                await self.dispatch(message, persona)
            else:
                await self.audit.record_message(
                    author_id=str(message.author.id),
                    server_id=str(message.guild.id),
                    channel_id=str(message.channel.id),
                    message_id=str(message.id),
                )
        except Exception as e:
            log.exception(
                "message_handler_failed",
                message_id=message.id,
                channel_id=message.channel.id,
                error=str(e),
            )

    async def dispatch(
        self, message: discord.Message, persona: Persona
    ) -> discord.WebhookMessage | None:
        """Re-emit a message as a persona.

        Args:
            message: The triggering human message (already matched).
            persona: The matched persona.

        Returns:
            The sent webhook message, or None if nothing was sent.
        """
        content = strip_prefix(message.content, persona.prefix)
        if not content:
            log.debug("proxy_skipped_empty", persona=persona.name, message_id=message.id)
            return None

        channel = message.channel
        thread: discord.Thread | None = None
        if isinstance(channel, discord.Thread):
            thread = channel
            channel = channel.parent
            if channel is None:
                log.warning("proxy_thread_parent_missing", thread_id=thread.id)
                return None

        try:
            webhook = await self.webhooks.acquire(channel)
        except WebhookPermissionError:
            log.warning(
                "proxy_missing_permission",
                channel_id=channel.id,
                persona=persona.name,
            )
            return None
        except discord.HTTPException as e:
            log.error(
                "proxy_webhook_unavailable",
                channel_id=channel.id,
                persona=persona.name,
                error=str(e),
            )
            return None

        mention = await self.replies.resolve(message)
        if mention:
            content = f"{mention}\n{content}"

        avatar_url = persona.avatar_url or message.author.display_avatar.url

        send_kwargs: dict[str, Any] = {
            "content": content,
            "username": persona.name,
            "avatar_url": avatar_url,
            "wait": True,
        }
        if thread is not None:
            send_kwargs["thread"] = thread

        try:
            sent = await webhook.send(**send_kwargs)
        except discord.HTTPException as e:
            log.error(
                "proxy_send_failed",
                channel_id=channel.id,
                persona=persona.name,
                error=str(e),
            )
            return None

        await self.audit.record_message(
            author_id=str(message.author.id),
            server_id=str(message.guild.id),
            channel_id=str(message.channel.id),
            message_id=str(sent.id),
            is_persona=True,
            persona_name=persona.name,
        )

        try:
            await message.delete()
        except discord.HTTPException as e:
            log.warning(
                "proxy_original_delete_failed",
                message_id=message.id,
                error=str(e),
            )

        log.info(
            "proxy_sent",
            persona=persona.name,
            channel_id=message.channel.id,
            webhook_message_id=sent.id,
            reply_annotated=mention is not None,
        )
        return sent
