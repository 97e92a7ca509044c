"""Telegram transport: inbound alert feed and outbound trade commands.

Logs in as a user account over MTProto (Telethon), so it can read channels
it does not administer and message other bots. The session string is kept
in a JSON file; the first login prompts for phone, code and 2FA password.
"""

from __future__ import annotations

import structlog
from telethon import TelegramClient, events
from telethon.errors import RPCError
from telethon.sessions import StringSession

from signal_brain.shell.config import TelegramConfig
from signal_brain.shell.contract import TextHandler
from signal_brain.shell.errors import ConfigurationError, PersistenceError, TransportError
from signal_brain.storage.json_store import JsonFileStore

log = structlog.get_logger()


def channel_ref(channel: str) -> str | int:
    """Entity reference for a channel given as @username, username or numeric id."""
    ident = channel.strip()
    if ident.lstrip("-").isdigit():
        return int(ident)
    return ident.lstrip("@")


def _prompt_phone() -> str:
    return input("Phone number (with country code): ").strip()


def _prompt_code() -> str:
    return input("Login code sent by Telegram: ").strip()


def _prompt_password() -> str:
    return input("Two-step verification password (empty if none): ")


class TelegramTransport:
    """Owns the Telegram user session lifecycle."""

    def __init__(self, config: TelegramConfig) -> None:
        self._config = config
        self._session_store = JsonFileStore(config.session_file)
        self._client: TelegramClient | None = None
        self._channel = None
        self._handlers: list[TextHandler] = []

    def _load_session(self) -> str:
        try:
            data = self._session_store.load(default={})
        except PersistenceError as e:
            log.warning("telegram.session_unreadable", error=str(e))
            return ""
        return data.get("session", "") if isinstance(data, dict) else ""

    def _save_session(self) -> None:
        try:
            self._session_store.save({"session": self._client.session.save()})
        except PersistenceError as e:
            log.error("telegram.session_save_failed", error=str(e))
            return
        log.info("telegram.session_saved", path=str(self._session_store.path))

    async def connect(self) -> None:
        """Connect, reuse the saved session or log in, then resolve the channel."""
        tg = self._config
        if not tg.api_id or not tg.api_hash:
            raise ConfigurationError("TELEGRAM_API_ID and TELEGRAM_API_HASH are not configured")
        if not tg.monitor_channel:
            raise ConfigurationError("TELEGRAM_MONITOR_CHANNEL is not configured")

        client = TelegramClient(
            StringSession(self._load_session()),
            int(tg.api_id),
            tg.api_hash,
            connection_retries=5,
        )
        try:
            await client.connect()
            if not await client.is_user_authorized():
                log.info("telegram.interactive_login")
                await client.start(
                    phone=tg.phone or _prompt_phone,
                    code_callback=_prompt_code,
                    password=_prompt_password,
                )
            me = await client.get_me()
            channel = await client.get_entity(channel_ref(tg.monitor_channel))
        except (RPCError, OSError, ValueError) as e:
            log.error("telegram.connect_failed", error=str(e))
            await client.disconnect()
            raise TransportError(f"Telegram login failed: {e}") from e

        self._client = client
        self._channel = channel
        self._save_session()
        for handler in self._handlers:
            self._attach(handler)
        log.info("telegram.connected", username=getattr(me, "username", None), channel=tg.monitor_channel)

    def on_text(self, handler: TextHandler) -> None:
        self._handlers.append(handler)
        if self._client is not None:
            self._attach(handler)

    def _attach(self, handler: TextHandler) -> None:
        async def dispatch(event: events.NewMessage.Event) -> None:
            text = event.message.message
            if not text:
                return
            await handler(text)

        self._client.add_event_handler(dispatch, events.NewMessage(chats=self._channel))

    async def start_listening(self) -> None:
        if self._client is None:
            raise TransportError("Telegram transport is not connected")
        log.info("telegram.listening", channel=self._config.monitor_channel, handlers=len(self._handlers))

    async def send_text(self, recipient: str, text: str) -> None:
        if self._client is None:
            raise TransportError("Telegram transport is not connected")
        try:
            await self._client.send_message(recipient, text)
        except (RPCError, OSError, ValueError) as e:
            raise TransportError(f"Send to {recipient} failed: {e}") from e

    async def stop(self) -> None:
        """Disconnect; the session string is already on disk."""
        if self._client is None:
            return
        await self._client.disconnect()
        self._client = None
        log.info("telegram.stopped")
