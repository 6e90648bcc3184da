"""Conversational primitives — sequential dialogs over the multiplexed feed.

DialogBot turns "send a prompt, then await the reply" into plain awaits.
Outbound commands go straight to the python-telegram-bot Bot; inbound
events arrive through dispatch() and resolve the waiters registered by the
await_* methods. Only one waiter per chat (or file) is expected at a time;
what happens otherwise is the registries' WaiterPolicy.

Outbound failures (TelegramError etc.) propagate to the caller unchanged.

Key class: DialogBot.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from telegram import Bot, Message

from . import texts
from .dispatcher import EventDispatcher, Listener
from .downloads import DEFAULT_PRIORITY, FileDownloader
from .events import IncomingMessage, Interaction, as_conversation
from .keyboards import Markup, keyboard_labels
from .registry import Registries, WaiterPolicy
from .routing import wire_routes
from .selection import run_selection

logger = logging.getLogger(__name__)


class UnexpectedReplyError(ValueError):
    """Raised when answer_text() runs out of attempts."""

    def __init__(self, chat_id: int, attempts: int, last_text: str) -> None:
        super().__init__(
            f"No keyboard reply in chat {chat_id} after {attempts} attempts"
        )
        self.chat_id = chat_id
        self.attempts = attempts
        self.last_text = last_text


def _file_id(file_handle: Any) -> str:
    if isinstance(file_handle, str):
        return file_handle
    file_id = getattr(file_handle, "file_id", None)
    if not isinstance(file_id, str):
        raise TypeError(f"Cannot derive a file id from {type(file_handle).__name__}")
    return file_id


class DialogBot:
    """Dialog engine bound to one Bot and one event dispatcher."""

    def __init__(
        self,
        bot: Bot,
        dispatcher: EventDispatcher | None = None,
        registries: Registries | None = None,
        *,
        downloader: FileDownloader | None = None,
        waiter_policy: WaiterPolicy = WaiterPolicy.REPLACE,
        answer_max_attempts: int | None = None,
        wait_timeout: float | None = None,
        download_priority: int = DEFAULT_PRIORITY,
    ) -> None:
        self.bot = bot
        self.dispatcher = dispatcher or EventDispatcher()
        self.registries = registries or Registries.create(waiter_policy)
        self.downloader = downloader
        self.answer_max_attempts = answer_max_attempts
        self.wait_timeout = wait_timeout
        self.download_priority = download_priority
        wire_routes(self.dispatcher, self.registries, bot)

    # --- Lifecycle ---

    async def connect(self) -> None:
        await self.bot.initialize()
        if self.downloader:
            self.downloader.start()
        logger.info("Dialog engine connected")

    async def close(self) -> None:
        if self.downloader:
            await self.downloader.stop()
        await self.bot.shutdown()
        logger.info("Dialog engine closed")

    # --- Events ---

    def on(self, event_type: str, listener: Listener) -> Listener:
        return self.dispatcher.on(event_type, listener)

    def dispatch(self, event: Any) -> int:
        return self.dispatcher.dispatch(event)

    # --- Outbound commands ---

    async def send(
        self, conversation: Any, text: str, markup: Markup | None = None
    ) -> Message:
        chat_id = as_conversation(conversation).chat_id
        return await self.bot.send_message(
            chat_id=chat_id, text=text, reply_markup=markup
        )

    async def send_audio(
        self,
        conversation: Any,
        audio_path: str | Path,
        *,
        title: str | None = None,
        performer: str | None = None,
        caption: str | None = None,
    ) -> Message:
        chat_id = as_conversation(conversation).chat_id
        return await self.bot.send_audio(
            chat_id=chat_id,
            audio=Path(audio_path),
            title=title,
            performer=performer,
            caption=caption,
        )

    async def edit_markup(self, message: Any, markup: Markup | None) -> Any:
        """Replace the inline keyboard of a previously sent message."""
        return await self.bot.edit_message_reply_markup(
            chat_id=message.chat_id,
            message_id=message.message_id,
            reply_markup=markup,
        )

    async def delete_message(self, message: Any) -> bool:
        return await self.bot.delete_messages(
            chat_id=message.chat_id, message_ids=[message.message_id]
        )

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> bool:
        return await self.bot.answer_callback_query(callback_query_id, text=text)

    # --- Awaiting events ---

    def _timeout(self, timeout: float | None) -> float | None:
        return self.wait_timeout if timeout is None else timeout

    async def await_reply(
        self, conversation: Any, timeout: float | None = None
    ) -> IncomingMessage:
        """Suspend until the next incoming message of ``conversation``."""
        chat_id = as_conversation(conversation).chat_id
        return await self.registries.replies.wait(chat_id, self._timeout(timeout))

    async def await_interaction(
        self, conversation: Any, timeout: float | None = None
    ) -> Interaction:
        """Suspend until the next inline keyboard tap in ``conversation``."""
        chat_id = as_conversation(conversation).chat_id
        return await self.registries.interactions.wait(
            chat_id, self._timeout(timeout)
        )

    async def answer_any(self, conversation: Any, prompt: str) -> IncomingMessage:
        await self.send(conversation, prompt)
        return await self.await_reply(conversation)

    async def answer_text(
        self,
        conversation: Any,
        prompt: str,
        markup: Markup | None = None,
        *,
        max_attempts: int | None = None,
    ) -> str:
        """Send ``prompt`` and return the reply text.

        With a label keyboard the reply must equal one of its labels
        (case-sensitive); otherwise the prompt is re-sent with a notice and
        the wait repeats. ``max_attempts`` (or the engine default) caps the
        number of rejected replies; None or 0 means no cap.
        """
        labels = keyboard_labels(markup)
        limit = max_attempts if max_attempts is not None else self.answer_max_attempts
        text = prompt
        rejected = 0
        while True:
            await self.send(conversation, text, markup)
            reply = await self.await_reply(conversation)
            reply_text = reply.text or ""
            if labels is None or reply_text in labels:
                return reply_text
            rejected += 1
            logger.debug(
                "Reply %r in chat %d matches no keyboard label (attempt %d)",
                reply_text,
                reply.chat_id,
                rejected,
            )
            if limit and rejected >= limit:
                raise UnexpectedReplyError(reply.chat_id, rejected, reply_text)
            text = f"{prompt}\n\n{texts.EXPECTED_KEYBOARD}"

    async def download_file(self, file_handle: Any, timeout: float | None = None) -> str:
        """Download a Telegram file and return its local path.

        Lookup and transfer errors (TelegramError, OSError) are raised here.
        """
        if self.downloader is None:
            raise RuntimeError("DialogBot has no downloader configured")
        file_id = _file_id(file_handle)
        downloads = self.registries.downloads
        waiter = downloads.expect(file_id)
        try:
            await self.downloader.begin(file_id, self.download_priority)
        except BaseException:
            downloads.discard(waiter)
            raise
        return await downloads.wait_for(waiter, self._timeout(timeout))

    # --- Selection workflows ---

    async def select_list(
        self, conversation: Any, prompt: str, items: Sequence[str]
    ) -> list[str]:
        """Multi-select ``items`` with an in-place toggling inline keyboard."""
        return await run_selection(self, conversation, prompt, items)

    async def sort_list(
        self, conversation: Any, prompt: str, items: Sequence[str]
    ) -> list[str]:
        """Same toggle workflow as select_list; the result is in tap order."""
        return await run_selection(self, conversation, prompt, items)
