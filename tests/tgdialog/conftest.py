"""Shared fixtures for tgdialog unit tests.

Provides a mocked PTB Bot, a DialogBot wired to it, factories for feed
events, and a helper that lets background tasks run until a condition holds.
"""

import asyncio
import itertools
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from tgdialog.dialog import DialogBot
from tgdialog.events import Conversation, IncomingMessage, Interaction

CHAT_ID = 100
SENT_MESSAGE_ID = 999


@pytest.fixture
def mock_bot():
    bot = AsyncMock()
    sent_msg = MagicMock()
    sent_msg.message_id = SENT_MESSAGE_ID
    sent_msg.chat_id = CHAT_ID
    bot.send_message.return_value = sent_msg
    return bot


@pytest.fixture
def dialog(mock_bot: AsyncMock) -> DialogBot:
    return DialogBot(mock_bot)


@pytest.fixture
def make_message():
    """Factory: build an IncomingMessage event."""
    ids = itertools.count(1)

    def _make(
        text: str | None = "hello",
        chat_id: int = CHAT_ID,
        *,
        is_outgoing: bool = False,
        message: object | None = None,
    ) -> IncomingMessage:
        return IncomingMessage(
            conversation=Conversation(chat_id),
            message_id=next(ids),
            text=text,
            is_outgoing=is_outgoing,
            message=message,  # type: ignore[arg-type]
        )

    return _make


@pytest.fixture
def make_interaction():
    """Factory: build an Interaction event (inline keyboard tap)."""
    ids = itertools.count(1)

    def _make(
        data: str | None,
        chat_id: int = CHAT_ID,
        *,
        message_id: int | None = SENT_MESSAGE_ID,
    ) -> Interaction:
        return Interaction(
            id=f"q{next(ids)}",
            conversation=Conversation(chat_id),
            message_id=message_id,
            data=data,
        )

    return _make


@pytest.fixture
def wait_until():
    """Yield to the event loop until ``predicate()`` is true."""

    async def _wait(predicate: Callable[[], bool], attempts: int = 200) -> None:
        for _ in range(attempts):
            if predicate():
                return
            await asyncio.sleep(0)
        raise AssertionError("condition not reached")

    return _wait
