"""Example dialog attached by ``tgdialog run``.

Listens for unsolicited messages (the MESSAGE event):
  - /start runs a short linear dialog: yes/no prompt, multi-select, free text
  - a document is downloaded and its local path reported back
  - anything else gets a usage hint
"""

import logging
from collections.abc import Awaitable

from . import texts
from .dialog import DialogBot
from .events import MESSAGE, Conversation, IncomingMessage
from .keyboards import BOOL_KEYBOARD, NO_KEYBOARD

logger = logging.getLogger(__name__)

DEMO_ITEMS = ("Чай", "Кофе", "Сок", "Вода")


async def run_demo(dialog: DialogBot, conversation: Conversation) -> list[str]:
    answer = await dialog.answer_text(conversation, "Начнём?", BOOL_KEYBOARD)
    if answer != texts.YES:
        await dialog.send(conversation, "Хорошо, в другой раз.", NO_KEYBOARD)
        return []

    await dialog.send(conversation, "Отлично!", NO_KEYBOARD)
    chosen = await dialog.select_list(conversation, "Что будете пить?", DEMO_ITEMS)
    reply = await dialog.answer_any(conversation, "Как вас зовут?")
    summary = ", ".join(chosen) or "ничего"
    await dialog.send(conversation, f"{reply.text or 'Гость'}, ваш выбор: {summary}")
    return chosen


async def save_document(dialog: DialogBot, event: IncomingMessage) -> str:
    if event.message is None or event.message.document is None:
        raise ValueError("message carries no document")
    path = await dialog.download_file(event.message.document)
    await dialog.send(event, f"Файл сохранён: {path}")
    return path


def register_demo(dialog: DialogBot) -> None:
    def on_message(event: IncomingMessage) -> Awaitable[object] | None:
        if event.text == "/start":
            logger.info("Starting demo dialog in chat %d", event.chat_id)
            return run_demo(dialog, event.conversation)
        if event.message is not None and event.message.document is not None:
            return save_document(dialog, event)
        return dialog.send(event, "Отправьте /start или документ.")

    dialog.on(MESSAGE, on_message)
