"""Bridge from the python-telegram-bot update stream to the dispatcher.

event_from_update() maps one Update onto the typed events of events.py;
create_application() builds the PTB Application with a single TypeHandler
that dispatches every update to the DialogBot stored in bot_data. PTB
handles updates one at a time, which is the ordering the registries rely on.

Key functions: event_from_update(), create_application(), get_dialog().
"""

import logging

from telegram import Update
from telegram.ext import Application, ContextTypes, TypeHandler

from .config import Config
from .dialog import DialogBot
from .dispatcher import EventDispatcher
from .downloads import FileDownloader
from .events import (
    Conversation,
    Event,
    IncomingMessage,
    Interaction,
    RawUpdate,
)

logger = logging.getLogger(__name__)

DIALOG_KEY = "dialog"


def event_from_update(update: Update, bot_id: int | None = None) -> Event | None:
    """Translate a PTB Update; None when the update carries nothing."""
    message = update.message
    if message is not None:
        sender = message.from_user
        return IncomingMessage(
            conversation=Conversation(message.chat_id),
            message_id=message.message_id,
            text=message.text,
            is_outgoing=bool(sender and bot_id is not None and sender.id == bot_id),
            message=message,
        )

    query = update.callback_query
    if query is not None:
        attached = query.message
        if attached is not None:
            chat_id = attached.chat.id
            message_id: int | None = attached.message_id
        else:
            # Inline-mode keyboards have no chat; private chat id == user id
            chat_id = query.from_user.id
            message_id = None
        return Interaction(
            id=query.id,
            conversation=Conversation(chat_id),
            message_id=message_id,
            data=query.data,
            query=query,
        )

    for kind in Update.ALL_TYPES:
        if getattr(update, kind, None) is not None:
            return RawUpdate(kind, update)
    return None


def get_dialog(application: Application) -> DialogBot:
    return application.bot_data[DIALOG_KEY]


async def _feed_update(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    event = event_from_update(update, context.bot.id)
    if event is None:
        logger.debug("Ignoring empty update %s", update.update_id)
        return
    get_dialog(context.application).dispatch(event)


async def _post_init(application: Application) -> None:
    await get_dialog(application).connect()


async def _post_shutdown(application: Application) -> None:
    dialog = get_dialog(application)
    await dialog.dispatcher.cancel()
    await dialog.close()


def create_application(config: Config) -> Application:
    application = (
        Application.builder()
        .token(config.telegram_bot_token)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )

    dispatcher = EventDispatcher()
    downloader = FileDownloader(
        application.bot,
        dispatcher,
        config.download_dir,
        workers=config.download_workers,
    )
    application.bot_data[DIALOG_KEY] = DialogBot(
        application.bot,
        dispatcher,
        downloader=downloader,
        waiter_policy=config.waiter_policy,
        answer_max_attempts=config.effective_answer_attempts,
        wait_timeout=config.effective_wait_timeout,
        download_priority=config.download_priority,
    )
    application.add_handler(TypeHandler(Update, _feed_update))
    return application
