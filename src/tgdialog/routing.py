"""Dispatcher listeners that feed the correlation registries.

Each factory returns one listener; wire_routes() registers all three on a
dispatcher. Registry lookups happen synchronously inside the listener, and
any outbound call is returned as an awaitable for the dispatcher to
schedule, so no other event can observe a half-updated registry.

Functions:
  - route_file_updates: finished or failed downloads -> download waiters
  - route_new_messages: incoming messages -> reply waiters, else MESSAGE
  - route_interactions: inline taps -> interaction waiters, else stale toast
  - wire_routes: register all of the above
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from telegram import Bot

from . import texts
from .dispatcher import EventDispatcher
from .events import (
    FILE_UPDATED,
    MESSAGE,
    NEW_INTERACTION,
    NEW_MESSAGE,
    FileUpdate,
    IncomingMessage,
    Interaction,
)
from .registry import Registries, WaiterRegistry

logger = logging.getLogger(__name__)


def route_file_updates(
    downloads: WaiterRegistry[str, str],
) -> Callable[[FileUpdate], None]:
    def on_file_updated(event: FileUpdate) -> None:
        if event.error is not None:
            downloads.fail_and_remove(event.file_id, event.error)
            return
        if not event.is_complete or not event.local_path:
            return
        downloads.resolve_and_remove(event.file_id, event.local_path)

    return on_file_updated


def route_new_messages(
    replies: WaiterRegistry[int, Any],
    dispatcher: EventDispatcher,
) -> Callable[[IncomingMessage], None]:
    def on_new_message(event: IncomingMessage) -> None:
        if event.is_outgoing:
            return
        if replies.has(event.chat_id):
            replies.resolve_and_remove(event.chat_id, event)
            return
        dispatcher.emit(MESSAGE, event)

    return on_new_message


def route_interactions(
    interactions: WaiterRegistry[int, Any],
    bot: Bot,
) -> Callable[[Interaction], Awaitable[Any] | None]:
    def on_new_interaction(event: Interaction) -> Awaitable[Any] | None:
        if interactions.has(event.chat_id):
            interactions.resolve_and_remove(event.chat_id, event)
            return None
        logger.debug(
            "Stale keyboard tap in chat %d (query=%s)", event.chat_id, event.id
        )
        return bot.answer_callback_query(event.id, text=texts.STALE_KEYBOARD)

    return on_new_interaction


def wire_routes(
    dispatcher: EventDispatcher, registries: Registries, bot: Bot
) -> None:
    dispatcher.on(FILE_UPDATED, route_file_updates(registries.downloads))
    dispatcher.on(NEW_MESSAGE, route_new_messages(registries.replies, dispatcher))
    dispatcher.on(NEW_INTERACTION, route_interactions(registries.interactions, bot))
