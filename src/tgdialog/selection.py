"""Multi-select workflow on an inline keyboard edited in place.

The keyboard lists every item with a check mark plus a trailing finish
row. Each tap toggles one item and the same message's keyboard is
re-rendered; tapping finish returns the selection in toggle order.

  Rendering -> AwaitingInteraction -> (Toggling -> Rendering) | Terminated

Only one interaction waiter per chat is active; every loop iteration
registers a fresh one.

Key function: run_selection().
"""

import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

from telegram import InlineKeyboardMarkup

from . import texts
from .events import as_conversation
from .keyboards import buttons_inline_keyboard, callback_id, match_callback

if TYPE_CHECKING:
    from .dialog import DialogBot

logger = logging.getLogger(__name__)


class SelectionState:
    """Insertion-ordered set of selected items."""

    def __init__(self) -> None:
        self._items: dict[str, None] = {}

    def toggle(self, item: str) -> bool:
        """Flip membership of ``item``; returns True if it is now selected."""
        if item in self._items:
            del self._items[item]
            return False
        self._items[item] = None
        return True

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def as_list(self) -> list[str]:
        return list(self._items)


def render_selection(
    items: Sequence[str], state: SelectionState
) -> InlineKeyboardMarkup:
    rows = [
        [(f"{texts.CHECKED if item in state else texts.UNCHECKED} {item}", item)]
        for item in items
    ]
    rows.append([(texts.FINISH, texts.FINISH)])
    return buttons_inline_keyboard(rows)


async def run_selection(
    dialog: "DialogBot",
    conversation: Any,
    prompt: str,
    items: Sequence[str],
) -> list[str]:
    conv = as_conversation(conversation)
    items = list(items)
    state = SelectionState()
    finish_id = callback_id(texts.FINISH)

    sent = await dialog.send(conv, prompt, render_selection(items, state))
    logger.debug("Selection started in chat %d with %d items", conv.chat_id, len(items))

    while True:
        interaction = await dialog.await_interaction(conv)

        if (
            interaction.message_id is not None
            and interaction.message_id != sent.message_id
        ):
            # Tap on an older keyboard in the same chat
            await dialog.answer_callback_query(interaction.id, texts.STALE_KEYBOARD)
            continue

        if interaction.data == finish_id:
            await dialog.answer_callback_query(interaction.id, texts.SELECTION_DONE)
            result = state.as_list()
            logger.debug("Selection finished in chat %d: %s", conv.chat_id, result)
            return result

        item = match_callback(items, interaction.data)
        if item is not None:
            state.toggle(item)
        await dialog.answer_callback_query(interaction.id)
        if item is not None:
            await dialog.edit_markup(sent, render_selection(items, state))
