"""Typed events flowing through the dispatcher, and the conversation handle.

Every event carries a ``type`` name; the dispatcher routes on it.

Type names:
  - NEW_MESSAGE: incoming chat message (IncomingMessage)
  - NEW_INTERACTION: inline keyboard tap (Interaction)
  - FILE_UPDATED: download progress reported by the download queue (FileUpdate)
  - MESSAGE: re-emitted IncomingMessage that no reply waiter claimed
  - anything else: RawUpdate passthrough named after the Update field

Key classes: Conversation, IncomingMessage, Interaction, FileUpdate, RawUpdate.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from telegram import CallbackQuery, Message, Update

NEW_MESSAGE = "new_message"
NEW_INTERACTION = "new_callback_query"
FILE_UPDATED = "file_updated"
MESSAGE = "message"


@dataclass(frozen=True)
class Conversation:
    """Handle of one chat; the chat id is the correlation key."""

    chat_id: int


def as_conversation(target: Any) -> Conversation:
    """Coerce a Conversation, a bare chat id, or anything with ``chat_id``."""
    if isinstance(target, Conversation):
        return target
    # bool is an int subclass but never a chat id
    if isinstance(target, int) and not isinstance(target, bool):
        return Conversation(target)
    chat_id = getattr(target, "chat_id", None)
    if isinstance(chat_id, int):
        return Conversation(chat_id)
    raise TypeError(f"Cannot derive a conversation from {type(target).__name__}")


@dataclass(frozen=True)
class IncomingMessage:
    """A chat message delivered by the feed."""

    type: ClassVar[str] = NEW_MESSAGE

    conversation: Conversation
    message_id: int
    text: str | None = None
    is_outgoing: bool = False
    message: Message | None = None

    @property
    def chat_id(self) -> int:
        return self.conversation.chat_id


@dataclass(frozen=True)
class Interaction:
    """An inline keyboard tap; ``data`` is the short callback identifier."""

    type: ClassVar[str] = NEW_INTERACTION

    id: str
    conversation: Conversation
    message_id: int | None = None
    data: str | None = None
    query: CallbackQuery | None = None

    @property
    def chat_id(self) -> int:
        return self.conversation.chat_id


@dataclass(frozen=True)
class FileUpdate:
    """Download state of one file.

    ``local_path`` is set once complete; ``error`` is set when the transfer
    failed.
    """

    type: ClassVar[str] = FILE_UPDATED

    file_id: str
    local_path: str | None = None
    is_complete: bool = False
    error: BaseException | None = None


@dataclass(frozen=True)
class RawUpdate:
    """Any other Update kind, passed through under its own field name."""

    type: str
    update: Update


Event = IncomingMessage | Interaction | FileUpdate | RawUpdate
