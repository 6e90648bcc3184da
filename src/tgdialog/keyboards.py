"""Keyboard builders for prompts and selection workflows.

Label keyboards (ReplyKeyboardMarkup) send the tapped label back as an
ordinary text message, so replies are matched by text. Inline keyboards
carry a short callback identifier instead of the payload: Telegram limits
callback_data to 64 bytes, so each payload is reduced to the first 8
characters of its base64 SHA-256 digest. A tap reports only that
identifier; match_callback() recovers the payload by rehashing candidates.

Functions:
  - callback_id: digest-derived identifier of a payload
  - buttons_keyboard / buttons_inline_keyboard: build markups from row matrices
  - keyboard_labels: labels accepted by a label keyboard (None otherwise)
  - match_callback: linear scan of candidates for a tapped identifier
"""

import base64
import hashlib
from collections.abc import Iterable, Sequence

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
)

from . import texts

CALLBACK_ID_LENGTH = 8

Markup = InlineKeyboardMarkup | ReplyKeyboardMarkup | ReplyKeyboardRemove


def callback_id(payload: str) -> str:
    digest = hashlib.sha256(payload.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")[:CALLBACK_ID_LENGTH]


def buttons_keyboard(
    rows: Iterable[Iterable[str]], one_time: bool = True
) -> ReplyKeyboardMarkup:
    """Build a label keyboard from a (possibly jagged) matrix of labels."""
    return ReplyKeyboardMarkup(
        [[KeyboardButton(label) for label in row] for row in rows],
        resize_keyboard=True,
        one_time_keyboard=one_time,
    )


def buttons_inline_keyboard(
    rows: Iterable[Iterable[tuple[str, str]]],
) -> InlineKeyboardMarkup:
    """Build an inline keyboard from rows of ``(label, payload)`` pairs."""
    return InlineKeyboardMarkup(
        [
            [
                InlineKeyboardButton(label, callback_data=callback_id(payload))
                for label, payload in row
            ]
            for row in rows
        ]
    )


BOOL_KEYBOARD = buttons_keyboard([[texts.YES], [texts.NO]])
NO_KEYBOARD = ReplyKeyboardRemove()


def keyboard_labels(markup: Markup | None) -> set[str] | None:
    """Labels a reply must match, or None when any reply is acceptable."""
    if not isinstance(markup, ReplyKeyboardMarkup):
        return None
    return {button.text for row in markup.keyboard for button in row}


def match_callback(candidates: Sequence[str], data: str | None) -> str | None:
    """Return the first candidate whose callback_id equals ``data``."""
    if not data:
        return None
    for candidate in candidates:
        if callback_id(candidate) == data:
            return candidate
    return None
