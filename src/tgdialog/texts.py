"""User-visible strings and glyphs.

Grouped here so the dialog and selection modules never hardcode text.

Constants:
  - YES / NO: labels of BOOL_KEYBOARD
  - EXPECTED_KEYBOARD: notice appended when a reply misses the keyboard
  - STALE_KEYBOARD: toast for taps nobody is waiting for
  - FINISH / SELECTION_DONE: selection sentinel and its acknowledgment
  - CHECKED / UNCHECKED: selection marks
"""

# Boolean keyboard
YES = "Да"
NO = "Нет"

# answer_text retry notice
EXPECTED_KEYBOARD = "Ожидается ответ с клавиатуры"

# Interaction without a waiter
STALE_KEYBOARD = "Клавиатура устарела"

# Selection workflow
FINISH = "Готово"
SELECTION_DONE = "Выбор сохранён"
CHECKED = "✅"
UNCHECKED = "⬜"
