"""Tests for the example dialog attached by ``tgdialog run``."""

from unittest.mock import AsyncMock, MagicMock

from tgdialog import texts
from tgdialog.demo import DEMO_ITEMS, register_demo
from tgdialog.dialog import DialogBot
from tgdialog.downloads import FileDownloader
from tgdialog.events import FileUpdate
from tgdialog.keyboards import NO_KEYBOARD, callback_id


class TestDemoDialog:
    async def test_full_dialog(
        self, dialog, mock_bot, make_message, make_interaction, wait_until
    ) -> None:
        register_demo(dialog)
        registries = dialog.registries

        dialog.dispatch(make_message("/start"))
        await wait_until(lambda: registries.replies.has(100))
        dialog.dispatch(make_message(texts.YES))

        for payload in (DEMO_ITEMS[1], texts.FINISH):
            await wait_until(lambda: registries.interactions.has(100))
            dialog.dispatch(make_interaction(callback_id(payload)))

        await wait_until(lambda: registries.replies.has(100))
        dialog.dispatch(make_message("Ann"))
        await dialog.dispatcher.drain()

        last = mock_bot.send_message.call_args.kwargs
        assert last["text"] == f"Ann, ваш выбор: {DEMO_ITEMS[1]}"

    async def test_declined(self, dialog, mock_bot, make_message, wait_until) -> None:
        register_demo(dialog)

        dialog.dispatch(make_message("/start"))
        await wait_until(lambda: dialog.registries.replies.has(100))
        dialog.dispatch(make_message(texts.NO))
        await dialog.dispatcher.drain()

        assert mock_bot.send_message.call_args.kwargs["reply_markup"] is NO_KEYBOARD
        assert not dialog.registries.interactions.has(100)

    async def test_unknown_text_gets_hint(self, dialog, mock_bot, make_message) -> None:
        register_demo(dialog)
        dialog.dispatch(make_message("hello"))
        await dialog.dispatcher.drain()
        mock_bot.send_message.assert_awaited_once()
        assert "/start" in mock_bot.send_message.call_args.kwargs["text"]

    async def test_document_is_downloaded(
        self, mock_bot, make_message, wait_until
    ) -> None:
        downloader = AsyncMock(spec=FileDownloader)
        dialog = DialogBot(mock_bot, downloader=downloader)
        register_demo(dialog)

        message = MagicMock()
        message.document.file_id = "doc-1"
        dialog.dispatch(make_message(None, message=message))
        await wait_until(lambda: dialog.registries.downloads.has("doc-1"))

        dialog.dispatch(FileUpdate("doc-1", "/tmp/doc-1", is_complete=True))
        await dialog.dispatcher.drain()

        downloader.begin.assert_awaited_once_with("doc-1", 1)
        assert "/tmp/doc-1" in mock_bot.send_message.call_args.kwargs["text"]
