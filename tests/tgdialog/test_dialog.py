"""Tests for DialogBot conversational primitives."""

import asyncio
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import NetworkError

from tgdialog import texts
from tgdialog.dialog import DialogBot, UnexpectedReplyError
from tgdialog.downloads import FileDownloader
from tgdialog.events import MESSAGE, Conversation, FileUpdate
from tgdialog.keyboards import BOOL_KEYBOARD, buttons_keyboard


class TestSend:
    async def test_send_uses_chat_id(self, dialog, mock_bot) -> None:
        sent = await dialog.send(Conversation(100), "hi", BOOL_KEYBOARD)
        assert sent is mock_bot.send_message.return_value
        mock_bot.send_message.assert_awaited_once_with(
            chat_id=100, text="hi", reply_markup=BOOL_KEYBOARD
        )

    @pytest.mark.parametrize(
        "target",
        [
            pytest.param(100, id="int"),
            pytest.param(SimpleNamespace(chat_id=100), id="message-like"),
        ],
    )
    async def test_send_accepts_handles(self, dialog, mock_bot, target) -> None:
        await dialog.send(target, "hi")
        assert mock_bot.send_message.call_args.kwargs["chat_id"] == 100

    async def test_send_rejects_unknown_handle(self, dialog) -> None:
        with pytest.raises(TypeError):
            await dialog.send("not a chat", "hi")

    async def test_send_failure_propagates(self, dialog, mock_bot) -> None:
        mock_bot.send_message.side_effect = NetworkError("down")
        with pytest.raises(NetworkError):
            await dialog.send(100, "hi")


class TestOutboundCommands:
    async def test_send_audio(self, dialog, mock_bot) -> None:
        await dialog.send_audio(
            100, "/tmp/song.mp3", title="Song", performer="Band", caption="enjoy"
        )
        mock_bot.send_audio.assert_awaited_once_with(
            chat_id=100,
            audio=Path("/tmp/song.mp3"),
            title="Song",
            performer="Band",
            caption="enjoy",
        )

    async def test_delete_message(self, dialog, mock_bot, make_message) -> None:
        event = make_message("bye")
        await dialog.delete_message(event)
        mock_bot.delete_messages.assert_awaited_once_with(
            chat_id=100, message_ids=[event.message_id]
        )

    async def test_answer_callback_query(self, dialog, mock_bot) -> None:
        await dialog.answer_callback_query("q1", "ok")
        mock_bot.answer_callback_query.assert_awaited_once_with("q1", text="ok")

    async def test_edit_markup(self, dialog, mock_bot) -> None:
        message = SimpleNamespace(chat_id=100, message_id=5)
        await dialog.edit_markup(message, None)
        mock_bot.edit_message_reply_markup.assert_awaited_once_with(
            chat_id=100, message_id=5, reply_markup=None
        )


class TestAwaitReply:
    async def test_resolved_by_message_in_same_chat(
        self, dialog, make_message, wait_until
    ) -> None:
        task = asyncio.create_task(dialog.await_reply(100))
        await wait_until(lambda: dialog.registries.replies.has(100))

        other = make_message("elsewhere", chat_id=200)
        unsolicited = MagicMock()
        dialog.on(MESSAGE, unsolicited)
        dialog.dispatch(other)
        await asyncio.sleep(0)
        assert not task.done()
        unsolicited.assert_called_once_with(other)

        reply = make_message("mine")
        dialog.dispatch(reply)
        assert await task == reply

    async def test_second_wait_replaces_first(
        self, dialog, make_message, wait_until
    ) -> None:
        first = asyncio.create_task(dialog.await_reply(100))
        await wait_until(lambda: dialog.registries.replies.has(100))
        second = asyncio.create_task(dialog.await_reply(100))
        await asyncio.sleep(0)

        reply = make_message("only one")
        dialog.dispatch(reply)

        assert await second == reply
        await asyncio.sleep(0)
        assert not first.done()
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

    async def test_default_timeout_clears_waiter(self, mock_bot) -> None:
        dialog = DialogBot(mock_bot, wait_timeout=0.01)
        with pytest.raises(TimeoutError):
            await dialog.await_reply(100)
        assert not dialog.registries.replies.has(100)

    async def test_answer_any_returns_raw_reply(
        self, dialog, mock_bot, make_message, wait_until
    ) -> None:
        task = asyncio.create_task(dialog.answer_any(100, "Anything?"))
        await wait_until(lambda: dialog.registries.replies.has(100))
        mock_bot.send_message.assert_awaited_once_with(
            chat_id=100, text="Anything?", reply_markup=None
        )

        reply = make_message(None)
        dialog.dispatch(reply)
        assert await task is reply


class TestAnswerText:
    async def _reply(self, dialog, wait_until, event) -> None:
        await wait_until(lambda: dialog.registries.replies.has(event.chat_id))
        dialog.dispatch(event)

    async def test_matching_label_resolves_immediately(
        self, dialog, mock_bot, make_message, wait_until
    ) -> None:
        task = asyncio.create_task(dialog.answer_text(100, "Yes/No?", BOOL_KEYBOARD))
        await self._reply(dialog, wait_until, make_message("Да"))

        assert await task == "Да"
        assert mock_bot.send_message.await_count == 1

    async def test_mismatch_reprompts_once_per_reply(
        self, dialog, mock_bot, make_message, wait_until
    ) -> None:
        task = asyncio.create_task(dialog.answer_text(100, "Yes/No?", BOOL_KEYBOARD))
        await self._reply(dialog, wait_until, make_message("Maybe"))
        await wait_until(lambda: mock_bot.send_message.await_count == 2)
        assert not task.done()

        await self._reply(dialog, wait_until, make_message("Да"))
        assert await task == "Да"

        assert mock_bot.send_message.await_count == 2
        first, retry = mock_bot.send_message.call_args_list
        assert first.kwargs["text"] == "Yes/No?"
        assert retry.kwargs["text"].startswith("Yes/No?")
        assert texts.EXPECTED_KEYBOARD in retry.kwargs["text"]
        assert retry.kwargs["reply_markup"] is BOOL_KEYBOARD

    async def test_match_is_case_sensitive(
        self, dialog, mock_bot, make_message, wait_until
    ) -> None:
        task = asyncio.create_task(dialog.answer_text(100, "Yes/No?", BOOL_KEYBOARD))
        await self._reply(dialog, wait_until, make_message("да"))
        await wait_until(lambda: mock_bot.send_message.await_count == 2)
        await self._reply(dialog, wait_until, make_message("Нет"))
        assert await task == "Нет"

    async def test_any_label_of_jagged_keyboard(
        self, dialog, make_message, wait_until
    ) -> None:
        markup = buttons_keyboard([["a", "b"], ["c"]])
        task = asyncio.create_task(dialog.answer_text(100, "Pick", markup))
        await self._reply(dialog, wait_until, make_message("c"))
        assert await task == "c"

    async def test_free_text_without_keyboard(
        self, dialog, make_message, wait_until
    ) -> None:
        task = asyncio.create_task(dialog.answer_text(100, "Name?"))
        await self._reply(dialog, wait_until, make_message("Ann"))
        assert await task == "Ann"

    async def test_attempt_cap(self, dialog, mock_bot, make_message, wait_until) -> None:
        task = asyncio.create_task(
            dialog.answer_text(100, "Yes/No?", BOOL_KEYBOARD, max_attempts=2)
        )
        await self._reply(dialog, wait_until, make_message("Maybe"))
        await wait_until(lambda: mock_bot.send_message.await_count == 2)
        await self._reply(dialog, wait_until, make_message("Perhaps"))

        with pytest.raises(UnexpectedReplyError) as exc_info:
            await task
        assert exc_info.value.attempts == 2
        assert exc_info.value.last_text == "Perhaps"
        assert mock_bot.send_message.await_count == 2


class TestDownloadFile:
    @pytest.fixture
    def downloader(self) -> AsyncMock:
        return AsyncMock(spec=FileDownloader)

    @pytest.fixture
    def dialog(self, mock_bot, downloader) -> DialogBot:
        return DialogBot(mock_bot, downloader=downloader, download_priority=3)

    async def test_resolves_with_local_path(self, dialog, downloader, wait_until) -> None:
        task = asyncio.create_task(dialog.download_file(SimpleNamespace(file_id="f1")))
        await wait_until(lambda: downloader.begin.await_count == 1)
        downloader.begin.assert_awaited_once_with("f1", 3)

        dialog.dispatch(FileUpdate("other", "/tmp/other", is_complete=True))
        await asyncio.sleep(0)
        assert not task.done()

        dialog.dispatch(FileUpdate("f1", "/tmp/f1.pdf", is_complete=True))
        assert await task == "/tmp/f1.pdf"
        assert not dialog.registries.downloads.has("f1")

    async def test_begin_failure_discards_waiter(self, dialog, downloader) -> None:
        downloader.begin.side_effect = NetworkError("no file")
        with pytest.raises(NetworkError):
            await dialog.download_file("f1")
        assert not dialog.registries.downloads.has("f1")

    async def test_rejects_handle_without_file_id(self, dialog) -> None:
        with pytest.raises(TypeError):
            await dialog.download_file(object())

    async def test_requires_downloader(self, mock_bot) -> None:
        with pytest.raises(RuntimeError, match="downloader"):
            await DialogBot(mock_bot).download_file("f1")


class TestLifecycle:
    async def test_connect_and_close(self, mock_bot) -> None:
        downloader = AsyncMock(spec=FileDownloader)
        downloader.start = MagicMock()
        dialog = DialogBot(mock_bot, downloader=downloader)

        await dialog.connect()
        mock_bot.initialize.assert_awaited_once()
        downloader.start.assert_called_once()

        await dialog.close()
        downloader.stop.assert_awaited_once()
        mock_bot.shutdown.assert_awaited_once()


class TestEndToEnd:
    async def test_yes_no_dialog_with_one_retry(
        self, dialog, mock_bot, make_message, wait_until
    ) -> None:
        conversation = Conversation(100)
        task = asyncio.create_task(
            dialog.answer_text(conversation, "Yes/No?", BOOL_KEYBOARD)
        )

        await wait_until(lambda: dialog.registries.replies.has(100))
        dialog.dispatch(make_message("Maybe"))
        await wait_until(lambda: mock_bot.send_message.await_count == 2)
        await wait_until(lambda: dialog.registries.replies.has(100))
        assert not task.done()

        dialog.dispatch(make_message("Да"))
        assert await task == "Да"
