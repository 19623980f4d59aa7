"""Tests for composing and sending archive notifications."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ParseMode
from telegram.error import NetworkError

from src.models import Attachment, AttachmentKind
from src.notifier import NotificationComposer, escape_html

FILENAME = "1a2b3c4d5.jpg"


def _message(sender_id: int = 42, chat_id: int = -1001) -> MagicMock:
    message = MagicMock()
    message.from_user.id = sender_id
    message.chat_id = chat_id
    message.reply_text = AsyncMock()
    return message


def _attachment(**raw) -> Attachment:
    return Attachment(
        file_id="AgAD",
        file_unique_id="AQAD",
        kind=AttachmentKind.DOCUMENT,
        size=10,
        raw=raw or {"file_id": "AgAD"},
    )


def _composer() -> NotificationComposer:
    return NotificationComposer("https://bot.example.org/files/", "@audit")


class TestEscapeHtml:
    def test_three_entities(self) -> None:
        assert escape_html("<b>&") == "&lt;b&gt;&amp;"

    def test_quotes_untouched(self) -> None:
        assert escape_html("\"it's\"") == "\"it's\""

    def test_non_string(self) -> None:
        assert escape_html(-1001) == "-1001"


class TestCompose:
    def test_fields(self) -> None:
        text = _composer().build_text(_message(), _attachment(), FILENAME)
        lines = text.split("\n")
        assert lines[0] == "<b>From:</b> <code>42</code>"
        assert lines[1] == "<b>To:</b> <code>-1001</code>"
        assert lines[2] == "<b>File:</b> <code>AgAD</code> / <code>AQAD</code>"
        assert lines[3] == "<b>URL:</b> https://bot.example.org/files/" + FILENAME
        assert text.rstrip().endswith("</pre>")

    def test_interpolated_values_are_escaped(self) -> None:
        text = _composer().build_text(_message(), _attachment(file_name="<b>&"), FILENAME)
        assert "&lt;b&gt;&amp;" in text
        assert "<b>&" not in text

    def test_buttons(self) -> None:
        reply, broadcast = _composer().compose(_message(), _attachment(), FILENAME)
        assert reply.text == broadcast.text
        assert reply.reply_markup.inline_keyboard[0][0].callback_data == "exist:" + FILENAME
        assert broadcast.reply_markup.inline_keyboard[0][0].callback_data == "remove:" + FILENAME


class TestSend:
    @pytest.mark.asyncio
    async def test_reply_and_broadcast(self) -> None:
        message = _message()
        bot = MagicMock()
        bot.send_message = AsyncMock()

        await _composer().send(bot, message, _attachment(), FILENAME)

        message.reply_text.assert_awaited_once()
        assert message.reply_text.call_args.kwargs["parse_mode"] == ParseMode.HTML
        bot.send_message.assert_awaited_once()
        kwargs = bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == "@audit"
        assert kwargs["reply_markup"].inline_keyboard[0][0].callback_data == "remove:" + FILENAME

    @pytest.mark.asyncio
    async def test_reply_failure_does_not_block_broadcast(self) -> None:
        message = _message()
        message.reply_text = AsyncMock(side_effect=NetworkError("down"))
        bot = MagicMock()
        bot.send_message = AsyncMock()
        composer = _composer()
        composer.logger = MagicMock()

        await composer.send(bot, message, _attachment(), FILENAME)

        bot.send_message.assert_awaited_once()
        composer.logger.error.assert_called_once()
        assert composer.logger.error.call_args.args[1] == "reply"

    @pytest.mark.asyncio
    async def test_broadcast_failure_is_logged(self) -> None:
        message = _message()
        bot = MagicMock()
        bot.send_message = AsyncMock(side_effect=NetworkError("down"))
        composer = _composer()
        composer.logger = MagicMock()

        await composer.send(bot, message, _attachment(), FILENAME)

        message.reply_text.assert_awaited_once()
        assert composer.logger.error.call_args.args[1] == "broadcast"
