from __future__ import annotations

import asyncio
import html
import json
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Message
from telegram.constants import ParseMode

from .log import Logger
from .models import Action, Attachment, CallbackPayload


def escape_html(value: Any) -> str:
    # &, < and > only: values never end up inside an attribute
    return html.escape(str(value), quote=False)


@dataclass(frozen=True)
class Notification:
    text: str
    reply_markup: InlineKeyboardMarkup


class NotificationComposer:
    """Builds the archive notice for the sender's chat and the audit channel."""

    def __init__(self, files_url: str, info_channel: str, logger: Optional[Logger] = None) -> None:
        self.files_url = files_url.rstrip("/")
        self.info_channel = info_channel
        self.logger = logger or Logger()

    def public_url(self, filename: str) -> str:
        return "{base}/{name}".format(base=self.files_url, name=filename)

    def build_text(self, message: Message, attachment: Attachment, filename: str) -> str:
        sender = message.from_user.id if message.from_user else None
        lines = [
            "<b>From:</b> <code>{}</code>".format(escape_html(sender)),
            "<b>To:</b> <code>{}</code>".format(escape_html(message.chat_id)),
            "<b>File:</b> <code>{}</code> / <code>{}</code>".format(
                escape_html(attachment.file_id), escape_html(attachment.file_unique_id)
            ),
            "<b>URL:</b> {}".format(escape_html(self.public_url(filename))),
            "<pre>{}</pre>".format(escape_html(json.dumps(attachment.raw, indent=2, ensure_ascii=False))),
        ]
        return "\n".join(lines)

    @staticmethod
    def _button(label: str, action: Action, filename: str) -> InlineKeyboardMarkup:
        payload = CallbackPayload(action=action, filename=filename).encode()
        return InlineKeyboardMarkup([[InlineKeyboardButton(label, callback_data=payload)]])

    def compose(
        self, message: Message, attachment: Attachment, filename: str
    ) -> Tuple[Notification, Notification]:
        text = self.build_text(message, attachment, filename)
        reply = Notification(text, self._button("Check", Action.EXIST, filename))
        broadcast = Notification(text, self._button("Remove", Action.REMOVE, filename))
        return reply, broadcast

    async def send(
        self, bot: Bot, message: Message, attachment: Attachment, filename: str
    ) -> None:
        reply, broadcast = self.compose(message, attachment, filename)
        results = await asyncio.gather(
            message.reply_text(
                reply.text,
                parse_mode=ParseMode.HTML,
                reply_markup=reply.reply_markup,
            ),
            bot.send_message(
                chat_id=self.info_channel,
                text=broadcast.text,
                parse_mode=ParseMode.HTML,
                reply_markup=broadcast.reply_markup,
            ),
            return_exceptions=True,
        )
        for target, result in zip(("reply", "broadcast"), results):
            if isinstance(result, Exception):
                self.logger.error("Failed to send %s for %s: %s", target, filename, result)
