from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AbstractSet, Awaitable, Callable, Dict, Optional

from telegram import CallbackQuery, Chat, Message, Update
from telegram.ext import ContextTypes

from .log import Logger
from .models import Action, CallbackPayload

# Broadcast messages older than this are edited instead of deleted.
EDIT_INSTEAD_OF_DELETE_AFTER = timedelta(hours=48)
EXIST_CACHE_SECONDS = 0
REMOVE_CACHE_SECONDS = 3600

Handler = Callable[[CallbackQuery, str], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionRouter:
    """Dispatches inline button presses to the exist/remove handlers.

    Existence is always re-read from disk; no registry of stored files is
    kept. The probe and the mutation are not atomic, so two concurrent
    presses for the same file may both see it.
    """

    def __init__(
        self,
        save_path: Path,
        enable_groups: AbstractSet[int] = frozenset(),
        info_channel: str = "",
        logger: Optional[Logger] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.save_path = Path(save_path)
        self.enable_groups = frozenset(enable_groups)
        self.info_channel = info_channel
        self.logger = logger or Logger()
        self.clock = clock
        self.routes: Dict[Action, Handler] = {
            Action.EXIST: self.check_exists,
            Action.REMOVE: self.remove,
        }

    async def route(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None:
            return
        chat = query.message.chat if query.message is not None else None
        if not self.is_allowed_chat(chat):
            self.logger.debug("Ignoring button press from chat %s", chat.id if chat else None)
            return
        payload = CallbackPayload.parse(query.data)
        if payload is None:
            self.logger.debug("Ignoring callback payload %r", query.data)
            return
        await self.routes[payload.action](query, payload.filename)

    def is_allowed_chat(self, chat: Optional[Chat]) -> bool:
        """Allow-listed groups plus the audit channel (by id or @username)."""
        if chat is None:
            return False
        if chat.id in self.enable_groups or str(chat.id) == self.info_channel:
            return True
        if self.info_channel.startswith("@") and chat.username:
            return chat.username.lower() == self.info_channel[1:].lower()
        return False

    async def check_exists(self, query: CallbackQuery, filename: str) -> None:
        log = self.logger.create_thread("exist")
        path = self.save_path / filename
        log.debug("Checking %s", path)
        try:
            with path.open("rb"):
                pass
        except FileNotFoundError:
            text = "File {name} isn't exist."
        except OSError as exc:
            log.error("Failed to check %s: %s", path, exc)
            text = "Failed to check file {name}."
        else:
            text = "File {name} is exist."
        await query.answer(text.format(name=filename), show_alert=True, cache_time=EXIST_CACHE_SECONDS)

    async def remove(self, query: CallbackQuery, filename: str) -> None:
        log = self.logger.create_thread("remove")
        path = self.save_path / filename
        try:
            with path.open("r+b"):
                pass
        except FileNotFoundError:
            is_exist = False
        except OSError as exc:
            log.error("Failed to access %s: %s", path, exc)
            await self._answer_failure(query, filename)
            return
        else:
            try:
                path.unlink()
            except OSError as exc:
                log.error("Failed to remove %s: %s", path, exc)
                await self._answer_failure(query, filename)
                return
            is_exist = True

        if is_exist:
            log.info("Removed %s", path)
            text = "File {name} has been removed."
        else:
            log.info("%s was already removed", path)
            text = "File {name} has already been removed."

        await asyncio.gather(
            self._retire_broadcast(query, filename),
            query.answer(text.format(name=filename), show_alert=True, cache_time=REMOVE_CACHE_SECONDS),
        )

    async def _retire_broadcast(self, query: CallbackQuery, filename: str) -> None:
        message = query.message
        # InaccessibleMessage carries an epoch date and can be neither edited nor deleted
        if not isinstance(message, Message):
            return
        # measured against the broadcast's own timestamp, not the send time
        if self.clock() - message.date > EDIT_INSTEAD_OF_DELETE_AFTER:
            await query.edit_message_text("File {name} has been removed.".format(name=filename))
        else:
            await message.delete()

    @staticmethod
    async def _answer_failure(query: CallbackQuery, filename: str) -> None:
        await query.answer(
            "Failed to remove file {name}.".format(name=filename),
            show_alert=True,
            cache_time=EXIST_CACHE_SECONDS,
        )
