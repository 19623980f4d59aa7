from __future__ import annotations

import asyncio
import secrets
import traceback
from typing import Any, Dict, Optional

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import (
    AIORateLimiter,
    ApplicationBuilder,
    CallbackQueryHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .action_router import ActionRouter
from .attachment_resolver import AttachmentResolver
from .config import Settings
from .file_manager import FileManager
from .log import Logger
from .models import CALLBACK_PATTERN
from .notifier import NotificationComposer
from .webserver import WebhookServer, generate_webhook_path

LISTEN_HOST = "0.0.0.0"

MEDIA_FILTER = (
    filters.PHOTO
    | filters.Sticker.ALL
    | filters.AUDIO
    | filters.VOICE
    | filters.VIDEO
    | filters.Document.ALL
)
NEW_POSTS = filters.UpdateType.MESSAGE | filters.UpdateType.CHANNEL_POST


class BotHandler:
    def __init__(self, settings: Settings, logger: Optional[Logger] = None) -> None:
        self.settings = settings
        self.logger = logger or Logger()
        self.resolver = AttachmentResolver()
        self.file_manager = FileManager(settings.save_path, self.logger)
        self.composer = NotificationComposer(
            settings.files_url, settings.info_channel, self.logger
        )
        self.router = ActionRouter(
            settings.save_path,
            settings.enable_groups,
            settings.info_channel,
            logger=self.logger,
        )
        self.webhook_path = generate_webhook_path()
        self.secret_token = secrets.token_hex(16)
        self.application = (
            ApplicationBuilder()
            .token(settings.token)
            .updater(None)
            .rate_limiter(AIORateLimiter())
            .build()
        )
        self._register_handlers()

    # Application setup ---------------------------------------------------
    def _register_handlers(self) -> None:
        self.application.add_handler(
            MessageHandler(MEDIA_FILTER & NEW_POSTS, self.handle_attachment)
        )
        self.application.add_handler(
            CallbackQueryHandler(self.router.route, pattern=CALLBACK_PATTERN)
        )
        self.application.add_error_handler(self.on_error)

    def is_enabled_chat(self, chat_id: int) -> bool:
        return chat_id in self.settings.enable_groups

    async def handle_attachment(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        message = update.effective_message
        if not message or not update.effective_chat:
            return
        if not self.is_enabled_chat(update.effective_chat.id):
            self.logger.debug("Ignoring message from chat %s", update.effective_chat.id)
            return

        attachment = self.resolver.resolve(message)
        if attachment is None:
            return

        log = self.logger.create_thread("download")
        log.info(
            "Received %s %s in chat %s",
            attachment.kind.value,
            attachment.file_id,
            update.effective_chat.id,
        )
        try:
            filename = await self.file_manager.download(context.bot, attachment.file_id)
        except (TelegramError, OSError) as exc:
            log.error("Failed to resolve %s: %s", attachment.file_id, exc)
            await message.reply_text("Fail to resolve file.")
            return

        await self.composer.send(context.bot, message, attachment, filename)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        error = context.error
        details = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        self.logger.error("Unhandled error while processing %r:\n%s", update, details)

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        self.logger.error(
            "Unhandled asyncio error: %s", context.get("exception") or context.get("message")
        )

    # Utilities -----------------------------------------------------------
    @property
    def webhook_url(self) -> str:
        return "https://{domain}{path}".format(domain=self.settings.domain, path=self.webhook_path)

    async def serve(self) -> None:
        self.settings.save_path.mkdir(parents=True, exist_ok=True)
        asyncio.get_running_loop().set_exception_handler(self._on_loop_exception)

        server = WebhookServer(
            self.application,
            self.settings.save_path,
            self.webhook_path,
            secret_token=self.secret_token,
            logger=self.logger,
        )
        async with self.application:
            await self.application.bot.set_webhook(
                url=self.webhook_url,
                secret_token=self.secret_token,
                allowed_updates=Update.ALL_TYPES,
            )
            await self.application.start()
            await server.start(LISTEN_HOST, self.settings.port)
            try:
                await asyncio.Event().wait()
            finally:
                await server.stop()
                await self.application.stop()

    def run(self) -> None:
        self.logger.info("Bot starting...")
        try:
            asyncio.run(self.serve())
        except KeyboardInterrupt:
            self.logger.info("Bot stopped")
