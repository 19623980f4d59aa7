from __future__ import annotations

import hmac
import random
from pathlib import Path
from typing import Optional

from aiohttp import web
from telegram import Update
from telegram.ext import Application

from .log import Logger

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def generate_webhook_path() -> str:
    return "/webhook{number:x}".format(number=random.randrange(16 ** 8, 16 ** 9))


class WebhookServer:
    """aiohttp front end: Telegram webhook plus read-only ``/files``."""

    def __init__(
        self,
        application: Application,
        save_path: Path,
        webhook_path: str,
        secret_token: Optional[str] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self.application = application
        self.save_path = Path(save_path)
        self.webhook_path = webhook_path
        self.secret_token = secret_token
        self.logger = logger or Logger()
        self._runner: Optional[web.AppRunner] = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(self.webhook_path, self.handle_webhook)
        app.router.add_static("/files/", self.save_path, show_index=False)
        return app

    async def handle_webhook(self, request: web.Request) -> web.Response:
        if self.secret_token is not None:
            received = request.headers.get(SECRET_HEADER, "")
            if not hmac.compare_digest(received, self.secret_token):
                self.logger.warn("Rejected webhook call with a bad secret token")
                return web.Response(status=403)
        try:
            payload = await request.json()
        except ValueError:
            return web.Response(status=400)
        if not isinstance(payload, dict):
            return web.Response(status=400)
        update = Update.de_json(payload, self.application.bot)
        await self.application.update_queue.put(update)
        return web.Response()

    async def start(self, host: str, port: int) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, host, port)
        await site.start()
        self.logger.info("Listening on http://%s:%d", host, port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
