from __future__ import annotations

import random
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlparse

from telegram import Bot, File

from .log import Logger
from .models import StoredFile

NAME_LOW = 16 ** 8
NAME_HIGH = 16 ** 9
DEFAULT_EXTENSION = "bin"


def generate_filename(url: str) -> str:
    """Random 9 hex digit name keeping the lowercased extension of ``url``.

    Collisions (about 1 in 16**9 per call) are not checked.
    """
    number = random.randrange(NAME_LOW, NAME_HIGH)
    extension = PurePosixPath(urlparse(url).path).suffix.lstrip(".").lower()
    return "{number:x}.{extension}".format(number=number, extension=extension or DEFAULT_EXTENSION)


class FileManager:
    """Downloads Telegram files into the save directory."""

    def __init__(self, save_path: Path, logger: Optional[Logger] = None) -> None:
        self.save_path = Path(save_path)
        self.logger = logger or Logger()

    def stored_file(self, name: str) -> StoredFile:
        return StoredFile.in_directory(self.save_path, name)

    async def resolve_file(self, bot: Bot, file_id: str) -> File:
        return await bot.get_file(file_id)

    async def download(self, bot: Bot, file_id: str) -> str:
        """Fetch ``file_id`` to disk and return the generated filename.

        Telegram and filesystem errors propagate unchanged. An interrupted
        transfer may leave a partial file in place.
        """
        telegram_file = await self.resolve_file(bot, file_id)
        stored = self.stored_file(generate_filename(telegram_file.file_path))
        await telegram_file.download_to_drive(custom_path=stored.path)
        self.logger.info("Downloaded %s to %s", file_id, stored.path)
        return stored.name
