import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet

from dotenv import load_dotenv


class ConfigError(RuntimeError):
    """Raised when the environment does not describe a runnable bot."""


@dataclass(frozen=True)
class Settings:
    token: str
    save_path: Path
    domain: str
    info_channel: str
    enable_groups: FrozenSet[int] = field(default_factory=frozenset)
    port: int = 8080 #значение по умолчанию, если PORT не задан в среде переменных

    @property
    def files_url(self) -> str:
        return "https://{domain}/files".format(domain=self.domain)


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError("{name} environment variable must be provided".format(name=name))
    return value


def _parse_groups(raw: str) -> FrozenSet[int]:
    try:
        return frozenset(int(item) for item in raw.replace(" ", "").split(",") if item)
    except ValueError as exc:
        raise ConfigError("ENABLE_GROUPS must be a comma-separated list of chat ids") from exc


def load_settings() -> Settings:
    load_dotenv()

    token = _require("BOT_TOKEN")
    save_path = Path(_require("FILE_SAVE_PATH"))
    domain = _require("DOMAIN").rstrip("/")
    enable_groups = _parse_groups(_require("ENABLE_GROUPS"))
    info_channel = _require("INFO_CHANNEL")

    try:
        port = int(os.getenv("PORT", int(Settings.port)))
    except ValueError as exc:
        raise ConfigError("PORT must be an integer") from exc

    return Settings(
        token=token,
        save_path=save_path,
        domain=domain,
        info_channel=info_channel,
        enable_groups=enable_groups,
        port=port,
    )
