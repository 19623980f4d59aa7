from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

# Extensions may carry digits (mp4, mp3), the name part is always lowercase hex.
FILENAME_PATTERN = r"[0-9a-f]+\.[0-9a-z]+"
CALLBACK_PATTERN = re.compile(r"^(exist|remove):(" + FILENAME_PATTERN + r")$")


class AttachmentKind(str, Enum):
    PHOTO = "photo"
    STICKER = "sticker"
    AUDIO = "audio"
    VOICE = "voice"
    VIDEO = "video"
    DOCUMENT = "document"


class Action(str, Enum):
    EXIST = "exist"
    REMOVE = "remove"


@dataclass(frozen=True)
class Attachment:
    """The single archivable media object found in an inbound message."""

    file_id: str
    file_unique_id: str
    kind: AttachmentKind
    size: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredFile:
    name: str
    path: Path

    @classmethod
    def in_directory(cls, save_path: Path, name: str) -> "StoredFile":
        return cls(name=name, path=Path(save_path) / name)


@dataclass(frozen=True)
class CallbackPayload:
    action: Action
    filename: str

    def encode(self) -> str:
        return "{action}:{filename}".format(action=self.action.value, filename=self.filename)

    @classmethod
    def parse(cls, data: Optional[str]) -> Optional["CallbackPayload"]:
        if not data:
            return None
        match = CALLBACK_PATTERN.fullmatch(data)
        if not match:
            return None
        return cls(action=Action(match.group(1)), filename=match.group(2))
