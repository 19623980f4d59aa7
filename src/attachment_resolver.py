from __future__ import annotations

from typing import Optional, Sequence

from telegram import Message, PhotoSize, TelegramObject

from .models import Attachment, AttachmentKind

# Order matters: the first kind present on the message wins.
SINGLE_KINDS = (
    AttachmentKind.STICKER,
    AttachmentKind.AUDIO,
    AttachmentKind.VOICE,
    AttachmentKind.VIDEO,
    AttachmentKind.DOCUMENT,
)


class AttachmentResolver:
    """Finds the archivable attachment carried by a Telegram message."""

    def resolve(self, message: Message) -> Optional[Attachment]:
        photo = self._largest_photo(message.photo)
        if photo is not None:
            return self._build(AttachmentKind.PHOTO, photo)
        for kind in SINGLE_KINDS:
            media = getattr(message, kind.value, None)
            if media is not None:
                return self._build(kind, media)
        return None

    @staticmethod
    def _largest_photo(variants: Optional[Sequence[PhotoSize]]) -> Optional[PhotoSize]:
        best = None
        for variant in variants or ():
            # strict comparison keeps the first variant on equal sizes
            if best is None or (variant.file_size or 0) > (best.file_size or 0):
                best = variant
        return best

    @staticmethod
    def _build(kind: AttachmentKind, media: TelegramObject) -> Attachment:
        return Attachment(
            file_id=media.file_id,
            file_unique_id=media.file_unique_id,
            kind=kind,
            size=getattr(media, "file_size", None),
            raw=media.to_dict(),
        )
