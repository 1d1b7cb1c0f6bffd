from __future__ import annotations

from datetime import datetime

from tortoise import Model, fields

from connectapp import models
from connectapp.models.media import MediaKind


class Post(Model):
    id: int = fields.BigIntField(pk=True)
    user: models.User = fields.ForeignKeyField("models.User")
    caption: str = fields.TextField(default="")
    type: MediaKind = fields.CharEnumField(MediaKind, default=MediaKind.TEXT)
    media_url: str | None = fields.TextField(null=True, default=None)
    cloudinary_public_id: str | None = fields.CharField(max_length=255, null=True, default=None)
    created_at: datetime = fields.DatetimeField(auto_now_add=True)

    @property
    def has_remote_media(self) -> bool:
        return bool(self.cloudinary_public_id) and self.type is not MediaKind.TEXT
