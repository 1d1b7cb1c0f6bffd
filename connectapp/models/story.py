from __future__ import annotations

from datetime import datetime, timedelta
from uuid import UUID

from pytz import UTC
from tortoise import Model, fields

from connectapp import models
from connectapp.config import config
from connectapp.models.media import MediaKind


class Story(Model):
    id: int = fields.BigIntField(pk=True)
    user: models.User = fields.ForeignKeyField("models.User")
    type: MediaKind = fields.CharEnumField(MediaKind, default=MediaKind.IMAGE)
    media_url: str = fields.TextField()
    cloudinary_public_id: str | None = fields.CharField(max_length=255, null=True, default=None)
    story_group_id: UUID = fields.UUIDField()
    is_first_story: bool = fields.BooleanField(default=True)
    created_at: datetime = fields.DatetimeField(auto_now_add=True)

    @staticmethod
    def active_since() -> datetime:
        return datetime.now(UTC) - timedelta(seconds=config.story_ttl)
