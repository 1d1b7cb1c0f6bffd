from __future__ import annotations

from datetime import datetime

from tortoise import Model, fields


class User(Model):
    id: int = fields.BigIntField(pk=True)
    username: str = fields.CharField(max_length=64, unique=True)
    avatar_url: str | None = fields.TextField(null=True, default=None)
    created_at: datetime = fields.DatetimeField(auto_now_add=True)
