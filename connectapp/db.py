from contextlib import asynccontextmanager
from os import environ
from typing import AsyncIterator

from tortoise import Tortoise, generate_config

from .config import config


@asynccontextmanager
async def connect_orm(db_connection_string: str | None = None) -> AsyncIterator[None]:
    is_testing = environ.get("CONNECTAPP_TESTING") == "1"
    orm_config = generate_config(
        db_connection_string or config.db_connection_string,
        app_modules={"models": ["connectapp.models"]},
        testing=is_testing,
    )

    await Tortoise.init(config=orm_config, _create_db=is_testing)
    await Tortoise.generate_schemas()
    try:
        yield
    finally:
        await Tortoise.close_connections()
