from uuid import uuid4

from loguru import logger
from tortoise.exceptions import BaseORMException

from connectapp.models import Story, User, MediaKind
from connectapp.schemas.media import STORIES_SIZE_POLICY
from connectapp.services.remote_media import discard_remote_asset
from connectapp.utils.cloudinary import Cloudinary
from connectapp.utils.custom_exception import CustomMessageException


async def upload_story(user: User, uri: str, kind: MediaKind = MediaKind.IMAGE) -> Story:
    kind = MediaKind(kind)
    if not uri or kind is MediaKind.TEXT:
        raise CustomMessageException("Please select a photo or video for your story")

    uploaded = await Cloudinary.upload(uri, kind, STORIES_SIZE_POLICY)

    try:
        latest = await Story.filter(user=user, created_at__gte=Story.active_since()).order_by("-created_at", "-id").first()
        story = await Story.create(
            user=user,
            type=kind,
            media_url=uploaded.remote_url,
            cloudinary_public_id=uploaded.public_id,
            story_group_id=latest.story_group_id if latest is not None else uuid4(),
            is_first_story=latest is None,
        )
    except BaseORMException as e:
        logger.opt(exception=e).error(f"Failed to save story of user {user.id}")
        await discard_remote_asset(uploaded.public_id, kind)
        raise CustomMessageException("Failed to upload story. Please try again.") from e

    return story


async def delete_story(user: User, story_id: int) -> None:
    if (story := await Story.get_or_none(id=story_id, user=user)) is None:
        raise CustomMessageException("Story not found or you do not have permission to delete it")

    await discard_remote_asset(story.cloudinary_public_id, story.type)
    await story.delete()


async def get_user_stories(user_id: int) -> list[Story]:
    return await Story.filter(
        user__id=user_id, created_at__gte=Story.active_since(),
    ).order_by("created_at", "id").select_related("user")
