from loguru import logger
from tortoise.exceptions import BaseORMException

from connectapp.models import Post, User, MediaKind
from connectapp.schemas.media import POSTS_SIZE_POLICY
from connectapp.services.remote_media import discard_remote_asset
from connectapp.utils.cloudinary import Cloudinary
from connectapp.utils.custom_exception import CustomMessageException, UploadError, UploadErrorKind


def _upload_failure_message(exc: UploadError) -> str:
    if exc.kind is UploadErrorKind.TIMED_OUT:
        return "Upload timed out. Please check your internet connection and try again."
    if exc.kind is UploadErrorKind.TOO_LARGE:
        return exc.message
    return f"Failed to upload media. {exc.message}"


async def create_post(user: User, uri: str | None = None, caption: str = "", kind: MediaKind = MediaKind.TEXT) -> Post:
    caption = (caption or "").strip()
    if not uri and not caption:
        raise CustomMessageException("Please add some text or media to your post")

    final_kind = MediaKind(kind) if uri else MediaKind.TEXT
    media_url = None
    public_id = None

    if uri:
        logger.info(f"Uploading {final_kind.value} for post of user {user.id}...")
        try:
            uploaded = await Cloudinary.upload(uri, final_kind, POSTS_SIZE_POLICY)
        except UploadError as e:
            raise CustomMessageException(_upload_failure_message(e)) from e

        if not uploaded.remote_url:
            await discard_remote_asset(uploaded.public_id, final_kind)
            raise CustomMessageException(
                "Failed to upload media. Please check your internet connection and try again."
            )

        media_url = uploaded.remote_url
        public_id = uploaded.public_id

    try:
        post = await Post.create(
            user=user, caption=caption, type=final_kind, media_url=media_url, cloudinary_public_id=public_id,
        )
    except BaseORMException as e:
        logger.opt(exception=e).error(f"Failed to save post of user {user.id}")
        await discard_remote_asset(public_id, final_kind)
        raise CustomMessageException("Failed to create post. Please try again.") from e

    logger.info(f"Post {post.id} created")
    return post


async def edit_post(user: User, post_id: int, caption: str) -> Post:
    if (post := await Post.get_or_none(id=post_id, user=user)) is None:
        raise CustomMessageException("Post not found or you do not have permission to edit it")

    post.caption = (caption or "").strip()
    await post.save(update_fields=["caption"])
    return post


async def delete_post(user: User, post_id: int) -> None:
    if (post := await Post.get_or_none(id=post_id).select_related("user")) is None:
        raise CustomMessageException("Post not found or you do not have permission to delete it")
    if post.user.id != user.id:
        raise CustomMessageException("You can only delete your own posts")

    if post.has_remote_media:
        await discard_remote_asset(post.cloudinary_public_id, post.type)

    await post.delete()
