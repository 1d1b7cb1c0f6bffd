from loguru import logger

from connectapp.models import MediaKind
from connectapp.utils.cloudinary import Cloudinary
from connectapp.utils.custom_exception import UploadError


async def discard_remote_asset(public_id: str | None, kind: MediaKind | str) -> bool:
    """Best-effort removal of an uploaded asset. Failures are logged, never raised."""
    if not public_id:
        return False

    try:
        await Cloudinary.destroy(public_id, kind)
    except UploadError as e:
        logger.opt(exception=e).warning(f"Failed to delete remote asset {public_id!r}")
        return False

    return True
