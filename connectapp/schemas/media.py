from pydantic import BaseModel, ConfigDict

from connectapp.config import config
from connectapp.models import MediaKind

BYTES_IN_MB = 1024 * 1024


class SizePolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    image_mb: float
    video_mb: float

    def limit_mb(self, kind: MediaKind) -> float | None:
        if kind is MediaKind.VIDEO:
            return self.video_mb
        if kind is MediaKind.IMAGE:
            return self.image_mb
        return None


POSTS_SIZE_POLICY = SizePolicy(name="posts", image_mb=config.post_max_image_mb, video_mb=config.post_max_video_mb)
STORIES_SIZE_POLICY = SizePolicy(
    name="stories", image_mb=config.story_max_image_mb, video_mb=config.story_max_video_mb,
)


class UploadRequest(BaseModel):
    source_uri: str | None
    media_kind: MediaKind
    policy: SizePolicy = POSTS_SIZE_POLICY

    @property
    def is_text(self) -> bool:
        return not self.source_uri or self.media_kind is MediaKind.TEXT

    @property
    def size_limit_bytes(self) -> int | None:
        if (limit := self.policy.limit_mb(self.media_kind)) is None:
            return None
        return int(limit * BYTES_IN_MB)


class UploadResult(BaseModel):
    remote_url: str
    public_id: str
    resource_kind: str

    @classmethod
    def text(cls) -> "UploadResult":
        return cls(remote_url="", public_id="", resource_kind=MediaKind.TEXT.value)


class CloudinaryUploadResponse(BaseModel):
    secure_url: str
    public_id: str
    resource_type: str
